"""CLI commands for the document server and the live change feed."""

from __future__ import annotations

import asyncio
import json
import os

import click

from squadsync.cli.helpers import json_envelope, require_root
from squadsync.cli.main import cli


@cli.command("serve")
@click.option("--host", default=None, help="Bind address (default: 127.0.0.1).")
@click.option("--port", type=int, default=None, help="Listen port (default: 9800).")
@click.option(
    "--token",
    default=None,
    help="Shared token clients must send (default: $SQUADSYNC_TOKEN).",
)
def serve(host: str | None, port: int | None, token: str | None) -> None:
    """Run a document server storing tables under .squadsync/server/."""
    from squadsync.sync.config import TOKEN_ENV, load_squad_config
    from squadsync.sync.server import DocumentServer
    from squadsync.sync.store import DocumentStore

    squad_dir = require_root(False)
    listen = load_squad_config(squad_dir).get("listen", {})
    server = DocumentServer(
        DocumentStore(squad_dir / "server"),
        host=host or listen.get("host", "127.0.0.1"),
        port=port if port is not None else listen.get("port", 9800),
        token=token or os.environ.get(TOKEN_ENV) or None,
    )

    try:
        asyncio.run(server.serve_forever())
    except KeyboardInterrupt:
        click.echo("\nsquadsync server: stopped.")


@cli.command("watch")
@click.option("--prefix", default="", help="Only show keys starting with this prefix.")
def watch(prefix: str) -> None:
    """Print document changes as they arrive until interrupted."""
    from squadsync.sync.orchestrator import SyncOrchestrator

    squad_dir = require_root(False)

    def _show(key: str, value: object) -> None:
        click.echo(f"{key} = {json.dumps(value, ensure_ascii=False)}")

    async def _run() -> None:
        orch = SyncOrchestrator.from_squad_dir(squad_dir)
        if orch.mode == "local":
            raise click.ClickException(
                "No remote store configured; set SQUADSYNC_TEAM and SQUADSYNC_REMOTE_URL."
            )
        orch.subscribe(_show, prefix)
        await orch.start()
        if orch.feed is None or not orch.feed.connected:
            await orch.close()
            raise click.ClickException("Could not open the change feed.")
        click.echo(f"squadsync: watching team {orch.feed.scope!r} (Ctrl-C to stop)", err=True)
        try:
            while orch.feed.connected:
                await asyncio.sleep(0.5)
        finally:
            await orch.close()

    try:
        asyncio.run(_run())
    except KeyboardInterrupt:
        click.echo("\nsquadsync: stopped watching.", err=True)


@cli.command("status")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
def status(as_json: bool) -> None:
    """Show sync mode, team scope, roster, and cache location."""
    from squadsync.core.config import get_players
    from squadsync.storage.cache import LocalCache
    from squadsync.sync.config import load_squad_config, remote_enabled, resolve_remote_settings

    squad_dir = require_root(as_json)
    config = load_squad_config(squad_dir)
    settings = resolve_remote_settings(config)
    cache = LocalCache(squad_dir)

    data = {
        "mode": "remote" if remote_enabled(settings) else "local",
        "team": settings["team"],
        "remote_url": settings["url"],
        "players": get_players(config),
        "peer_id": config.get("peer_id"),
        "cache": str(cache.path),
        "cache_exists": cache.exists(),
    }

    if as_json:
        click.echo(json_envelope(True, data=data))
        return

    click.echo(f"Mode: {data['mode']}")
    click.echo(f"Team: {data['team'] or 'not configured'}")
    click.echo(f"Remote: {data['remote_url'] or 'not configured'}")
    click.echo(f"Players: {', '.join(data['players'])}")
    click.echo(f"Cache: {data['cache']}{'' if data['cache_exists'] else ' (not written yet)'}")
