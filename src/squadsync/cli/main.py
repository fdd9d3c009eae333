"""CLI entry point and commands."""

from __future__ import annotations

from pathlib import Path

import click

from squadsync.core.config import default_config, validate_players
from squadsync.storage.fs import SQUAD_DIR, ensure_squad_dirs
from squadsync.sync.config import save_squad_config


@click.group()
@click.version_option(package_name="squadsync")
def cli() -> None:
    """squadsync: shared availability, notes, and links for a small squad."""


@cli.command()
@click.option(
    "--path",
    "target_path",
    type=click.Path(exists=True, file_okay=False, resolve_path=True),
    default=".",
    help="Directory to initialize squadsync in (defaults to current directory).",
)
@click.option("--team", default=None, help="Team scope shared by every squad member.")
@click.option("--remote-url", default=None, help="Document server URL (e.g., ws://host:9800).")
@click.option(
    "--players",
    default=None,
    help="Comma-separated roster (defaults to Potato,YX8,Champerrin).",
)
def init(
    target_path: str,
    team: str | None,
    remote_url: str | None,
    players: str | None,
) -> None:
    """Initialize a new squadsync project."""
    root = Path(target_path)
    squad_dir = root / SQUAD_DIR

    # Idempotency: if .squadsync/ already exists as a directory, skip
    if squad_dir.is_dir():
        click.echo(f"squadsync already initialized in {SQUAD_DIR}/")
        return

    if squad_dir.exists():
        raise click.ClickException(
            f"Cannot initialize: '{SQUAD_DIR}' exists but is not a directory. "
            "Remove it and try again."
        )

    config = dict(default_config())
    if players is not None:
        roster = [p.strip() for p in players.split(",") if p.strip()]
        problems = validate_players(roster)
        if problems:
            raise click.ClickException("; ".join(problems))
        config["players"] = roster
    if team:
        config["team"] = team
    if remote_url:
        config["remote_url"] = remote_url

    ensure_squad_dirs(root)
    save_squad_config(squad_dir, config)

    click.echo(f"Initialized empty squadsync project in {SQUAD_DIR}/")
    click.echo(f"Players: {', '.join(config['players'])}")
    if not (team and remote_url):
        click.echo(
            "No team/remote configured: running local-only. "
            "Set SQUADSYNC_TEAM and SQUADSYNC_REMOTE_URL to sync."
        )


def main() -> None:
    cli()


# ---------------------------------------------------------------------------
# Register command modules (must be after cli group is defined)
# ---------------------------------------------------------------------------
from squadsync.cli import sync_cmds as _sync_cmds  # noqa: E402, F401
from squadsync.cli import schedule_cmds as _schedule_cmds  # noqa: E402, F401
from squadsync.cli import notes_cmds as _notes_cmds  # noqa: E402, F401
from squadsync.cli import resource_cmds as _resource_cmds  # noqa: E402, F401
from squadsync.cli import io_cmds as _io_cmds  # noqa: E402, F401

if __name__ == "__main__":
    cli()
