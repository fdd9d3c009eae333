"""Shared CLI helpers, decorators, and output utilities."""

from __future__ import annotations

import asyncio
import json
from collections.abc import Callable, Iterable
from pathlib import Path
from typing import NoReturn, TypeVar

import click

from squadsync.storage.fs import SQUAD_DIR, SquadRootError, find_root

T = TypeVar("T")


# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------


def require_root(is_json: bool = False) -> Path:
    """Find .squadsync/ directory or exit with error."""
    try:
        root = find_root()
    except SquadRootError as e:
        output_error(str(e), "NOT_INITIALIZED", is_json)
    if root is None:
        output_error(
            "Not a squadsync project (no .squadsync/ found). Run 'squadsync init' first.",
            "NOT_INITIALIZED",
            is_json,
        )
    return root / SQUAD_DIR


# ---------------------------------------------------------------------------
# Output helpers
# ---------------------------------------------------------------------------


def json_envelope(ok: bool, *, data: object = None, error: object = None) -> str:
    """Build a structured JSON output envelope."""
    result: dict = {"ok": ok}
    if data is not None:
        result["data"] = data
    if error is not None:
        result["error"] = error
    return json.dumps(result, sort_keys=True, indent=2, ensure_ascii=False) + "\n"


def json_error_obj(code: str, message: str) -> dict:
    """Build an error object for the JSON envelope."""
    return {"code": code, "message": message}


def output_error(message: str, code: str, is_json: bool, exit_code: int = 1) -> NoReturn:
    """Print error and exit. JSON errors go to stdout; human errors to stderr."""
    if is_json:
        click.echo(json_envelope(False, error=json_error_obj(code, message)))
    else:
        click.echo(f"Error: {message}", err=True)
    raise SystemExit(exit_code)


def output_result(
    *,
    data: object,
    human_message: str,
    quiet_value: str,
    is_json: bool,
    is_quiet: bool,
) -> None:
    """Print success result in the appropriate format."""
    if is_json:
        click.echo(json_envelope(True, data=data))
    elif is_quiet:
        click.echo(quiet_value)
    else:
        click.echo(human_message)


def common_options(f):  # noqa: ANN001, ANN201
    """Decorator adding ``--json`` and ``--quiet`` output options."""
    f = click.option("--quiet", is_flag=True, help="Print only the primary value.")(f)
    f = click.option("--json", "output_json", is_flag=True, help="Output structured JSON.")(f)
    return f


# ---------------------------------------------------------------------------
# Orchestrator session
# ---------------------------------------------------------------------------


def run_with_orchestrator(
    squad_dir: Path,
    action: Callable[..., T],
    *,
    fetch: Iterable[str] = (),
    is_json: bool = False,
    error_code: str = "VALIDATION_ERROR",
) -> T:
    """Run *action(orchestrator)* inside one event loop and return its result.

    The orchestrator is started (change feed opened, standing keys fetched),
    any extra *fetch* keys are loaded, and all of that completes before
    *action* runs, so read-modify-write edits start from the freshest
    remote value available.  Pending writes are flushed before returning.
    ``ValueError`` from *action* exits with *error_code*.
    """
    from squadsync.sync.orchestrator import SyncOrchestrator

    async def _run() -> T:
        orch = SyncOrchestrator.from_squad_dir(squad_dir)
        if orch.mode == "local" and not is_json:
            click.echo(
                "squadsync: no remote store configured; working from the local cache.",
                err=True,
            )
        await orch.start()
        try:
            for key in fetch:
                orch.load(key)
            await orch.flush()
            return action(orch)
        finally:
            await orch.close()

    try:
        return asyncio.run(_run())
    except ValueError as exc:
        output_error(str(exc), error_code, is_json)
