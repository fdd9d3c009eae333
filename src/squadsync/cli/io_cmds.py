"""CLI commands for bulk export and import of the whole state tree."""

from __future__ import annotations

import json
from pathlib import Path

import click

from squadsync.cli.helpers import json_envelope, require_root, run_with_orchestrator
from squadsync.cli.main import cli
from squadsync.storage.fs import atomic_write

EXPORT_FILENAME = "apex-squad-data.json"


@cli.command("export")
@click.option(
    "--output",
    "-o",
    "output_path",
    type=click.Path(dir_okay=False, writable=True),
    default=None,
    help=f"File to write (default: stdout; '{EXPORT_FILENAME}' is conventional).",
)
def export_cmd(output_path: str | None) -> None:
    """Export everything (schedule, notes, resources, team name) as JSON."""
    squad_dir = require_root(False)
    state = run_with_orchestrator(squad_dir, lambda orch: orch.export_state())
    text = json.dumps(state, indent=2, ensure_ascii=False) + "\n"

    if output_path is None:
        click.echo(text, nl=False)
        return
    atomic_write(Path(output_path).resolve(), text)
    click.echo(f"Exported to {output_path}", err=True)


@cli.command("import")
@click.argument("source", type=click.File("r", encoding="utf-8"))
@click.option("--json", "output_json", is_flag=True, help="Output structured JSON.")
def import_cmd(source, output_json: bool) -> None:  # noqa: ANN001
    """Replace all data with an exported JSON file and push it to the team.

    A malformed file is rejected as a whole; nothing is changed.
    """
    squad_dir = require_root(output_json)
    raw = source.read()

    keys = run_with_orchestrator(
        squad_dir,
        lambda orch: orch.import_state(raw),
        is_json=output_json,
        error_code="INVALID_IMPORT",
    )
    if output_json:
        click.echo(json_envelope(True, data={"documents": keys}))
    else:
        click.echo(f"Imported {len(keys)} documents.")
