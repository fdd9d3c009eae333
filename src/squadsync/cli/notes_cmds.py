"""CLI commands for notes, the team name, and the active player."""

from __future__ import annotations

import click

from squadsync.cli.helpers import common_options, output_result, require_root, run_with_orchestrator
from squadsync.cli.main import cli
from squadsync.sync.documents import SHARED_SCOPE, TEAM_NAME_KEY, notes_key


@cli.group()
def note() -> None:
    """Read and write the shared notepad and per-player notes."""


@note.command("show")
@click.argument("scope", default=SHARED_SCOPE)
@common_options
def note_show(scope: str, output_json: bool, quiet: bool) -> None:
    """Print the note for SCOPE ('shared' or a player name)."""
    squad_dir = require_root(output_json)
    text = run_with_orchestrator(
        squad_dir, lambda orch: orch.get(notes_key(scope)) or "", is_json=output_json
    )
    output_result(
        data={"scope": scope, "text": text},
        human_message=text,
        quiet_value=text,
        is_json=output_json,
        is_quiet=quiet,
    )


@note.command("set")
@click.argument("scope")
@click.argument("text", required=False)
@click.option("--file", "source", type=click.File("r", encoding="utf-8"), help="Read the note from a file ('-' for stdin).")
@common_options
def note_set(scope: str, text: str | None, source, output_json: bool, quiet: bool) -> None:  # noqa: ANN001
    """Replace the note for SCOPE with TEXT."""
    if text is None:
        if source is None:
            raise click.UsageError("Provide TEXT or --file.")
        text = source.read()
    squad_dir = require_root(output_json)

    def _action(orch) -> None:
        orch.set_note(scope, text)

    run_with_orchestrator(squad_dir, _action, is_json=output_json)
    output_result(
        data={"scope": scope, "text": text},
        human_message=f"Saved note '{scope}' ({len(text)} chars).",
        quiet_value=scope,
        is_json=output_json,
        is_quiet=quiet,
    )


@cli.command("team-name")
@click.argument("name", required=False)
@common_options
def team_name(name: str | None, output_json: bool, quiet: bool) -> None:
    """Show the team name, or change it to NAME."""
    squad_dir = require_root(output_json)

    def _action(orch) -> str:
        if name is not None:
            orch.set_team_name(name)
        return orch.get(TEAM_NAME_KEY)

    current = run_with_orchestrator(squad_dir, _action, is_json=output_json)
    output_result(
        data={"team_name": current},
        human_message=current if name is None else f"Team name set to: {current}",
        quiet_value=current,
        is_json=output_json,
        is_quiet=quiet,
    )


@cli.command("whoami")
@click.argument("player", required=False)
@common_options
def whoami(player: str | None, output_json: bool, quiet: bool) -> None:
    """Show the active player, or switch to PLAYER.  Stays on this machine."""
    squad_dir = require_root(output_json)

    def _action(orch) -> str:
        if player is not None:
            orch.set_active_player(player)
        return orch.state["activePlayer"]

    active = run_with_orchestrator(squad_dir, _action, is_json=output_json)
    output_result(
        data={"active_player": active},
        human_message=f"I am {active}",
        quiet_value=active,
        is_json=output_json,
        is_quiet=quiet,
    )
