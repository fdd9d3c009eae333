"""CLI commands for weekly availability."""

from __future__ import annotations

import click

from squadsync.cli.helpers import (
    common_options,
    json_envelope,
    output_error,
    output_result,
    require_root,
    run_with_orchestrator,
)
from squadsync.cli.main import cli
from squadsync.core.schedule import DAY_STATUSES, status_label
from squadsync.core.weeks import (
    DEFAULT_WINDOW,
    parse_iso_date,
    start_of_next_week,
    start_of_week,
    week_dates,
    week_key,
    weeks_from,
)
from squadsync.sync.documents import schedule_key


def _resolve_week(raw: str | None, is_json: bool) -> str:
    """Map any date (default: next week) to its week id."""
    if raw is None:
        return week_key(start_of_next_week())
    try:
        return week_key(start_of_week(parse_iso_date(raw)))
    except ValueError as exc:
        output_error(str(exc), "INVALID_DATE", is_json)


@cli.command("week")
@click.argument("day", required=False)
@common_options
def week_show(day: str | None, output_json: bool, quiet: bool) -> None:
    """Show the availability grid for the week containing DAY (default: next week)."""
    is_json = output_json
    squad_dir = require_root(is_json)
    week_id = _resolve_week(day, is_json)

    def _action(orch) -> dict:
        orch.set_active_week(week_id)
        return {
            "week": week_id,
            "players": orch.players,
            "days": orch.get(schedule_key(week_id)) or {},
            "readiness": orch.readiness(week_id),
        }

    data = run_with_orchestrator(
        squad_dir, _action, fetch=[schedule_key(week_id)], is_json=is_json
    )
    if is_json:
        click.echo(json_envelope(True, data=data))
        return
    if quiet:
        click.echo(week_id)
        return
    click.echo(_format_grid(data))


def _format_grid(data: dict) -> str:
    dates = [d.isoformat() for d in week_dates(start_of_week(parse_iso_date(data["week"])))]
    total = len(data["players"])
    width = max([len("Team"), *(len(p) for p in data["players"])])

    lines = [f"Week of {data['week']}"]
    lines.append(" ".join([" " * width, *(f"{d[5:]:>7}" for d in dates)]))
    ready = []
    for d in dates:
        n = data["readiness"][d]
        ready.append(f"{n}/{total}{'*' if n == total else ' '}".rjust(7))
    lines.append(" ".join([f"{'Team':<{width}}", *ready]))
    for player in data["players"]:
        days = data["days"].get(player, {})
        cells = [status_label(days.get(d)).rjust(6) for d in dates]
        lines.append(" ".join([f"{player:<{width}}", *cells]))
    return "\n".join(lines)


@cli.command("set")
@click.argument("day")
@click.argument("status", type=click.Choice(DAY_STATUSES, case_sensitive=False))
@click.option("--player", default=None, help="Player to set (default: the active player).")
@common_options
def day_set(day: str, status: str, player: str | None, output_json: bool, quiet: bool) -> None:
    """Set a player's availability for DAY to YES, TBD, or NO."""
    is_json = output_json
    squad_dir = require_root(is_json)
    week_id = _resolve_week(day, is_json)
    status = status.upper()

    def _action(orch) -> dict:
        who = player or orch.state["activePlayer"]
        orch.set_active_week(week_id)
        orch.set_day_status(week_id, who, day, status)
        return {
            "week": week_id,
            "player": who,
            "day": day,
            "status": status,
            "ready": orch.readiness(week_id)[day],
        }

    data = run_with_orchestrator(
        squad_dir, _action, fetch=[schedule_key(week_id)], is_json=is_json
    )
    output_result(
        data=data,
        human_message=(
            f"{data['player']}: {day} -> {status_label(status)} {status} "
            f"({data['ready']} ready that day)"
        ),
        quiet_value=status,
        is_json=is_json,
        is_quiet=quiet,
    )


@cli.command("weeks")
@click.option("--from", "from_day", default=None, help="Any date in the first week (default: next week).")
@click.option("--count", type=int, default=DEFAULT_WINDOW, show_default=True, help="Number of weeks.")
@common_options
def weeks_list(from_day: str | None, count: int, output_json: bool, quiet: bool) -> None:
    """List a window of week ids."""
    if count < 1:
        output_error("--count must be at least 1.", "VALIDATION_ERROR", output_json)
    first = _resolve_week(from_day, output_json)
    ids = [week_key(w) for w in weeks_from(parse_iso_date(first), count)]
    output_result(
        data={"weeks": ids},
        human_message="\n".join(ids),
        quiet_value="\n".join(ids),
        is_json=output_json,
        is_quiet=quiet,
    )
