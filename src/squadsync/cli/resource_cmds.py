"""CLI commands for the shared resource list (add, remove, list)."""

from __future__ import annotations

import click

from squadsync.cli.helpers import (
    common_options,
    output_error,
    output_result,
    require_root,
    run_with_orchestrator,
)
from squadsync.cli.main import cli
from squadsync.core.resources import (
    DEFAULT_RESOURCE_TYPE,
    RESOURCE_TYPES,
    ResourceInputError,
    build_resource,
)
from squadsync.sync.documents import RESOURCES_KEY


# ---------------------------------------------------------------------------
# Resource command group
# ---------------------------------------------------------------------------


@cli.group()
def resource() -> None:
    """Manage the shared list of links."""


@resource.command("add")
@click.argument("title")
@click.argument("url")
@click.option(
    "--type",
    "resource_type",
    type=click.Choice(RESOURCE_TYPES),
    default=DEFAULT_RESOURCE_TYPE,
    show_default=True,
)
@click.option("--desc", default="", help="Why it's useful.")
@click.option("--id", "resource_id", default=None, help="Caller-supplied resource ID.")
@common_options
def resource_add(
    title: str,
    url: str,
    resource_type: str,
    desc: str,
    resource_id: str | None,
    output_json: bool,
    quiet: bool,
) -> None:
    """Add a link to the top of the shared list."""
    is_json = output_json
    squad_dir = require_root(is_json)

    # Validate before touching any state
    try:
        record = build_resource(title, url, resource_type, desc, resource_id)
    except ResourceInputError as exc:
        output_error(str(exc), "INVALID_RESOURCE", is_json)

    run_with_orchestrator(
        squad_dir, lambda orch: orch.add_resource(record), fetch=[RESOURCES_KEY], is_json=is_json
    )
    output_result(
        data=record,
        human_message=f"Added {record['id']}: {record['title']} <{record['url']}>",
        quiet_value=record["id"],
        is_json=is_json,
        is_quiet=quiet,
    )


@resource.command("rm")
@click.argument("resource_id")
@common_options
def resource_rm(resource_id: str, output_json: bool, quiet: bool) -> None:
    """Remove every entry with RESOURCE_ID from the shared list."""
    is_json = output_json
    squad_dir = require_root(is_json)

    def _action(orch) -> int:
        before = orch.get(RESOURCES_KEY)
        if not any(r.get("id") == resource_id for r in before):
            return 0
        orch.remove_resource(resource_id)
        return len(before) - len(orch.get(RESOURCES_KEY))

    removed = run_with_orchestrator(squad_dir, _action, fetch=[RESOURCES_KEY], is_json=is_json)
    if not removed:
        output_error(f"Resource not found: {resource_id}", "NOT_FOUND", is_json)
    output_result(
        data={"id": resource_id, "removed": removed},
        human_message=f"Removed {resource_id}",
        quiet_value=resource_id,
        is_json=is_json,
        is_quiet=quiet,
    )


@resource.command("list")
@common_options
def resource_list(output_json: bool, quiet: bool) -> None:
    """List shared links, newest first."""
    is_json = output_json
    squad_dir = require_root(is_json)
    resources = run_with_orchestrator(
        squad_dir, lambda orch: orch.get(RESOURCES_KEY), fetch=[RESOURCES_KEY], is_json=is_json
    )

    if not resources and not is_json:
        click.echo("No resources yet. Add your first with 'squadsync resource add'.")
        return

    lines = []
    for r in resources:
        lines.append(f"{r['id']}  [{r['type']}] {r['title']}  {r['url']}")
        if r.get("desc"):
            lines.append(f"    {r['desc']}")
    output_result(
        data=resources,
        human_message="\n".join(lines),
        quiet_value="\n".join(r["id"] for r in resources),
        is_json=is_json,
        is_quiet=quiet,
    )
