"""Plan command implementation."""

import click
from rich.table import Table

from relmirror.commands.common import build_config, config_options, console, fail, make_planner
from relmirror.core.errors import ConfigError, MirrorError
from relmirror.core.http import build_client
from relmirror.core.planner import ReleaseState


ACTION_LABELS = {
    ReleaseState.ABSENT: "[green]create[/green]",
    ReleaseState.PRESENT_CHANGED: "[yellow]update[/yellow]",
    ReleaseState.PRESENT_UNCHANGED: "[dim]keep[/dim]",
}


@click.command()
@config_options
@click.pass_context
def plan(ctx: click.Context, **options):
    """Show what sync would do, without changing anything."""
    try:
        config = build_config(options, ctx.default_map)
    except ConfigError as e:
        fail(str(e), code=2)

    try:
        with build_client(config) as client:
            result = make_planner(config, client, show_progress=False).plan()
    except MirrorError as e:
        fail(str(e))

    if not result.actions and not result.skipped:
        console.print("No origin releases found")
        raise SystemExit(0)

    table = Table(show_header=True, header_style="bold")
    table.add_column("Tag")
    table.add_column("Release")
    table.add_column("Missing assets")

    for action in result.actions:
        table.add_row(
            action.tag,
            ACTION_LABELS[action.state],
            ", ".join(action.missing) or "[dim]none[/dim]",
        )
    for tag in result.skipped:
        table.add_row(tag, "[dim]skip (not newer)[/dim]", "")

    console.print(table)

    if result.prune:
        console.print(f"\nWould delete {len(result.prune)} old release(s): {', '.join(result.prune)}")
