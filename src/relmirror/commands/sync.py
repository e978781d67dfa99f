"""Sync command implementation."""

import click
from rich.table import Table

from relmirror.commands.common import build_config, config_options, console, fail, make_planner
from relmirror.core.errors import ConfigError, MirrorError
from relmirror.core.http import build_client
from relmirror.core.planner import SyncReport


def print_report(report: SyncReport) -> None:
    table = Table(show_header=True, header_style="bold")
    table.add_column("Result")
    table.add_column("Count", justify="right")
    table.add_column("Items")

    rows = [
        ("Created", report.created),
        ("Updated", report.updated),
        ("Unchanged", report.unchanged),
        ("Skipped (not newer)", report.skipped),
        ("Downloaded", report.downloaded),
        ("Reused from cache", report.reused),
        ("Uploaded", report.uploaded),
        ("Deleted", report.deleted),
    ]
    for label, items in rows:
        if items:
            table.add_row(label, str(len(items)), ", ".join(items))

    if table.row_count:
        console.print(table)

    for failure in report.failures:
        where = f"{failure.tag}/{failure.asset}" if failure.asset else failure.tag
        console.print(f"  [red]✗[/red] {where}: {failure.message}")


@click.command()
@config_options
@click.option("--no-progress", is_flag=True, help="Do not show transfer progress bars")
@click.pass_context
def sync(ctx: click.Context, no_progress: bool, **options):
    """Mirror the latest origin releases and prune old mirror releases."""
    try:
        config = build_config(options, ctx.default_map)
    except ConfigError as e:
        fail(str(e), code=2)

    console.print(
        f"[blue]Syncing[/blue] {config.origin_repo_url} → {config.mirror_repo_url}"
    )

    try:
        with build_client(config) as client:
            report = make_planner(config, client, show_progress=not no_progress).sync()
    except MirrorError as e:
        fail(str(e))

    print_report(report)

    if not report.ok:
        console.print(f"\n[yellow]Finished with {len(report.failures)} failure(s)[/yellow]")
        raise SystemExit(1)

    if report.changed:
        console.print("\n[green]✓[/green] Mirror is up to date")
    else:
        console.print("\n[green]✓[/green] Nothing to do, mirror already up to date")
