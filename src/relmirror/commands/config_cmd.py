"""Show-config command implementation."""

from dataclasses import fields

import click
from rich.table import Table

from relmirror.commands.common import build_config, config_options, console, fail
from relmirror.core.config import mask_token
from relmirror.core.errors import ConfigError


@click.command("show-config")
@config_options
@click.pass_context
def show_config(ctx: click.Context, **options):
    """Validate and print the effective settings, with tokens masked."""
    try:
        config = build_config(options, ctx.default_map)
    except ConfigError as e:
        fail(str(e), code=2)

    table = Table(show_header=True, header_style="bold")
    table.add_column("Setting")
    table.add_column("Value")

    for f in fields(config):
        value = getattr(config, f.name)
        if f.name.endswith("_token"):
            value = mask_token(value)
        table.add_row(f.name, str(value))

    console.print(table)
