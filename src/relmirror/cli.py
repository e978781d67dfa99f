"""CLI entry point for relmirror."""

from pathlib import Path

import click

from relmirror import __version__
from relmirror.commands import config_cmd, plan, sync
from relmirror.core.config import load_config_file
from relmirror.core.errors import ConfigError
from relmirror.core.logging import setup_logging, verbosity_to_level


def _load_defaults(ctx: click.Context, param: click.Parameter, value: Path | None):
    """Use the YAML file as default values for every subcommand."""
    if value is None:
        return value
    try:
        data = load_config_file(value)
    except ConfigError as e:
        raise click.BadParameter(str(e), ctx=ctx, param=param) from e
    ctx.default_map = {name: data for name in ctx.command.commands}
    return value


@click.group()
@click.version_option(version=__version__, prog_name="relmirror")
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    envvar="RELMIRROR_CONFIG",
    callback=_load_defaults,
    is_eager=True,
    expose_value=False,
    help="YAML file with default settings",
)
@click.option("--verbose", "-v", count=True, help="More log output (repeatable)")
@click.option("--quiet", "-q", count=True, help="Less log output (repeatable)")
def main(verbose: int, quiet: int):
    """Relmirror - mirror GitHub releases to Gitee.

    Copies release metadata and assets from an origin repository to a
    mirror repository, then deletes the oldest mirror releases beyond the
    retain count.

    Examples:

        relmirror sync --origin hepengju/redis-me --mirror hepengju/redis-me

        relmirror -c mirror.yaml plan

        relmirror show-config --origin owner/repo --mirror owner/repo
    """
    setup_logging(verbosity_to_level(verbose, quiet))


# Register commands
main.add_command(sync.sync)
main.add_command(plan.plan)
main.add_command(config_cmd.show_config)


if __name__ == "__main__":
    main()
