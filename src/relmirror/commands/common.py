"""Options and helpers shared by the commands."""

from pathlib import Path

import click
import httpx
from rich.console import Console

from relmirror.core.config import MirrorConfig, DEFAULT_MANIFEST_NAME
from relmirror.core.errors import ConfigError
from relmirror.core.planner import Planner
from relmirror.core.progress import NullProgressSink, RichProgressSink
from relmirror.core.registry import mirror_registry, origin_registry, parse_repo_spec
from relmirror.core.transfer import TransferEngine


console = Console()

CONFIG_OPTIONS = [
    click.option("--origin", "origin_spec", help="Origin repository as owner/repo or URL"),
    click.option("--origin-owner", envvar=["RELMIRROR_ORIGIN_OWNER", "GITHUB_OWNER"]),
    click.option("--origin-repo", envvar=["RELMIRROR_ORIGIN_REPO", "GITHUB_REPO"]),
    click.option(
        "--origin-token",
        envvar=["RELMIRROR_ORIGIN_TOKEN", "GITHUB_TOKEN"],
        help="Optional, raises the origin API rate limit",
    ),
    click.option("--mirror", "mirror_spec", help="Mirror repository as owner/repo or URL"),
    click.option("--mirror-owner", envvar=["RELMIRROR_MIRROR_OWNER", "GITEE_OWNER"]),
    click.option("--mirror-repo", envvar=["RELMIRROR_MIRROR_REPO", "GITEE_REPO"]),
    click.option("--mirror-token", envvar=["RELMIRROR_MIRROR_TOKEN", "GITEE_TOKEN"]),
    click.option(
        "--fetch-count",
        type=int,
        default=5,
        show_default=True,
        envvar="RELMIRROR_FETCH_COUNT",
        help="Number of latest origin releases to sync",
    ),
    click.option(
        "--retain-count",
        type=int,
        default=999,
        show_default=True,
        envvar="RELMIRROR_RETAIN_COUNT",
        help="Number of releases the mirror keeps",
    ),
    click.option(
        "--body-url-replace/--no-body-url-replace",
        default=True,
        show_default=True,
        envvar="RELMIRROR_BODY_URL_REPLACE",
        help="Point origin repository links in release notes at the mirror",
    ),
    click.option(
        "--manifest-url-replace/--no-manifest-url-replace",
        default=True,
        show_default=True,
        envvar="RELMIRROR_MANIFEST_URL_REPLACE",
        help="Point origin repository links in the update manifest at the mirror",
    ),
    click.option(
        "--manifest-name",
        default=DEFAULT_MANIFEST_NAME,
        show_default=True,
        envvar="RELMIRROR_MANIFEST_NAME",
        help="Asset name of the update manifest",
    ),
    click.option(
        "--skip-not-newer/--no-skip-not-newer",
        default=False,
        show_default=True,
        envvar="RELMIRROR_SKIP_NOT_NEWER",
        help="Skip origin releases whose tag is not newer than the mirror's highest tag",
    ),
    click.option(
        "--keep-staged/--delete-staged",
        default=True,
        show_default=True,
        envvar="RELMIRROR_KEEP_STAGED",
        help="Keep downloaded files after upload so later runs can reuse them",
    ),
    click.option(
        "--continue-on-error/--abort-on-error",
        default=False,
        show_default=True,
        envvar="RELMIRROR_CONTINUE_ON_ERROR",
        help="Carry on with the next release when a registry call fails",
    ),
    click.option(
        "--staging-dir",
        type=click.Path(file_okay=False, path_type=Path),
        envvar="RELMIRROR_STAGING_DIR",
        help="Where assets are downloaded [default: <tmp>/relmirror]",
    ),
    click.option(
        "--timeout",
        type=float,
        default=60.0,
        show_default=True,
        envvar="RELMIRROR_TIMEOUT",
        help="HTTP timeout in seconds",
    ),
]


def config_options(func):
    """Add every MirrorConfig option to a command."""
    for option in reversed(CONFIG_OPTIONS):
        func = option(func)
    return func


def build_config(options: dict, defaults: dict | None = None) -> MirrorConfig:
    """Turn command options into a validated MirrorConfig.

    ``defaults`` holds config file settings that have no command line option,
    such as the registry API addresses.
    """
    values = {**(defaults or {}), **options}
    for side in ("origin", "mirror"):
        spec = values.pop(f"{side}_spec", None)
        if spec:
            try:
                owner, repo = parse_repo_spec(spec)
            except ValueError as e:
                raise ConfigError(str(e)) from e
            values[f"{side}_owner"] = owner
            values[f"{side}_repo"] = repo

    config = MirrorConfig.from_mapping(values)
    return config.validate()


def fail(message: str, code: int = 1):
    console.print(f"[red]Error:[/red] {message}")
    raise SystemExit(code)


def make_planner(
    config: MirrorConfig,
    client: httpx.Client,
    show_progress: bool = True,
) -> Planner:
    """Wire the registries and transfer engine around one shared client."""
    progress = RichProgressSink(console) if show_progress else NullProgressSink()
    return Planner(
        config,
        origin_registry(config, client),
        mirror_registry(config, client),
        TransferEngine(config, client, progress),
    )
