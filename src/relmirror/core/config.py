"""Configuration for a mirror run."""

from dataclasses import dataclass, field, fields
from pathlib import Path
import tempfile

import yaml

from relmirror.core.errors import ConfigError


GITHUB_API_BASE = "https://api.github.com"
GITHUB_WEB_BASE = "https://github.com"
GITEE_API_BASE = "https://gitee.com/api/v5"
GITEE_WEB_BASE = "https://gitee.com"

DEFAULT_MANIFEST_NAME = "latest.json"


def default_staging_dir() -> Path:
    return Path(tempfile.gettempdir()) / "relmirror"


def mask_token(token: str | None) -> str:
    """Hide all but the first 8 characters of a credential."""
    if token is None:
        return "None"
    if len(token) > 8:
        return token[:8] + "*" * (len(token) - 8)
    return "*" * len(token)


@dataclass
class MirrorConfig:
    """Settings for syncing one origin repository to one mirror repository."""

    origin_owner: str
    origin_repo: str
    mirror_owner: str
    mirror_repo: str
    mirror_token: str | None = None
    origin_token: str | None = None

    # How many of the newest origin releases to look at per run
    fetch_count: int = 5
    # How many releases the mirror may hold (free tier storage is limited)
    retain_count: int = 999

    body_url_replace: bool = True
    manifest_url_replace: bool = True
    manifest_name: str = DEFAULT_MANIFEST_NAME
    skip_not_newer: bool = False

    keep_staged: bool = True
    continue_on_error: bool = False
    staging_dir: Path = field(default_factory=default_staging_dir)
    timeout: float = 60.0

    origin_api: str = GITHUB_API_BASE
    origin_web: str = GITHUB_WEB_BASE
    mirror_api: str = GITEE_API_BASE
    mirror_web: str = GITEE_WEB_BASE

    def __post_init__(self):
        self.staging_dir = Path(self.staging_dir)

    @classmethod
    def from_mapping(cls, data: dict) -> "MirrorConfig":
        """Build a config from a dict, ignoring unknown and None values."""
        known = {f.name for f in fields(cls)}
        values = {k: v for k, v in data.items() if k in known and v is not None}
        try:
            return cls(**values)
        except TypeError as e:
            raise ConfigError(f"Incomplete configuration: {e}") from e

    @property
    def origin_repo_url(self) -> str:
        return f"{self.origin_web.rstrip('/')}/{self.origin_owner}/{self.origin_repo}"

    @property
    def mirror_repo_url(self) -> str:
        return f"{self.mirror_web.rstrip('/')}/{self.mirror_owner}/{self.mirror_repo}"

    def validate(self) -> "MirrorConfig":
        """Check the settings, raising ConfigError on the first problem."""
        for name in ("origin_owner", "origin_repo", "mirror_owner", "mirror_repo"):
            if not getattr(self, name):
                raise ConfigError(f"{name} must not be empty.")

        if not self.mirror_token:
            raise ConfigError("mirror_token is required to write to the mirror.")

        if self.fetch_count < 1:
            raise ConfigError("fetch_count must be greater than 0.")

        if self.retain_count < 1:
            raise ConfigError("retain_count must be greater than 0.")

        if self.retain_count < self.fetch_count:
            raise ConfigError(
                f"retain_count ({self.retain_count}) must be greater than or "
                f"equal to fetch_count ({self.fetch_count})."
            )

        if self.timeout <= 0:
            raise ConfigError("timeout must be positive.")

        return self

    def __str__(self) -> str:
        parts = []
        for f in fields(self):
            value = getattr(self, f.name)
            if f.name.endswith("_token"):
                value = mask_token(value)
            parts.append(f"{f.name}: {value}")
        return ", ".join(parts)


def load_config_file(path: Path) -> dict:
    """Load settings from a YAML file.

    The file is a flat mapping of MirrorConfig field names, or the same
    mapping nested under a ``relmirror`` key.
    """
    try:
        with open(path) as f:
            data = yaml.safe_load(f) or {}
    except OSError as e:
        raise ConfigError(f"Cannot read config file {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping")

    if isinstance(data.get("relmirror"), dict):
        data = data["relmirror"]

    known = {f.name for f in fields(MirrorConfig)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigError(f"Unknown settings in {path}: {', '.join(unknown)}")

    return data
