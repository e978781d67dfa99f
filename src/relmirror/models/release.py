"""Release registry data models."""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class Asset:
    """Represents a downloadable file attached to a release."""

    name: str
    browser_download_url: str
    size: int | None = None
    content_type: str = "application/octet-stream"

    @classmethod
    def from_api_response(cls, data: dict) -> "Asset":
        """Create Asset from a registry API response."""
        url = data.get("browser_download_url") or ""
        return cls(
            name=data.get("name") or url.rsplit("/", 1)[-1],
            browser_download_url=url,
            size=data.get("size"),
            content_type=data.get("content_type") or "application/octet-stream",
        )


@dataclass(frozen=True)
class Release:
    """Represents a tagged release on one registry.

    ``id`` is local to the registry it was fetched from; releases on different
    registries are matched by ``tag_name`` only.
    """

    id: int
    tag_name: str
    name: str = ""
    body: str = ""
    prerelease: bool = False
    target_commitish: str = ""
    draft: bool = False
    assets: tuple[Asset, ...] = field(default_factory=tuple)

    @classmethod
    def from_api_response(cls, data: dict) -> "Release":
        """Create Release from a registry API response."""
        # Gitee and GitHub both return null for missing name/body
        assets = tuple(Asset.from_api_response(a) for a in data.get("assets") or [])
        return cls(
            id=data["id"],
            tag_name=data["tag_name"],
            name=data.get("name") or "",
            body=data.get("body") or "",
            prerelease=bool(data.get("prerelease", False)),
            target_commitish=data.get("target_commitish") or "",
            draft=bool(data.get("draft", False)),
            assets=assets,
        )

    def to_payload(self) -> dict:
        """Body for create/update requests. Assets are attached separately."""
        return {
            "tag_name": self.tag_name,
            "name": self.name,
            "body": self.body,
            "prerelease": self.prerelease,
            "target_commitish": self.target_commitish,
        }

    def asset_names(self) -> set[str]:
        return {asset.name for asset in self.assets}

    @property
    def version(self) -> str:
        """Get version string (tag without 'v' prefix if present)."""
        tag = self.tag_name
        if tag[:1] in ("v", "V"):
            return tag[1:]
        return tag
