"""REST clients for the origin (GitHub) and mirror (Gitee) release registries."""

import logging
import re

import httpx

from relmirror.core.config import (
    GITEE_API_BASE,
    GITEE_WEB_BASE,
    GITHUB_API_BASE,
    GITHUB_WEB_BASE,
    MirrorConfig,
)
from relmirror.core.errors import NetworkError, RegistryError
from relmirror.models.release import Release


logger = logging.getLogger(__name__)

# Gitee caps per_page at 100
MAX_PAGE_SIZE = 100


def parse_repo_spec(spec: str) -> tuple[str, str]:
    """Parse a repo spec into (owner, repo).

    Accepts:
    - owner/repo
    - https://github.com/owner/repo
    - gitee.com/owner/repo
    """
    url_pattern = r"(?:https?://)?(?:github\.com|gitee\.com)/([^/]+)/([^/]+?)(?:\.git)?/?$"
    match = re.match(url_pattern, spec)
    if match:
        return match.group(1), match.group(2)

    parts = spec.split("/")
    if len(parts) == 2 and all(parts):
        return parts[0], parts[1]

    raise ValueError(f"Invalid repo spec: {spec}. Use 'owner/repo' or a repository URL.")


def tag_names(releases: list[Release]) -> str:
    """Comma separated tags, for log lines."""
    return ", ".join(release.tag_name for release in releases)


class RegistryClient:
    """Client for the releases API of one repository on one registry."""

    def __init__(
        self,
        name: str,
        api_base: str,
        web_base: str,
        owner: str,
        repo: str,
        token: str | None = None,
        client: httpx.Client | None = None,
        auth_scheme: str = "token",
        extra_headers: dict | None = None,
    ):
        self.name = name
        self.api_base = api_base.rstrip("/")
        self.web_base = web_base.rstrip("/")
        self.owner = owner
        self.repo = repo
        self.token = token
        self.auth_scheme = auth_scheme
        self.extra_headers = extra_headers or {}
        self._owns_client = client is None
        self.client = client or httpx.Client(timeout=60.0, follow_redirects=True)

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()

    def close(self) -> None:
        if self._owns_client:
            self.client.close()

    @property
    def releases_url(self) -> str:
        return f"{self.api_base}/repos/{self.owner}/{self.repo}/releases"

    @property
    def repo_url(self) -> str:
        """Canonical web address of the repository."""
        return f"{self.web_base}/{self.owner}/{self.repo}"

    def release_url(self, release_id: int) -> str:
        return f"{self.releases_url}/{release_id}"

    def _headers(self, require_token: bool = False) -> dict:
        headers = dict(self.extra_headers)
        if self.token:
            headers["Authorization"] = f"{self.auth_scheme} {self.token}"
        elif require_token:
            raise RegistryError(f"{self.name}: a token is required to modify releases")
        return headers

    def _request(
        self,
        method: str,
        url: str,
        require_token: bool = False,
        **kwargs,
    ) -> httpx.Response:
        headers = self._headers(require_token)
        logger.debug("%s %s", method, url)
        try:
            response = self.client.request(method, url, headers=headers, **kwargs)
        except httpx.TransportError as e:
            raise NetworkError(f"{self.name}: {method} {url} failed: {e}") from e

        if response.status_code == 404:
            raise RegistryError(
                f"{self.name}: {self.owner}/{self.repo} or release not found "
                f"({method} {url})",
                status_code=404,
            )
        if response.status_code in (401, 403):
            raise RegistryError(
                f"{self.name}: access denied or rate limited ({method} {url}): "
                f"{response.text[:200]}",
                status_code=response.status_code,
            )
        if not response.is_success:
            raise RegistryError(
                f"{self.name}: {method} {url} returned HTTP {response.status_code}: "
                f"{response.text[:200]}",
                status_code=response.status_code,
            )
        return response

    def _json(self, response: httpx.Response):
        try:
            return response.json()
        except ValueError as e:
            raise RegistryError(
                f"{self.name}: invalid JSON from {response.request.url}"
            ) from e

    def _release(self, response: httpx.Response) -> Release:
        data = self._json(response)
        try:
            return Release.from_api_response(data)
        except (KeyError, TypeError) as e:
            raise RegistryError(f"{self.name}: unexpected release payload: {e}") from e

    def list_releases(
        self,
        page_size: int = 30,
        page: int = 1,
        include_drafts: bool = False,
    ) -> list[Release]:
        """Get one page of releases, sorted by id ascending (oldest first)."""
        response = self._request(
            "GET",
            self.releases_url,
            params={"per_page": page_size, "page": page},
        )

        data = self._json(response)
        if not isinstance(data, list):
            raise RegistryError(f"{self.name}: expected a list of releases")

        releases = []
        for item in data:
            try:
                release = Release.from_api_response(item)
            except (KeyError, TypeError) as e:
                raise RegistryError(f"{self.name}: unexpected release payload: {e}") from e
            if release.draft and not include_drafts:
                logger.debug("%s: skipping draft release %s", self.name, release.tag_name)
                continue
            releases.append(release)

        releases.sort(key=lambda r: r.id)
        return releases

    def iter_releases(
        self,
        page_size: int = MAX_PAGE_SIZE,
        include_drafts: bool = False,
    ) -> list[Release]:
        """Get every release by walking pages until a short page comes back.

        Also stops when a full page holds only ids already seen, which is
        what a registry that ignores the page parameter returns.
        """
        releases: dict[int, Release] = {}
        page = 1
        while True:
            batch = self.list_releases(
                page_size=page_size, page=page, include_drafts=True
            )
            new_ids = {r.id for r in batch} - releases.keys()
            for release in batch:
                releases[release.id] = release
            if len(batch) < page_size:
                break
            if not new_ids:
                logger.warning(
                    "%s: page %d repeated earlier releases, stopping", self.name, page
                )
                break
            page += 1

        result = sorted(releases.values(), key=lambda r: r.id)
        if not include_drafts:
            result = [r for r in result if not r.draft]
        return result

    def create_release(self, release: Release) -> Release:
        """Create a release and return the registry's copy with its new id."""
        response = self._request(
            "POST", self.releases_url, require_token=True, json=release.to_payload()
        )
        return self._release(response)

    def update_release(self, release_id: int, release: Release) -> Release:
        response = self._request(
            "PATCH",
            self.release_url(release_id),
            require_token=True,
            json=release.to_payload(),
        )
        return self._release(response)

    def delete_release(self, release_id: int) -> None:
        self._request("DELETE", self.release_url(release_id), require_token=True)


class GitHubRegistry(RegistryClient):
    """GitHub releases API."""

    def __init__(
        self,
        owner: str,
        repo: str,
        token: str | None = None,
        client: httpx.Client | None = None,
        api_base: str = GITHUB_API_BASE,
        web_base: str = GITHUB_WEB_BASE,
    ):
        super().__init__(
            "github",
            api_base,
            web_base,
            owner,
            repo,
            token=token,
            client=client,
            auth_scheme="Bearer",
            extra_headers={
                "Accept": "application/vnd.github+json",
                "X-GitHub-Api-Version": "2022-11-28",
            },
        )


class GiteeRegistry(RegistryClient):
    """Gitee v5 releases API."""

    def __init__(
        self,
        owner: str,
        repo: str,
        token: str | None = None,
        client: httpx.Client | None = None,
        api_base: str = GITEE_API_BASE,
        web_base: str = GITEE_WEB_BASE,
    ):
        super().__init__(
            "gitee",
            api_base,
            web_base,
            owner,
            repo,
            token=token,
            client=client,
        )

    def attach_url(self, release_id: int) -> str:
        """Endpoint that accepts multipart asset uploads for a release."""
        return f"{self.release_url(release_id)}/attach_files"


def origin_registry(
    config: MirrorConfig,
    client: httpx.Client | None = None,
) -> GitHubRegistry:
    return GitHubRegistry(
        config.origin_owner,
        config.origin_repo,
        token=config.origin_token,
        client=client,
        api_base=config.origin_api,
        web_base=config.origin_web,
    )


def mirror_registry(
    config: MirrorConfig,
    client: httpx.Client | None = None,
) -> GiteeRegistry:
    return GiteeRegistry(
        config.mirror_owner,
        config.mirror_repo,
        token=config.mirror_token,
        client=client,
        api_base=config.mirror_api,
        web_base=config.mirror_web,
    )
