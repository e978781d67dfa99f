"""Shared fixtures for the relmirror test suite."""

from dataclasses import replace
import re

import httpx
import pytest

from relmirror.core.config import MirrorConfig
from relmirror.core.planner import Planner
from relmirror.core.transfer import TransferEngine
from relmirror.models.release import Asset, Release


ORIGIN_DOWNLOAD = "https://github.com/acme/tool/releases/download"
MIRROR_API = "https://gitee.com/api/v5/repos/acme/tool/releases"


def make_release(release_id, tag, assets=(), **kwargs) -> Release:
    """Build a Release with assets given as (name, size) pairs or Asset objects."""
    built = []
    for asset in assets:
        if isinstance(asset, Asset):
            built.append(asset)
        else:
            name, size = asset
            built.append(Asset(name, f"{ORIGIN_DOWNLOAD}/{tag}/{name}", size))
    kwargs.setdefault("name", tag)
    kwargs.setdefault("body", f"Release {tag}")
    return Release(id=release_id, tag_name=tag, assets=tuple(built), **kwargs)


class FakeRegistry:
    """In-memory stand-in for a RegistryClient."""

    def __init__(self, name="gitee", releases=(), token="mirror-token"):
        self.name = name
        self.token = token
        self.releases = {r.id: r for r in releases}
        self.next_id = max(self.releases, default=0) + 1000
        self.calls = []
        self.fail_on = {}

    def add(self, *releases):
        for release in releases:
            self.releases[release.id] = release
            self.next_id = max(self.next_id, release.id + 1)
        return self

    def _maybe_fail(self, method, tag):
        if (method, tag) in self.fail_on:
            raise self.fail_on[(method, tag)]

    def list_releases(self, page_size=30, page=1, include_drafts=False):
        self.calls.append(("list", page_size))
        ordered = sorted(self.releases.values(), key=lambda r: r.id)
        return ordered[-page_size:] if page == 1 else []

    def iter_releases(self, page_size=100, include_drafts=False):
        self.calls.append(("iter", None))
        return sorted(self.releases.values(), key=lambda r: r.id)

    def create_release(self, release):
        self._maybe_fail("create", release.tag_name)
        self.calls.append(("create", release.tag_name))
        created = replace(release, id=self.next_id, assets=())
        self.next_id += 1
        self.releases[created.id] = created
        return created

    def update_release(self, release_id, release):
        self._maybe_fail("update", release.tag_name)
        self.calls.append(("update", release.tag_name))
        self.releases[release_id] = replace(release, id=release_id)
        return self.releases[release_id]

    def delete_release(self, release_id):
        tag = self.releases[release_id].tag_name
        self._maybe_fail("delete", tag)
        self.calls.append(("delete", tag))
        del self.releases[release_id]

    def attach_url(self, release_id):
        return f"{MIRROR_API}/{release_id}/attach_files"

    def writes(self):
        return [c for c in self.calls if c[0] in ("create", "update", "delete")]

    def by_tag(self, tag):
        for release in self.releases.values():
            if release.tag_name == tag:
                return release
        return None


class MirrorWorld:
    """Origin files served over a mock transport, uploads landing on a fake mirror."""

    def __init__(self, mirror: FakeRegistry):
        self.mirror = mirror
        self.files: dict[str, bytes] = {}
        self.downloads: list[str] = []
        self.uploads: list[tuple[int, str]] = []
        self.upload_status = 201

    def serve(self, release: Release, content: dict[str, bytes]) -> None:
        for asset in release.assets:
            self.files[asset.browser_download_url] = content[asset.name]

    def handler(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        if request.method == "GET" and url in self.files:
            self.downloads.append(url)
            return httpx.Response(200, content=self.files[url])

        match = re.search(r"/releases/(\d+)/attach_files$", url)
        if request.method == "POST" and match:
            if self.upload_status >= 400:
                return httpx.Response(self.upload_status, text="upload rejected")
            body = request.read()
            name = re.search(rb'filename="([^"]+)"', body).group(1).decode()
            release_id = int(match.group(1))
            self.uploads.append((release_id, name))
            release = self.mirror.releases[release_id]
            asset = Asset(name, f"https://gitee.com/acme/tool/releases/download/{release.tag_name}/{name}")
            self.mirror.releases[release_id] = replace(release, assets=release.assets + (asset,))
            return httpx.Response(201, json={"name": name})

        return httpx.Response(404, text="not found")


@pytest.fixture
def config(tmp_path):
    return MirrorConfig(
        origin_owner="acme",
        origin_repo="tool",
        mirror_owner="acme",
        mirror_repo="tool",
        mirror_token="mirror-token",
        fetch_count=5,
        retain_count=10,
        staging_dir=tmp_path / "staging",
    )


@pytest.fixture
def origin():
    return FakeRegistry(name="github", token=None)


@pytest.fixture
def mirror():
    return FakeRegistry(name="gitee")


@pytest.fixture
def world(mirror):
    return MirrorWorld(mirror)


@pytest.fixture
def http_client(world):
    client = httpx.Client(transport=httpx.MockTransport(world.handler))
    yield client
    client.close()


@pytest.fixture
def planner(config, origin, mirror, http_client):
    return Planner(config, origin, mirror, TransferEngine(config, http_client))

