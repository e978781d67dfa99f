"""HTTP client construction."""

from urllib.parse import urlparse

import httpx

from relmirror import __version__
from relmirror.core.config import MirrorConfig


USER_AGENT = f"relmirror/{__version__}"

# Asset downloads from github.com redirect to these hosts
GITHUB_DOWNLOAD_HOSTS = (
    "objects.githubusercontent.com",
    "release-assets.githubusercontent.com",
)

ORIGIN_RETRIES = 3


def origin_hosts(config: MirrorConfig) -> list[str]:
    """Hosts that get automatic retries on connection failures."""
    hosts = [urlparse(config.origin_api).hostname, urlparse(config.origin_web).hostname]
    if hosts[1] == "github.com":
        hosts.extend(GITHUB_DOWNLOAD_HOSTS)
    return [h for h in dict.fromkeys(hosts) if h]


def build_client(config: MirrorConfig) -> httpx.Client:
    """Create the shared client used for every registry call and transfer.

    Only the origin hosts are mounted with a retrying transport; mirror
    failures surface immediately.
    """
    mounts = {
        f"all://{host}": httpx.HTTPTransport(retries=ORIGIN_RETRIES)
        for host in origin_hosts(config)
    }
    return httpx.Client(
        headers={"User-Agent": USER_AGENT},
        timeout=config.timeout,
        follow_redirects=True,
        mounts=mounts,
    )
