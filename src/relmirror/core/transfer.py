"""Download origin assets to a staging directory and upload them to the mirror."""

import logging
from pathlib import Path

import httpx

from relmirror.core.config import MirrorConfig
from relmirror.core.errors import TransferError
from relmirror.core.progress import NullProgressSink, ProgressSink
from relmirror.models.release import Asset, Release


logger = logging.getLogger(__name__)

CHUNK_SIZE = 8192


class TransferEngine:
    """Moves asset files from the origin to the mirror through local disk.

    Staged files are kept after upload unless ``config.keep_staged`` is off,
    so an interrupted run can pick up where it left off.
    """

    def __init__(
        self,
        config: MirrorConfig,
        client: httpx.Client,
        progress: ProgressSink | None = None,
    ):
        self.config = config
        self.client = client
        self.progress = progress or NullProgressSink()

    def staging_dir(self, release: Release) -> Path:
        """Directory for one release: <staging>/<owner>/<repo>/<tag>."""
        path = (
            self.config.staging_dir
            / self.config.origin_owner
            / self.config.origin_repo
            / release.tag_name
        )
        if not path.exists():
            path.mkdir(parents=True, exist_ok=True)
            logger.debug("Created staging directory %s", path)
        return path

    def staging_path(self, release: Release, asset: Asset) -> Path:
        return self.staging_dir(release) / asset.name

    @staticmethod
    def is_staged(path: Path, asset: Asset) -> bool:
        """True if ``path`` already holds a file of the asset's declared size."""
        if asset.size is None or not path.is_file():
            return False
        try:
            return path.stat().st_size == asset.size
        except OSError:
            return False

    def download(self, url: str, destination: Path) -> Path:
        """Stream ``url`` into ``destination``, replacing any existing file.

        A partial file is left behind if the transfer fails.
        """
        try:
            with self.client.stream("GET", url) as response:
                if not response.is_success:
                    raise TransferError(
                        f"Failed to download {url}: HTTP {response.status_code}"
                    )

                total = int(response.headers.get("content-length", 0)) or None
                self.progress.start(destination.name, total)
                try:
                    with open(destination, "wb") as f:
                        for chunk in response.iter_bytes(chunk_size=CHUNK_SIZE):
                            f.write(chunk)
                            self.progress.advance(len(chunk))
                finally:
                    self.progress.finish()
        except httpx.HTTPError as e:
            raise TransferError(f"Failed to download {url}: {e}") from e
        except OSError as e:
            raise TransferError(f"Failed to write {destination}: {e}") from e

        return destination

    def rewrite_urls(self, text: str) -> str:
        """Point links at the origin repository to the mirror repository."""
        return text.replace(self.config.origin_repo_url, self.config.mirror_repo_url)

    def rewrite_manifest(self, path: Path) -> bool:
        """Rewrite repository URLs inside the update manifest file.

        Only applies to the configured manifest name. Returns True if the
        file was rewritten.
        """
        if not self.config.manifest_url_replace or path.name != self.config.manifest_name:
            return False

        logger.info("Rewriting download URLs in %s", path.name)
        try:
            content = path.read_text(encoding="utf-8")
            path.write_text(self.rewrite_urls(content), encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise TransferError(f"Failed to rewrite {path}: {e}") from e
        return True

    def fetch(self, release: Release, asset: Asset) -> tuple[Path, bool]:
        """Make sure the asset is staged locally.

        Returns the staged path and whether a download actually happened.
        """
        path = self.staging_path(release, asset)
        if self.is_staged(path, asset):
            logger.info("Already staged with matching size, skipping download: %s", asset.name)
            # A run may have stopped between download and rewrite
            self.rewrite_manifest(path)
            return path, False

        logger.info("Downloading %s", asset.name)
        self.download(asset.browser_download_url, path)
        self.rewrite_manifest(path)
        return path, True

    def upload(self, url: str, token: str | None, path: Path) -> None:
        """Send ``path`` as the ``file`` part of a multipart POST."""
        if not path.is_file():
            raise TransferError(f"Staged file does not exist: {path}")

        headers = {"Authorization": f"token {token}"} if token else {}
        size = path.stat().st_size
        self.progress.start(f"Uploading {path.name}", size)
        try:
            with open(path, "rb") as f:
                response = self.client.post(
                    url,
                    headers=headers,
                    files={"file": (path.name, f, "application/octet-stream")},
                )
            self.progress.advance(size)
        except httpx.HTTPError as e:
            raise TransferError(f"Failed to upload {path.name}: {e}") from e
        except OSError as e:
            raise TransferError(f"Failed to read {path}: {e}") from e
        finally:
            self.progress.finish()

        if not response.is_success:
            raise TransferError(
                f"Failed to upload {path.name}: "
                f"HTTP {response.status_code} {response.text[:200]}"
            )
        logger.info("Uploaded %s", path.name)

    def discard(self, path: Path) -> None:
        """Delete a staged file after upload when the cache is not kept."""
        if self.config.keep_staged:
            return
        path.unlink(missing_ok=True)
        logger.debug("Removed staged file %s", path)
