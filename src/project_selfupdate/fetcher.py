"""Archive fetcher - retrieve a package's distribution archive to a local file.

The archive is written next to the target directory, never inside it, so it
cannot end up in the extracted tree.
"""

import hashlib
import logging
import os
import shutil
import tempfile
from pathlib import Path
from urllib.parse import unquote
from urllib.parse import urlparse

import httpx

from .exceptions import FetchError
from .schema import Package

logger = logging.getLogger(__name__)

SUPPORTED_DIST_TYPES = ("zip",)


def reserve_archive_path(package: Package, target_dir: Path) -> Path:
    """Create a fresh, uniquely named archive file next to ``target_dir``.

    The file belongs to the running update; an existing archive with a similar
    name is never reused or overwritten.
    """
    target_dir.parent.mkdir(parents=True, exist_ok=True)
    fd, name = tempfile.mkstemp(
        prefix=f".{package.short_name}-{package.pretty_version}-", suffix=".zip", dir=target_dir.parent
    )
    os.close(fd)
    return Path(name)


class ArchiveFetcher:
    """
    Fetch distribution archives from local paths, ``file://`` or http(s) URLs.

    Args:
        client: Optional shared AsyncClient (tests inject one with a MockTransport)
        timeout: Request timeout in seconds when the fetcher creates its own client
    """

    def __init__(self, client: httpx.AsyncClient | None = None, timeout: float = 300.0):
        self.client = client
        self.timeout = timeout

    async def fetch(self, package: Package, target_dir: Path) -> Path:
        """
        Retrieve the archive for ``package``.

        Args:
            package: Resolved package with a distribution reference
            target_dir: Directory the archive will be extracted into

        Returns:
            Path to the local archive file

        Raises:
            FetchError: If the archive cannot be retrieved or fails verification
        """
        dist = package.dist
        if dist is None or not dist.url:
            raise FetchError(f"Package {package.pretty_string} has no distribution to download.")
        if dist.type not in SUPPORTED_DIST_TYPES:
            raise FetchError(
                f"Unsupported distribution type '{dist.type}' for {package.pretty_string}.",
                context={"type": dist.type},
            )

        dest_path = reserve_archive_path(package, target_dir)
        logger.info(f"Downloading {package.pretty_string} from {dist.url}")

        try:
            if dist.url.startswith("http://") or dist.url.startswith("https://"):
                await self._download(dist.url, dest_path)
            else:
                self._copy(dist.url, dest_path)

            if dist.shasum:
                self._verify(dest_path, dist.shasum)
        except BaseException:
            dest_path.unlink(missing_ok=True)
            raise

        logger.debug(f"Archive for {package.pretty_string} stored at {dest_path}")
        return dest_path

    async def _download(self, url: str, dest_path: Path) -> None:
        client = self.client or httpx.AsyncClient(follow_redirects=True, timeout=httpx.Timeout(self.timeout))
        try:
            async with client.stream("GET", url) as response:
                if response.status_code != 200:
                    raise FetchError(f"Download of {url} failed: HTTP {response.status_code}", context={"url": url})

                with open(dest_path, "wb") as f:
                    async for chunk in response.aiter_bytes(chunk_size=8192):
                        f.write(chunk)
        except httpx.HTTPError as e:
            raise FetchError(f"Download of {url} failed: {e}", context={"url": url}) from e
        except OSError as e:
            raise FetchError(f"Could not write {dest_path}: {e}", context={"url": url}) from e
        finally:
            if self.client is None:
                await client.aclose()

    def _copy(self, location: str, dest_path: Path) -> None:
        if location.startswith("file://"):
            location = unquote(urlparse(location).path)
        source = Path(location).expanduser()

        try:
            shutil.copyfile(source, dest_path)
        except OSError as e:
            raise FetchError(f"Could not copy archive from {source}: {e}", context={"path": str(source)}) from e

    def _verify(self, path: Path, shasum: str) -> None:
        hasher = hashlib.sha1()
        try:
            with open(path, "rb") as f:
                for chunk in iter(lambda: f.read(8192), b""):
                    hasher.update(chunk)
        except OSError as e:
            raise FetchError(f"Could not read {path} for verification: {e}", context={"path": str(path)}) from e

        if hasher.hexdigest() != shasum.lower():
            raise FetchError(
                f"Checksum verification failed for {path.name}",
                context={"expected": shasum, "actual": hasher.hexdigest()},
            )
