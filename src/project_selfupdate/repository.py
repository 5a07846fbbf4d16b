"""Package repositories and the aggregate view over them.

Repositories are read-only: they list packages, nothing is downloaded or
written here. Search order is local installed index first, then remotes.
"""

import json
import logging
from collections.abc import Iterable
from pathlib import Path
from typing import Any

import httpx

from .exceptions import RepositoryError
from .protocols import PackageSource
from .schema import Package
from .schema import RepositoryConfig

logger = logging.getLogger(__name__)

DEFAULT_REPOSITORY_URL = "https://repo.packagist.org"


def _packages_from_entries(name: str, entries: Iterable[dict[str, Any]]) -> list[Package]:
    packages = []
    for entry in entries:
        try:
            packages.append(Package.from_metadata(name, entry))
        except (KeyError, ValueError) as e:
            logger.debug(f"Skipping unusable version of {name}: {e}")
    return packages


def _is_remote(location: str) -> bool:
    return location.startswith("http://") or location.startswith("https://")


class ArrayRepository:
    """In-memory repository over a fixed list of packages."""

    def __init__(self, packages: Iterable[Package] | None = None):
        self.packages = list(packages or [])

    def find_packages(self, name: str) -> list[Package]:
        name = name.lower()
        return [package for package in self.packages if package.name == name]

    def __repr__(self) -> str:
        return f"{type(self).__name__}({len(self.packages)} packages)"


class InstalledRepository(ArrayRepository):
    """
    Local index of installed packages.

    Index format (JSON), a bare list is accepted too:
    {
      "packages": [
        {"name": "acme/widget", "version": "1.0.0", "dist": {"type": "zip", "url": "..."}}
      ]
    }
    """

    def __init__(self, index_path: Path):
        self.index_path = index_path
        super().__init__(self._load())

    def _load(self) -> list[Package]:
        if not self.index_path.exists():
            logger.debug(f"No installed-package index at {self.index_path}")
            return []

        try:
            with open(self.index_path) as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise RepositoryError(
                f"Failed to read installed-package index {self.index_path}: {e}",
                context={"path": str(self.index_path)},
            ) from e

        entries = data.get("packages", []) if isinstance(data, dict) else data
        packages = []
        for entry in entries:
            if not isinstance(entry, dict):
                logger.debug(f"Skipping malformed entry in {self.index_path}: {entry!r}")
                continue
            packages.extend(_packages_from_entries(entry.get("name", ""), [entry]))
        logger.debug(f"Loaded {len(packages)} installed packages from {self.index_path}")
        return packages


class IndexRepository:
    """
    Static JSON package index read from a local path or an http(s) URL.

    Index format (JSON):
    {
      "packages": {
        "acme/widget": {
          "1.0.0": {"version": "1.0.0", "dist": {"type": "zip", "url": "..."}},
          "1.1.0-beta": {...}
        }
      }
    }
    Versions may also be given as a list instead of a version-keyed mapping.
    """

    def __init__(self, location: str, base_dir: Path | None = None, client: httpx.Client | None = None):
        self.location = location
        self.base_dir = base_dir
        self.client = client
        self._index: dict[str, Any] | None = None

    def _read(self) -> dict[str, Any]:
        if _is_remote(self.location):
            try:
                if self.client is not None:
                    response = self.client.get(self.location)
                else:
                    response = httpx.get(self.location, follow_redirects=True)
                response.raise_for_status()
                return response.json()
            except (httpx.HTTPError, json.JSONDecodeError) as e:
                raise RepositoryError(f"Failed to read package index {self.location}: {e}") from e

        path = Path(self.location.removeprefix("file://")).expanduser()
        if not path.is_absolute() and self.base_dir is not None:
            path = self.base_dir / path
        try:
            with open(path) as f:
                return json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise RepositoryError(f"Failed to read package index {path}: {e}", context={"path": str(path)}) from e

    def find_packages(self, name: str) -> list[Package]:
        if self._index is None:
            self._index = {key.lower(): value for key, value in self._read().get("packages", {}).items()}

        versions = self._index.get(name.lower())
        if not versions:
            return []
        entries = versions.values() if isinstance(versions, dict) else versions
        return _packages_from_entries(name.lower(), entries)

    def __repr__(self) -> str:
        return f"IndexRepository({self.location!r})"


def expand_minified(entries: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Expand Composer v2 minified metadata.

    Each entry only lists fields that changed since the previous one;
    the value ``"__unset"`` removes an inherited field.
    """
    expanded = []
    current: dict[str, Any] = {}
    for entry in entries:
        current = dict(current)
        for key, value in entry.items():
            if value == "__unset":
                current.pop(key, None)
            else:
                current[key] = value
        expanded.append(current)
    return expanded


class ComposerRepository:
    """Remote repository speaking the Composer v2 metadata API (``/p2/<name>.json``)."""

    def __init__(self, url: str = DEFAULT_REPOSITORY_URL, client: httpx.Client | None = None):
        self.url = url.rstrip("/")
        self.client = client

    def find_packages(self, name: str) -> list[Package]:
        name = name.lower()
        url = f"{self.url}/p2/{name}.json"
        logger.debug(f"Querying {url}")

        try:
            if self.client is not None:
                response = self.client.get(url)
            else:
                response = httpx.get(url, follow_redirects=True)
            if response.status_code == 404:
                return []
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, json.JSONDecodeError) as e:
            raise RepositoryError(f"Failed to query {self.url} for {name}: {e}", context={"url": url}) from e

        entries = data.get("packages", {}).get(name, [])
        if data.get("minified") == "composer/2.0":
            entries = expand_minified(entries)
        return _packages_from_entries(name, entries)

    def __repr__(self) -> str:
        return f"ComposerRepository({self.url!r})"


class CompositeRepository:
    """Unified view over several repositories, in priority order."""

    def __init__(self, repositories: Iterable[PackageSource]):
        self.repositories = list(repositories)

    def find_packages(self, name: str) -> list[Package]:
        packages = []
        for repository in self.repositories:
            found = repository.find_packages(name)
            logger.debug(f"{repository!r} provides {len(found)} versions of {name}")
            packages.extend(found)
        return packages


def create_repository(config: RepositoryConfig, base_dir: Path | None = None) -> PackageSource:
    """
    Create a repository from its pyproject.toml declaration.

    Supported types:
    - composer: Composer v2 metadata API at ``url``
    - index: static JSON index at ``url`` (path or http(s))
    - package: inline package metadata under ``package``

    Raises:
        RepositoryError: If the type is unknown or required fields are missing
    """
    if config.type == "composer":
        return ComposerRepository(config.url or DEFAULT_REPOSITORY_URL)

    if config.type == "index":
        if not config.url:
            raise RepositoryError("Repository of type 'index' requires a 'url'")
        return IndexRepository(config.url, base_dir=base_dir)

    if config.type == "package":
        if not config.package:
            raise RepositoryError("Repository of type 'package' requires a 'package' definition")
        entries = config.package if isinstance(config.package, list) else [config.package]
        packages = []
        for entry in entries:
            packages.extend(_packages_from_entries(entry.get("name", ""), [entry]))
        return ArrayRepository(packages)

    raise RepositoryError(f"Unknown repository type '{config.type}'", context={"type": config.type})


def default_repositories() -> list[PackageSource]:
    """Repositories searched when no project context is available."""
    return [ComposerRepository(DEFAULT_REPOSITORY_URL)]
