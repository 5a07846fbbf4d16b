"""Capabilities injected into the resolver and updater.

The resolver never reaches for ambient host state: repositories, project
configuration and archive retrieval are all passed in, so tests can use fakes.
"""

from pathlib import Path
from typing import Protocol
from typing import runtime_checkable

from .constraint import StabilityLevel
from .schema import Package


@runtime_checkable
class PackageSource(Protocol):
    """A repository capable of listing every version of a named package."""

    def find_packages(self, name: str) -> list[Package]:
        """Return all packages named ``name`` (case-insensitive), in repository order."""
        ...


class ProjectContext(Protocol):
    """The enclosing project an update runs for.

    Example implementations:
    - PyProjectContext: reads pyproject.toml [tool.selfupdate]
    - In-memory fakes in tests
    """

    @property
    def root(self) -> Path:
        """Project directory; updates are applied here and the lock file lives here."""
        ...

    @property
    def package_name(self) -> str | None:
        """Configured package name override, else the project's own name."""
        ...

    @property
    def required_version(self) -> str | None:
        """Configured version token used when none is given explicitly."""
        ...

    @property
    def minimum_stability(self) -> StabilityLevel:
        ...

    def repositories(self) -> list[PackageSource]:
        """Local installed-package index first, then the declared remote repositories."""
        ...


class ArchiveFetcherProtocol(Protocol):
    """Retrieves a package's distribution archive to a local file."""

    async def fetch(self, package: Package, target_dir: Path) -> Path:
        """Download the archive for ``package`` next to ``target_dir``.

        Raises:
            FetchError: If the archive cannot be retrieved
        """
        ...
