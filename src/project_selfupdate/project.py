"""Project context backed by pyproject.toml."""

import logging
from pathlib import Path

from .constraint import StabilityLevel
from .protocols import PackageSource
from .repository import InstalledRepository
from .repository import create_repository
from .schema import ProjectConfig

logger = logging.getLogger(__name__)

DEFAULT_INSTALLED_INDEX = ".selfupdate/installed.json"


class PyProjectContext:
    """
    ProjectContext reading [tool.selfupdate] from a project's pyproject.toml.

    Example:
        >>> context = PyProjectContext.discover(Path.cwd())
        >>> if context is not None:
        ...     print(context.package_name, context.required_version)
    """

    def __init__(self, root: Path, config: ProjectConfig):
        self._root = root
        self.config = config

    @classmethod
    def discover(cls, directory: Path) -> "PyProjectContext | None":
        """Load the context from ``directory/pyproject.toml``, or None when there is no project."""
        pyproject_path = directory / "pyproject.toml"
        if not pyproject_path.exists():
            logger.debug(f"No pyproject.toml in {directory}")
            return None
        return cls(directory.resolve(), ProjectConfig.from_pyproject(pyproject_path))

    @property
    def root(self) -> Path:
        return self._root

    @property
    def package_name(self) -> str | None:
        return self.config.package_name

    @property
    def required_version(self) -> str | None:
        return self.config.require

    @property
    def minimum_stability(self) -> StabilityLevel:
        return self.config.minimum_stability

    def repositories(self) -> list[PackageSource]:
        installed = Path(self.config.installed or DEFAULT_INSTALLED_INDEX).expanduser()
        if not installed.is_absolute():
            installed = self._root / installed

        repositories: list[PackageSource] = [InstalledRepository(installed)]
        repositories.extend(create_repository(repo, base_dir=self._root) for repo in self.config.repositories)
        return repositories
