"""Package resolver - select exactly one package for a name and version token.

Repositories and project configuration are injected (ProjectContext,
PackageSource); the resolver never reads or writes lock state.
"""

import logging
import warnings
from collections.abc import Callable

from .constraint import StabilityLevel
from .constraint import VersionConstraint
from .constraint import parse_version
from .constraint import parse_version_token
from .exceptions import ConfigurationError
from .exceptions import MultipleMatchesAdvisory
from .exceptions import PackageNotFoundError
from .protocols import PackageSource
from .protocols import ProjectContext
from .repository import CompositeRepository
from .repository import default_repositories
from .schema import PLACEHOLDER_NAME
from .schema import Package

logger = logging.getLogger(__name__)


def build_repository_set(
    project: ProjectContext | None,
    defaults: Callable[[], list[PackageSource]] = default_repositories,
) -> tuple[CompositeRepository, StabilityLevel]:
    """
    Build the aggregate repository and default minimum stability.

    With a project: local installed index + declared repositories, project stability.
    Without one: the built-in default repositories at ``stable``.
    """
    if project is not None:
        return CompositeRepository(project.repositories()), project.minimum_stability

    repositories = defaults()
    logger.info(
        "No project found in the current directory, searching packages from "
        + ", ".join(repr(repository) for repository in repositories)
    )
    return CompositeRepository(repositories), StabilityLevel.STABLE


def select_best_candidate(packages: list[Package]) -> Package | None:
    """
    Pick the best of several matching packages.

    Highest version wins; ties go to the most stable classification, then to
    the earliest entry (repositories are searched local first, in order).

    Returns:
        Best package, or None when there is nothing to choose from
    """
    best: Package | None = None
    best_key = None
    for package in packages:
        key = (parse_version(package.version), package.stability)
        if best_key is None or key > best_key:
            best, best_key = package, key
    return best


class PackageResolver:
    """
    Resolve a package name and version token to a single package.

    Example:
        >>> resolver = PackageResolver(project=PyProjectContext.discover(Path.cwd()))
        >>> package = resolver.resolve(version="^2.0@beta")
        >>> print(package.pretty_string)
    """

    def __init__(
        self,
        project: ProjectContext | None = None,
        default_repositories: Callable[[], list[PackageSource]] = default_repositories,
    ):
        self.project = project
        self.default_repositories = default_repositories

    def package_name(self, name: str | None = None) -> str:
        """Effective package name: explicit, else configured, else the project's own name."""
        if not name and self.project is not None:
            name = self.project.package_name

        if not name or name == PLACEHOLDER_NAME:
            raise ConfigurationError(
                "Unable to determine the package name. Please, add a \"package\" option to the "
                "[tool.selfupdate] section of your pyproject.toml file and try again."
            )
        return name

    def version_token(self, version: str | None = None) -> str:
        """Effective version token: explicit, else the configured requirement."""
        if not version and self.project is not None:
            version = self.project.required_version

        if not version:
            raise ConfigurationError(
                "Unable to determine the package require version. Please, add a \"require\" option to the "
                "[tool.selfupdate] section of your pyproject.toml file and try again."
            )
        return version

    def find_matches(
        self,
        name: str,
        constraint: VersionConstraint,
        min_stability: StabilityLevel,
        repository: PackageSource,
    ) -> list[Package]:
        """All packages named ``name`` at or above ``min_stability`` satisfying ``constraint``."""
        return [
            package
            for package in repository.find_packages(name.lower())
            if package.stability >= min_stability and constraint.matches(package.version)
        ]

    def resolve(self, name: str | None = None, version: str | None = None) -> Package:
        """
        Resolve to exactly one package.

        Args:
            name: Package name (owner/name); defaults to project configuration
            version: Version token such as ``^2.0@beta``; defaults to project configuration

        Returns:
            Selected package

        Raises:
            ConfigurationError: If the name or version cannot be determined or parsed
            PackageNotFoundError: If nothing matches
            RepositoryError: If a repository cannot be read
        """
        name = self.package_name(name)
        version = self.version_token(version)
        logger.info(f'Searching for "{name}" package, version "{version}"...')

        repository, default_stability = build_repository_set(self.project, self.default_repositories)
        constraint, min_stability = parse_version_token(version, default_stability)
        matches = self.find_matches(name, constraint, min_stability, repository)

        if not matches:
            raise PackageNotFoundError(
                f"Could not find a package matching {name}.",
                context={"package": name, "constraint": str(constraint), "stability": str(min_stability)},
            )

        if len(matches) == 1:
            package = matches[0]
            logger.info(f"Found an exact match {package.pretty_string}.")
            return package

        package = select_best_candidate(matches)
        if package is None:
            package = matches[0]

        message = (
            f"Found multiple matches, selected {package.pretty_string}. "
            "Please use a more specific constraint to pick a different package."
        )
        logger.warning(message)
        warnings.warn(message, MultipleMatchesAdvisory, stacklevel=2)
        return package
