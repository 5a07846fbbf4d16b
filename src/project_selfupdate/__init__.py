"""project-selfupdate - Resolve a package and apply its distribution to a project.

Repositories, project configuration and archive retrieval are injected
capabilities; the lock file makes repeated updates idempotent.
"""

from .archive import ArchiveJob
from .archive import apply_archive
from .archive import cleanup_archive
from .constraint import StabilityLevel
from .constraint import VersionConstraint
from .constraint import normalize_version
from .constraint import parse_version_token
from .constraint import stability_of
from .exceptions import ArchiveCorruptedError
from .exceptions import CaseCollisionError
from .exceptions import ConfigurationError
from .exceptions import ExtractionError
from .exceptions import ExtractionErrorKind
from .exceptions import FetchError
from .exceptions import MultipleMatchesAdvisory
from .exceptions import PackageNotFoundError
from .exceptions import RepositoryError
from .exceptions import SelfUpdateError
from .fetcher import ArchiveFetcher
from .lock import LockRecord
from .lock import LockStateTracker
from .project import PyProjectContext
from .protocols import ArchiveFetcherProtocol
from .protocols import PackageSource
from .protocols import ProjectContext
from .repository import ArrayRepository
from .repository import ComposerRepository
from .repository import CompositeRepository
from .repository import IndexRepository
from .repository import InstalledRepository
from .resolver import PackageResolver
from .schema import Distribution
from .schema import Package
from .schema import ProjectConfig
from .updater import SelfUpdater
from .updater import UpdateCheck
from .updater import UpdateResult

__all__ = [
    # Data model
    "Package",
    "Distribution",
    "ProjectConfig",
    # Versions
    "StabilityLevel",
    "VersionConstraint",
    "normalize_version",
    "parse_version_token",
    "stability_of",
    # Repositories
    "PackageSource",
    "ArrayRepository",
    "InstalledRepository",
    "IndexRepository",
    "ComposerRepository",
    "CompositeRepository",
    # Resolution
    "ProjectContext",
    "PyProjectContext",
    "PackageResolver",
    # Lock file
    "LockRecord",
    "LockStateTracker",
    # Fetch and apply
    "ArchiveFetcherProtocol",
    "ArchiveFetcher",
    "ArchiveJob",
    "apply_archive",
    "cleanup_archive",
    # Update service
    "SelfUpdater",
    "UpdateCheck",
    "UpdateResult",
    # Exceptions
    "SelfUpdateError",
    "ConfigurationError",
    "PackageNotFoundError",
    "RepositoryError",
    "FetchError",
    "ArchiveCorruptedError",
    "ExtractionError",
    "ExtractionErrorKind",
    "CaseCollisionError",
    "MultipleMatchesAdvisory",
]

__version__ = "0.1.0"
