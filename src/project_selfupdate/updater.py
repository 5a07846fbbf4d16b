"""Update service shared by the check-update and self-update commands.

Process for an update:
1. Resolve the package (PackageResolver)
2. Compare with the lock record; stop if current
3. Fetch the archive
4. Extract it into the target directory, removing the archive afterwards
5. Write the lock record

update() only returns once every step has finished, so callers never
report success before extraction and the lock write are done.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from .archive import ArchiveJob
from .archive import run_job
from .fetcher import ArchiveFetcher
from .lock import LockRecord
from .lock import LockStateTracker
from .protocols import ArchiveFetcherProtocol
from .resolver import PackageResolver
from .schema import Package

logger = logging.getLogger(__name__)


@dataclass
class UpdateCheck:
    package: Package
    lock: LockRecord | None
    is_current: bool


@dataclass
class UpdateResult:
    package: Package
    applied: bool
    lock: LockRecord | None = None


class SelfUpdater:
    """
    Resolve, compare and apply package updates for one target directory.

    Example:
        >>> context = PyProjectContext.discover(Path.cwd())
        >>> updater = SelfUpdater(PackageResolver(context), target_dir=context.root)
        >>> result = await updater.update(version="^1.0")
        >>> print(result.applied)
    """

    def __init__(
        self,
        resolver: PackageResolver,
        target_dir: Path,
        fetcher: ArchiveFetcherProtocol | None = None,
        tracker: LockStateTracker | None = None,
    ):
        self.resolver = resolver
        self.target_dir = target_dir
        self.fetcher = fetcher or ArchiveFetcher()
        self.tracker = tracker or LockStateTracker()

    def check(self, name: str | None = None, version: str | None = None) -> UpdateCheck:
        """Resolve the package and compare it with the lock record (never mutates state)."""
        package = self.resolver.resolve(name, version)
        lock = self.tracker.read(self.target_dir, package.name)
        return UpdateCheck(package=package, lock=lock, is_current=self.tracker.is_current(package, lock))

    async def update(self, name: str | None = None, version: str | None = None) -> UpdateResult:
        """
        Bring the target directory to the resolved package version.

        Returns:
            UpdateResult with ``applied=False`` when the lock was already current

        Raises:
            ConfigurationError, PackageNotFoundError, RepositoryError: Resolution failed
            FetchError: The archive could not be retrieved
            ArchiveCorruptedError, ExtractionError: The archive could not be applied
        """
        status = await asyncio.to_thread(self.check, name, version)
        package = status.package
        if status.is_current:
            logger.info(f"{package.pretty_string} is already applied to {self.target_dir}")
            return UpdateResult(package=package, applied=False, lock=status.lock)

        file_path = await self.fetcher.fetch(package, self.target_dir)
        job = ArchiveJob(file_path=file_path, target_dir=self.target_dir)
        await asyncio.to_thread(run_job, job)
        logger.info(f"Extracted {package.pretty_string} into {self.target_dir}")

        lock = self.tracker.write(self.target_dir, package.name, package, datetime.now())
        return UpdateResult(package=package, applied=True, lock=lock)
