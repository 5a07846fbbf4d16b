"""Lock state tracking for applied package versions.

One lock file per target directory, named after the package's short name:
``<dir>/<shortName>.lock``. A lock whose name and version equal the resolved
package means there is nothing to update.

Lock format (JSON):
{
  "name": "acme/widget",
  "version": "1.0.0",
  "datetime": "2026-10-19 12:00:00"
}
"""

import json
import logging
import os
import tempfile
from dataclasses import asdict
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from .schema import Package

logger = logging.getLogger(__name__)

DATETIME_FORMAT = "%Y-%m-%d %H:%M:%S"


@dataclass
class LockRecord:
    """Last successfully applied package version for a directory."""

    name: str
    version: str
    datetime: str

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "LockRecord":
        """Create from dictionary."""
        return cls(name=data["name"], version=data["version"], datetime=data.get("datetime", ""))


def short_name(package_name: str) -> str:
    """Package name without its owning namespace (``acme/widget`` -> ``widget``)."""
    return package_name.split("/", 1)[-1]


class LockStateTracker:
    """
    Reads and writes lock records (sole mutation point for lock state).

    Example:
        >>> tracker = LockStateTracker()
        >>> lock = tracker.read(Path("."), "acme/widget")
        >>> if not tracker.is_current(package, lock):
        ...     tracker.write(Path("."), "acme/widget", package)
    """

    def lock_path(self, directory: Path, package_name: str) -> Path:
        return directory / f"{short_name(package_name)}.lock"

    def read(self, directory: Path, package_name: str) -> LockRecord | None:
        """
        Load the lock record for a package.

        Returns:
            Lock record, or None if there is no (usable) lock file
        """
        lock_path = self.lock_path(directory, package_name)
        if not lock_path.exists():
            return None

        try:
            with open(lock_path) as f:
                record = LockRecord.from_dict(json.load(f))
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.warning(f"Ignoring unreadable lock file {lock_path}: {e}")
            return None

        logger.debug(f"Loaded lock for {record.name} {record.version} from {lock_path}")
        return record

    @staticmethod
    def is_current(package: Package, lock: LockRecord | None) -> bool:
        """True iff the lock records exactly this package name and normalized version."""
        return lock is not None and lock.name == package.name and lock.version == package.version

    def write(
        self,
        directory: Path,
        package_name: str,
        package: Package,
        timestamp: datetime | None = None,
    ) -> LockRecord:
        """
        Persist the applied package, replacing any previous record atomically.

        The record is written to a temporary file in the same directory and
        moved into place, so readers see either the old or the new record.
        """
        record = LockRecord(
            name=package.name,
            version=package.version,
            datetime=(timestamp or datetime.now()).strftime(DATETIME_FORMAT),
        )
        lock_path = self.lock_path(directory, package_name)
        lock_path.parent.mkdir(parents=True, exist_ok=True)

        fd, tmp_name = tempfile.mkstemp(prefix=f".{lock_path.name}.", suffix=".tmp", dir=lock_path.parent)
        try:
            with os.fdopen(fd, "w") as f:
                json.dump(record.to_dict(), f, indent=4)
                f.write("\n")
            os.replace(tmp_name, lock_path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

        logger.debug(f"Saved lock for {record.name} {record.version} to {lock_path}")
        return record
