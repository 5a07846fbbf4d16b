"""Archive applier - extract a fetched zip archive into the target directory.

Open failures are classified through a static table keyed by libzip error
codes, so every code has exactly one kind and message template.

Partially extracted files are not rolled back: when extraction fails midway
the target directory may already contain some of the archive's entries.
"""

import errno
import logging
import zipfile
import zlib
from dataclasses import dataclass
from enum import Enum
from enum import IntEnum
from pathlib import Path

from .exceptions import ArchiveCorruptedError
from .exceptions import CaseCollisionError
from .exceptions import ExtractionError
from .exceptions import ExtractionErrorKind

logger = logging.getLogger(__name__)


class ZipErrorCode(IntEnum):
    """libzip error codes reported when an archive cannot be opened."""

    CORRUPTED = -1
    SEEK = 4
    READ = 5
    WRITE = 6
    NOENT = 9
    EXISTS = 10
    OPEN = 11
    MEMORY = 14
    INVAL = 18
    NOZIP = 19
    INCONS = 21


ZIP_ERRORS: dict[int, tuple[ExtractionErrorKind, str]] = {
    ZipErrorCode.EXISTS: (ExtractionErrorKind.ALREADY_EXISTS, "File '{file}' already exists."),
    ZipErrorCode.INCONS: (ExtractionErrorKind.INCONSISTENT, "Zip archive '{file}' is inconsistent."),
    ZipErrorCode.INVAL: (ExtractionErrorKind.INVALID_ARGUMENT, "Invalid argument ({file})"),
    ZipErrorCode.MEMORY: (ExtractionErrorKind.ALLOCATION, "Malloc failure ({file})"),
    ZipErrorCode.NOENT: (ExtractionErrorKind.NOT_FOUND, "No such zip file: '{file}'"),
    ZipErrorCode.NOZIP: (ExtractionErrorKind.NOT_AN_ARCHIVE, "'{file}' is not a zip archive."),
    ZipErrorCode.OPEN: (ExtractionErrorKind.OPEN_FAILURE, "Can't open zip file: {file}"),
    ZipErrorCode.READ: (ExtractionErrorKind.READ_ERROR, "Zip read error ({file})"),
    ZipErrorCode.SEEK: (ExtractionErrorKind.SEEK_ERROR, "Zip seek error ({file})"),
    ZipErrorCode.WRITE: (ExtractionErrorKind.WRITE_FAILURE, "Zip write error ({file})"),
}

UNKNOWN_ERROR = (ExtractionErrorKind.UNKNOWN, "'{file}' is not a valid zip archive, got error code: {code}")


def extraction_error(code: int, file: Path | str) -> ExtractionError:
    """Build the ExtractionError for a libzip open error code."""
    kind, template = ZIP_ERRORS.get(code, UNKNOWN_ERROR)
    return ExtractionError(
        template.format(file=file, code=code),
        kind=kind,
        code=int(code),
        context={"file": str(file)},
    )


def open_error_code(error: Exception) -> int:
    """Translate an exception raised while opening an archive into a libzip error code."""
    if isinstance(error, zipfile.BadZipFile):
        message = str(error).lower()
        if "not a zip file" in message:
            return ZipErrorCode.NOZIP
        return ZipErrorCode.INCONS
    if isinstance(error, FileNotFoundError):
        return ZipErrorCode.NOENT
    if isinstance(error, FileExistsError):
        return ZipErrorCode.EXISTS
    if isinstance(error, MemoryError):
        return ZipErrorCode.MEMORY
    if isinstance(error, ValueError):
        return ZipErrorCode.INVAL
    if isinstance(error, (PermissionError, IsADirectoryError)):
        return ZipErrorCode.OPEN
    if isinstance(error, OSError):
        if error.errno == errno.ESPIPE:
            return ZipErrorCode.SEEK
        if error.errno == errno.EIO:
            return ZipErrorCode.READ
        return ZipErrorCode.OPEN
    return 0


class JobState(str, Enum):
    PENDING = "pending"
    EXTRACTED = "extracted"
    FAILED = "failed"


@dataclass
class ArchiveJob:
    """One fetched archive being applied to a target directory."""

    file_path: Path
    target_dir: Path
    state: JobState = JobState.PENDING


def _archive_size(file_path: Path) -> int | None:
    try:
        return file_path.stat().st_size
    except OSError:
        return None


def apply_archive(file_path: Path, target_dir: Path) -> None:
    """
    Extract a zip archive into ``target_dir``.

    Args:
        file_path: Fetched archive
        target_dir: Directory to extract into (created if needed)

    Raises:
        ArchiveCorruptedError: If the archive is missing or zero bytes
        ExtractionError: If the archive cannot be opened or extracted
        CaseCollisionError: If entries collide on a case-insensitive filesystem
    """
    size = _archive_size(file_path)
    if not size:
        raise ArchiveCorruptedError(
            f"'{file_path}' is a corrupted zip archive (0 bytes), try again.",
            context={"file": str(file_path)},
        )

    try:
        archive = zipfile.ZipFile(file_path)
    except (zipfile.BadZipFile, OSError, ValueError, MemoryError) as e:
        raise extraction_error(open_error_code(e), file_path) from e

    with archive:
        try:
            logger.debug(f"Extracting {len(archive.namelist())} entries from {file_path} into {target_dir}")
            archive.extractall(target_dir)
        except (FileExistsError, IsADirectoryError, NotADirectoryError) as e:
            raise CaseCollisionError(
                "The archive may contain identical file names with different capitalization "
                f"(which fails on case insensitive filesystems): {e}",
                context={"file": str(file_path), "target_dir": str(target_dir)},
            ) from e
        except (zipfile.BadZipFile, zlib.error, EOFError) as e:
            raise ExtractionError(
                "There was an error extracting the ZIP file, it is either corrupted or using an invalid format.",
                kind=ExtractionErrorKind.WRITE_FAILURE,
                code=int(ZipErrorCode.WRITE),
                context={"file": str(file_path)},
            ) from e


def cleanup_archive(file_path: Path) -> None:
    """Remove a fetched archive; failures are logged, never raised."""
    try:
        file_path.unlink(missing_ok=True)
    except OSError as e:
        logger.debug(f"Could not remove archive {file_path}: {e}")


def run_job(job: ArchiveJob) -> ArchiveJob:
    """Apply the job's archive and always remove the archive afterwards."""
    try:
        apply_archive(job.file_path, job.target_dir)
        job.state = JobState.EXTRACTED
    except BaseException:
        job.state = JobState.FAILED
        raise
    finally:
        cleanup_archive(job.file_path)
    return job
