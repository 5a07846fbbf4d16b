"""Self-update exceptions.

Every fatal error derives from SelfUpdateError so the command boundary can
report it uniformly. MultipleMatchesAdvisory is a warning, not an error.
"""

from enum import Enum


class SelfUpdateError(Exception):
    """Base exception for self-update operations."""

    def __init__(self, message: str, context: dict | None = None):
        """Initialize with message and optional context.

        Args:
            message: Human-readable error message
            context: Optional dict with additional context (package name, file paths, etc.)
        """
        super().__init__(message)
        self.message = message
        self.context = context or {}


class ConfigurationError(SelfUpdateError):
    """Package name or version could not be determined."""


class PackageNotFoundError(SelfUpdateError):
    """No repository provides a package matching the request."""


class RepositoryError(SelfUpdateError):
    """A repository could not be read."""


class FetchError(SelfUpdateError):
    """Distribution archive could not be retrieved."""


class ArchiveCorruptedError(SelfUpdateError):
    """Archive is missing or zero bytes."""

    code = -1


class ExtractionErrorKind(str, Enum):
    """Classification of archive open/extraction failures."""

    ALREADY_EXISTS = "already-exists"
    INCONSISTENT = "inconsistent"
    INVALID_ARGUMENT = "invalid-argument"
    ALLOCATION = "allocation"
    NOT_FOUND = "not-found"
    NOT_AN_ARCHIVE = "not-an-archive"
    OPEN_FAILURE = "open-failure"
    READ_ERROR = "read-error"
    SEEK_ERROR = "seek-error"
    WRITE_FAILURE = "write-failure"
    CASE_COLLISION = "case-collision"
    UNKNOWN = "unknown"


class ExtractionError(SelfUpdateError):
    """Archive could not be opened or extracted."""

    def __init__(
        self,
        message: str,
        kind: ExtractionErrorKind = ExtractionErrorKind.UNKNOWN,
        code: int | None = None,
        context: dict | None = None,
    ):
        super().__init__(message, context)
        self.kind = kind
        self.code = code


class CaseCollisionError(ExtractionError):
    """Archive entries differing only by case collided on a case-insensitive filesystem."""

    def __init__(self, message: str, context: dict | None = None):
        super().__init__(message, kind=ExtractionErrorKind.CASE_COLLISION, code=0, context=context)


class MultipleMatchesAdvisory(UserWarning):
    """Several packages matched; one was selected automatically."""
