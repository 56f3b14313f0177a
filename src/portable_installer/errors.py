"""Structured errors for portable installs.

OS-level errors are classified exactly once, at the point they are caught,
into an ``InstallError`` carrying an ``ErrorKind`` and a user-facing message.
"""

from __future__ import annotations

import errno
from enum import Enum
from pathlib import Path

__all__ = [
    "ErrorKind",
    "InstallError",
    "LockAcquisitionError",
    "describe_error",
]


class ErrorKind(str, Enum):
    """Category of an install failure."""

    PERMISSION_DENIED = "permission-denied"
    DISK_FULL = "disk-full"
    READ_ONLY_FILESYSTEM = "read-only-filesystem"
    NOT_FOUND = "not-found"
    LOCK_TIMEOUT = "lock-timeout"
    VALIDATION_FAILED = "validation-failed"
    CONVERSION_FAILED = "conversion-failed"
    SCHEMA_INVALID = "schema-invalid"
    OTHER = "other"


class InstallError(Exception):
    """Error raised inside an install strategy.

    Attributes:
        kind: Failure category.
        message: Human readable description.
        warnings: Warnings gathered before the failure (e.g. from a converter).
    """

    def __init__(
        self, kind: ErrorKind, message: str, warnings: list[str] | None = None
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.warnings = list(warnings or [])

    @classmethod
    def from_os_error(cls, exc: OSError, path: Path | str) -> InstallError:
        """Classify an OSError raised while touching ``path``.

        Args:
            exc: The caught OS error.
            path: Path the operation was acting on.

        Returns:
            InstallError with a user-facing message.
        """
        code = exc.errno
        if code in (errno.EACCES, errno.EPERM):
            return cls(ErrorKind.PERMISSION_DENIED, f"Permission denied: {path}")
        if code == errno.ENOSPC:
            return cls(ErrorKind.DISK_FULL, "Disk full: no space left on device")
        if code == errno.EROFS:
            return cls(ErrorKind.READ_ONLY_FILESYSTEM, f"Read-only filesystem: {path}")
        if code == errno.ENOENT:
            return cls(ErrorKind.NOT_FOUND, exc.strerror or str(exc))
        return cls(ErrorKind.OTHER, exc.strerror or str(exc))


class LockAcquisitionError(InstallError):
    """Raised when the merge lock cannot be acquired."""

    def __init__(self, message: str) -> None:
        super().__init__(ErrorKind.LOCK_TIMEOUT, message)


def describe_error(exc: BaseException, path: Path | str) -> InstallError:
    """Normalize any exception into an InstallError.

    Args:
        exc: Exception caught at a strategy boundary.
        path: Path the failing operation targeted.

    Returns:
        The same error if already an InstallError, otherwise a classified one.
    """
    if isinstance(exc, InstallError):
        return exc
    if isinstance(exc, OSError):
        return InstallError.from_os_error(exc, path)
    return InstallError(ErrorKind.OTHER, str(exc) or exc.__class__.__name__)
