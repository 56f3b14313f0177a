"""Tests for error classification."""

from __future__ import annotations

import errno
from pathlib import Path

import pytest

from portable_installer.checksum import compute_content_checksum, compute_file_checksum
from portable_installer.errors import ErrorKind, InstallError, describe_error


class TestFromOsError:
    """Tests for InstallError.from_os_error."""

    @pytest.mark.parametrize(
        ("code", "kind", "message"),
        [
            (errno.EACCES, ErrorKind.PERMISSION_DENIED, "Permission denied: /x/AGENTS.md"),
            (errno.EPERM, ErrorKind.PERMISSION_DENIED, "Permission denied: /x/AGENTS.md"),
            (errno.ENOSPC, ErrorKind.DISK_FULL, "Disk full: no space left on device"),
            (errno.EROFS, ErrorKind.READ_ONLY_FILESYSTEM, "Read-only filesystem: /x/AGENTS.md"),
        ],
    )
    def test_known_codes(self, code: int, kind: ErrorKind, message: str) -> None:
        """Test known errno values get their own kind and message."""
        error = InstallError.from_os_error(OSError(code, "boom"), "/x/AGENTS.md")
        assert error.kind is kind
        assert error.message == message

    def test_not_found(self) -> None:
        """Test ENOENT keeps the OS message."""
        error = InstallError.from_os_error(
            FileNotFoundError(errno.ENOENT, "No such file or directory"), "/x"
        )
        assert error.kind is ErrorKind.NOT_FOUND
        assert error.message == "No such file or directory"

    def test_other_code(self) -> None:
        """Test unknown codes fall back to OTHER."""
        error = InstallError.from_os_error(OSError(errno.EIO, "I/O error"), "/x")
        assert error.kind is ErrorKind.OTHER
        assert error.message == "I/O error"


class TestDescribeError:
    """Tests for describe_error."""

    def test_install_error_passes_through(self) -> None:
        """Test an InstallError is returned unchanged."""
        error = InstallError(ErrorKind.VALIDATION_FAILED, "bad", ["w"])
        assert describe_error(error, "/x") is error
        assert error.warnings == ["w"]

    def test_generic_exception(self) -> None:
        """Test other exceptions become OTHER errors."""
        error = describe_error(RuntimeError("registry broke"), "/x")
        assert error.kind is ErrorKind.OTHER
        assert error.message == "registry broke"

    def test_exception_without_message(self) -> None:
        """Test a message-less exception is described by its class name."""
        assert describe_error(KeyError(), "/x").message == "KeyError"


class TestChecksums:
    """Tests for content and file checksums."""

    def test_content_checksum(self) -> None:
        """Test the digest is SHA-256 of the UTF-8 bytes."""
        assert compute_content_checksum("") == (
            "e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855"
        )

    def test_file_checksum_matches_content(self, tmp_path: Path) -> None:
        """Test a file's digest equals the digest of its text."""
        path = tmp_path / "a.md"
        path.write_bytes("héllo\n".encode())
        assert compute_file_checksum(path) == compute_content_checksum("héllo\n")
