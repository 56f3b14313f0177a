"""Filesystem abstraction for testability.

This module provides a filesystem abstraction that enables testing
failure paths without real I/O faults. The RealFileSystem implementation
wraps standard library operations and writes files atomically.
"""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
from pathlib import Path

logger = logging.getLogger(__name__)


class RealFileSystem:
    """Production filesystem implementation.

    Wraps standard library Path and os operations.
    Satisfies the FileSystem protocol structurally.
    """

    def read_text(self, path: Path) -> str:
        """Read UTF-8 text content from a file."""
        with open(path, encoding="utf-8", newline="") as fh:
            return fh.read()

    def write_text(self, path: Path, content: str) -> None:
        """Write UTF-8 text content to a file atomically.

        Content goes to a temporary sibling first and is moved into place
        with ``os.replace``, so readers never observe a partial file.
        """
        fd, temp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8", newline="") as fh:
                fh.write(content)
                fh.flush()
                os.fsync(fh.fileno())
            # mkstemp creates 0600 files; keep the mode the target already had
            if path.exists():
                shutil.copymode(path, temp_name)
            else:
                os.chmod(temp_name, 0o644)
            os.replace(temp_name, path)
        except BaseException:
            try:
                os.unlink(temp_name)
            except FileNotFoundError:
                pass
            except OSError:
                logger.warning("Could not remove temporary file %s", temp_name)
            raise

    def exists(self, path: Path) -> bool:
        """Check if a path exists."""
        return path.exists()

    def is_dir(self, path: Path) -> bool:
        """Check if a path is a directory."""
        return path.is_dir()

    def mkdir(self, path: Path, parents: bool = False, exist_ok: bool = False) -> None:
        """Create a directory."""
        path.mkdir(parents=parents, exist_ok=exist_ok)

    def unlink(self, path: Path) -> None:
        """Remove a file."""
        path.unlink()
