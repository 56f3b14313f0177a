"""Pre-image capture and restoration of target files."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from portable_installer.protocols import FileSystem


@dataclass(frozen=True)
class FileSnapshot:
    """Exact state of a file before the first mutation of an install call.

    Attributes:
        path: File path.
        existed: True if the file existed.
        content: Prior text content (None if the file did not exist).
    """

    path: Path
    existed: bool
    content: str | None


def capture_snapshot(fs: FileSystem, path: Path) -> FileSnapshot:
    """Capture the current state of ``path``.

    Raises:
        OSError: If the file exists but cannot be read.
    """
    try:
        content = fs.read_text(path)
    except FileNotFoundError:
        return FileSnapshot(path=path, existed=False, content=None)
    return FileSnapshot(path=path, existed=True, content=content)


def restore_snapshot(fs: FileSystem, snapshot: FileSnapshot) -> None:
    """Put ``snapshot.path`` back into its captured state."""
    if snapshot.existed:
        fs.mkdir(snapshot.path.parent, parents=True, exist_ok=True)
        fs.write_text(snapshot.path, snapshot.content or "")
        return

    try:
        fs.unlink(snapshot.path)
    except FileNotFoundError:
        pass


def restore_snapshots(fs: FileSystem, snapshots: list[FileSnapshot]) -> None:
    """Restore snapshots in reverse capture order."""
    for snapshot in reversed(snapshots):
        restore_snapshot(fs, snapshot)
