"""Tests for file snapshots."""

from __future__ import annotations

from pathlib import Path

from portable_installer.filesystem import RealFileSystem
from portable_installer.snapshot import capture_snapshot, restore_snapshot, restore_snapshots


class TestSnapshots:
    """Tests for capture and restore."""

    def test_missing_file(self, tmp_path: Path) -> None:
        """Test a missing file is captured as absent and removed on restore."""
        fs = RealFileSystem()
        target = tmp_path / "AGENTS.md"
        snapshot = capture_snapshot(fs, target)
        assert snapshot.existed is False
        assert snapshot.content is None

        target.write_text("new")
        restore_snapshot(fs, snapshot)
        assert not target.exists()

    def test_restore_of_absent_file_tolerates_missing(self, tmp_path: Path) -> None:
        """Test restoring an absent file that was never created is a no-op."""
        fs = RealFileSystem()
        snapshot = capture_snapshot(fs, tmp_path / "never.md")
        restore_snapshot(fs, snapshot)
        assert not (tmp_path / "never.md").exists()

    def test_existing_file_restored_exactly(self, tmp_path: Path) -> None:
        """Test prior content comes back byte for byte, line endings included."""
        fs = RealFileSystem()
        target = tmp_path / "AGENTS.md"
        target.write_bytes(b"line one\r\nline two\r\n")
        snapshot = capture_snapshot(fs, target)

        target.write_text("changed")
        restore_snapshot(fs, snapshot)
        assert target.read_bytes() == b"line one\r\nline two\r\n"

    def test_restore_order_is_reverse(self, tmp_path: Path) -> None:
        """Test the earliest snapshot of a path wins when captured twice."""
        fs = RealFileSystem()
        target = tmp_path / "rules.md"
        target.write_text("original")
        first = capture_snapshot(fs, target)
        target.write_text("intermediate")
        second = capture_snapshot(fs, target)
        target.write_text("final")

        restore_snapshots(fs, [first, second])
        assert target.read_text() == "original"
