"""Content checksums recorded in the install registry."""

from __future__ import annotations

import hashlib
from pathlib import Path

UNKNOWN_CHECKSUM = "unknown"


def compute_content_checksum(content: str) -> str:
    """Get the SHA-256 hex digest of text content (UTF-8 encoded)."""
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


def compute_file_checksum(path: Path) -> str:
    """Get the SHA-256 hex digest of a file's raw bytes."""
    return hashlib.sha256(path.read_bytes()).hexdigest()
