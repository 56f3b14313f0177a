"""Path safety checks for portable items.

Every strategy validates an item's path segments before converting it, and
checks that each computed target stays inside its base directory.
"""

from __future__ import annotations

import re
import unicodedata
from pathlib import Path
from urllib.parse import unquote

from portable_installer.errors import ErrorKind, InstallError
from portable_installer.types import PortableItem

_WINDOWS_ABSOLUTE = re.compile(r"^(?:[a-zA-Z]:[\\/]|\\\\)")
_SEPARATORS = ("/", "\\", "\0")


def item_segments(item: PortableItem) -> list[str]:
    """Get the path segments of an item.

    Args:
        item: The portable item.

    Returns:
        ``item.segments`` when provided, otherwise the name split on separators.
    """
    if item.segments:
        return list(item.segments)
    return [part for part in item.name.replace("\\", "/").split("/") if part]


def validate_segment(segment: str) -> str | None:
    """Validate a single path segment.

    Rejects empty, ``.`` and ``..`` segments, embedded separators or NUL, and
    the same patterns hidden behind percent-encoding or Unicode composition.

    Args:
        segment: One path component.

    Returns:
        Error message, or None if the segment is safe.
    """
    if not segment or segment in (".", ".."):
        return f"Unsafe item path segment: {segment or '<empty>'}"
    if any(sep in segment for sep in _SEPARATORS):
        return f"Unsafe item path segment: {segment}"

    try:
        decoded = unquote(segment, errors="strict")
    except UnicodeDecodeError:
        decoded = segment
    normalized = unicodedata.normalize("NFC", decoded)
    if (
        ".." in normalized
        or normalized == "."
        or any(sep in normalized for sep in _SEPARATORS)
    ):
        return "Unsafe item path segment: encoded traversal detected"
    return None


def validate_item_segments(item: PortableItem) -> str | None:
    """Validate that an item name cannot escape its install directory.

    Args:
        item: The portable item.

    Returns:
        Error message, or None if the item is safe.

    Example:
        >>> from pathlib import Path
        >>> validate_item_segments(PortableItem(name="../secret", source_path=Path("x")))
        'Unsafe item path segment: ..'
    """
    name = item.name
    if name.startswith(("/", "\\")) or _WINDOWS_ABSOLUTE.match(name):
        return f"Unsafe item path: absolute paths are not allowed ({name})"

    segments = item_segments(item)
    if not segments:
        return f"Unsafe item path: empty path segments ({name})"

    for segment in segments:
        error = validate_segment(segment)
        if error:
            return error
    return None


def validate_rule_segment(segment: str) -> str | None:
    """Validate one segment of a rule file name."""
    return validate_segment(segment)


def is_within(target: Path, base: Path) -> bool:
    """Check that ``target`` resolves to ``base`` or a descendant of it."""
    resolved_target = target.resolve()
    resolved_base = base.resolve()
    return resolved_target == resolved_base or resolved_base in resolved_target.parents


def ensure_within(target: Path, base: Path, message: str) -> None:
    """Raise unless ``target`` stays inside ``base``.

    Args:
        target: Computed install target.
        base: Directory the target must not escape.
        message: Error message used on violation.

    Raises:
        InstallError: With kind VALIDATION_FAILED.
    """
    if not is_within(target, base):
        raise InstallError(ErrorKind.VALIDATION_FAILED, message)


def is_same_path(first: Path, second: Path) -> bool:
    """Check whether two paths resolve to the same location."""
    try:
        return first.resolve() == second.resolve()
    except (OSError, RuntimeError):
        return False
