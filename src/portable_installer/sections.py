"""Parse and rebuild shared Markdown files made of named sections.

A merged file looks like::

    optional user preamble

    ---

    ## Agent: reviewer
    ...
    ---

    ## Rule: security/secrets
    ...

Structure is detected by a single pass over the lines that tracks whether the
scanner is inside a fenced code block, so ``---`` lines and headings inside
code samples are never treated as structure. Content between managed sections
that carries no managed heading is kept verbatim as an ``unknown`` section.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum

from portable_installer.converters.fm_strip import build_merged_agents_md
from portable_installer.types import ArtifactType, PortableItem


class SectionKind(str, Enum):
    """Kind of a section in a merged Markdown file."""

    AGENT = "agent"
    RULE = "rule"
    CONFIG = "config"
    UNKNOWN = "unknown"


SECTION_HEADING_PATTERNS: dict[SectionKind, re.Pattern[str]] = {
    SectionKind.AGENT: re.compile(r"^##\s*agent\s*:\s*(.+?)\s*$", re.IGNORECASE),
    SectionKind.RULE: re.compile(r"^##\s*rule\s*:\s*(.+?)\s*$", re.IGNORECASE),
    SectionKind.CONFIG: re.compile(r"^##\s*config\s*$", re.IGNORECASE),
}

SEPARATOR = "---"
_SEPARATOR_LINE = re.compile(r"^[ \t]*---[ \t]*$")
_FENCE_MARKERS = ("```", "~~~")

# Notice blocks written at the top of generated files; never user content.
_GENERATED_BANNER = re.compile(
    r"^# (?:Agents|Rules|Config)\r?\n\r?\n"
    r"> Ported from Claude Code (?:agents|rules|config) via portable-installer[^\r\n]*"
    r"(?:\r?\n> Target: [^\r\n]*)?"
    r"(?:(?:\r?\n)+|$)",
    re.IGNORECASE,
)


@dataclass
class ParsedSection:
    """One section of a merged file.

    Attributes:
        kind: Section kind.
        key: Display name or slug (``config`` for the config section,
            ``unknown-N`` for unmanaged blocks).
        content: Full section text including its heading, trimmed.
    """

    kind: SectionKind
    key: str
    content: str


@dataclass
class ParsedMergedFile:
    """Result of parsing a merged Markdown file."""

    sections: list[ParsedSection] = field(default_factory=list)
    preamble: str = ""
    warnings: list[str] = field(default_factory=list)


def heading_metadata(line: str) -> tuple[SectionKind, str] | None:
    """Match a single line against the managed heading patterns.

    Args:
        line: One line of text.

    Returns:
        ``(kind, key)`` for a managed heading, otherwise None.
    """
    stripped = line.strip()
    for kind, pattern in SECTION_HEADING_PATTERNS.items():
        match = pattern.match(stripped)
        if match:
            key = "config" if kind is SectionKind.CONFIG else match.group(1).strip()
            return kind, key
    return None


def _is_fence(stripped: str) -> bool:
    return stripped.startswith(_FENCE_MARKERS)


def split_managed_content(content: str) -> tuple[int, list[str]]:
    """Split content into the preamble end offset and managed fragments.

    Args:
        content: Full file content.

    Returns:
        Tuple of (offset of the first managed heading, trimmed non-empty
        fragments from that heading onward). When no managed heading exists
        the offset is ``len(content)`` and the fragment list is empty.
    """
    in_fence = False
    first_managed = -1
    separators: list[tuple[int, int]] = []
    offset = 0

    for line in content.split("\n"):
        stripped = line.strip()
        line_end = offset + len(line) + 1
        if _is_fence(stripped):
            in_fence = not in_fence
        elif not in_fence:
            if first_managed == -1 and heading_metadata(stripped) is not None:
                first_managed = offset
            if _SEPARATOR_LINE.match(stripped):
                separators.append((offset, line_end))
        offset = line_end

    if first_managed == -1:
        return len(content), []

    parts: list[str] = []
    last = first_managed
    for start, end in separators:
        if start < first_managed:
            continue
        part = content[last:start].strip()
        if part:
            parts.append(part)
        last = end

    tail = content[last:].strip()
    if tail:
        parts.append(tail)
    return first_managed, parts


def section_metadata(fragment: str) -> tuple[SectionKind, str] | None:
    """Find the first managed heading of a fragment, outside code fences."""
    in_fence = False
    for line in fragment.split("\n"):
        stripped = line.strip()
        if _is_fence(stripped):
            in_fence = not in_fence
            continue
        if not in_fence:
            metadata = heading_metadata(stripped)
            if metadata is not None:
                return metadata
    return None


def _clean_preamble(raw: str) -> str:
    preamble = _GENERATED_BANNER.sub("", raw.rstrip(), count=1).rstrip()
    # The separator between preamble and first section belongs to the layout.
    lines = preamble.split("\n")
    if lines and _SEPARATOR_LINE.match(lines[-1].strip()):
        preamble = "\n".join(lines[:-1]).rstrip()
    return preamble.strip()


def parse_merged_sections(content: str) -> ParsedMergedFile:
    """Parse a merged Markdown file into sections.

    Duplicate ``(kind, key)`` sections keep the later occurrence, in the later
    position, and add a warning.

    Args:
        content: Full file content.

    Returns:
        ParsedMergedFile with sections in file order, preamble and warnings.
    """
    preamble_end, parts = split_managed_content(content)
    if not parts:
        return ParsedMergedFile(preamble=content.strip())

    sections: list[ParsedSection] = []
    warnings: list[str] = []
    unknown_index = 0

    for part in parts:
        metadata = section_metadata(part)
        if metadata is None:
            unknown_index += 1
            sections.append(
                ParsedSection(kind=SectionKind.UNKNOWN, key=f"unknown-{unknown_index}", content=part)
            )
            continue

        kind, key = metadata
        for index, existing in enumerate(sections):
            if existing.kind is kind and existing.key == key:
                warnings.append(
                    f'Duplicate {kind.value} section "{key}" in existing file; '
                    "keeping last occurrence"
                )
                del sections[index]
                break
        sections.append(ParsedSection(kind=kind, key=key, content=part))

    return ParsedMergedFile(
        sections=sections,
        preamble=_clean_preamble(content[:preamble_end]),
        warnings=warnings,
    )


def section_kind_for(artifact_type: ArtifactType) -> SectionKind:
    """Map an artifact type to the section kind it occupies in a merged file."""
    if artifact_type is ArtifactType.RULES:
        return SectionKind.RULE
    if artifact_type is ArtifactType.CONFIG:
        return SectionKind.CONFIG
    return SectionKind.AGENT


def section_key(kind: SectionKind, item: PortableItem) -> str:
    """Get the key an item's section is stored under."""
    if kind is SectionKind.CONFIG:
        return "config"
    if kind is SectionKind.AGENT:
        return item.display_name.strip()
    return item.name.strip()


def build_section_content(kind: SectionKind, key: str, converted: str) -> str:
    """Wrap converted content in the heading for its section kind.

    Agent content already carries its ``## Agent:`` heading.
    """
    if kind is SectionKind.CONFIG:
        return f"## Config\n\n{converted.strip()}\n"
    if kind is SectionKind.RULE:
        return f"## Rule: {key}\n\n{converted.strip()}\n"
    return converted.rstrip()


def merge_sections(
    existing: list[ParsedSection],
    replacements: dict[str, str],
    kind: SectionKind,
) -> list[ParsedSection]:
    """Merge new section renderings into existing sections.

    Sections of ``kind`` whose key is in ``replacements`` are replaced in
    place; remaining replacements are appended in insertion order.

    Args:
        existing: Sections parsed from the current file.
        replacements: Section key to rendered section text.
        kind: Kind of the sections being installed.

    Returns:
        New section list; ``existing`` is not modified.
    """
    merged: list[ParsedSection] = []
    replaced: set[str] = set()
    for section in existing:
        if section.kind is kind and section.key in replacements:
            merged.append(ParsedSection(kind=kind, key=section.key, content=replacements[section.key]))
            replaced.add(section.key)
        else:
            merged.append(section)

    for key, content in replacements.items():
        if key not in replaced:
            merged.append(ParsedSection(kind=kind, key=key, content=content))
    return merged


def render_merged_file(
    sections: list[ParsedSection],
    preamble: str,
    kind: SectionKind,
    display_name: str,
) -> str:
    """Serialize sections back into a merged Markdown file.

    Args:
        sections: Sections in output order.
        preamble: User content kept above the first section.
        kind: Kind of the sections being installed.
        display_name: Provider name used in the generated agents banner.

    Returns:
        File content ending with a newline (empty string for an empty file).
    """
    texts = [section.content.strip() for section in sections if section.content.strip()]
    preamble = preamble.strip()
    joiner = f"\n{SEPARATOR}\n\n"

    if not texts:
        return f"{preamble}\n" if preamble else ""
    if preamble:
        return f"{preamble}\n\n{SEPARATOR}\n\n{joiner.join(texts)}\n"
    if kind is SectionKind.AGENT and all(s.kind is SectionKind.AGENT for s in sections):
        return build_merged_agents_md(texts, display_name)
    return f"{joiner.join(texts)}\n"
