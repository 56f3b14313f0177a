"""Shared data types for the portable installer."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from portable_installer.errors import ErrorKind

__all__ = [
    "ArtifactType",
    "ConversionResult",
    "InstallResult",
    "PortableItem",
    "ProviderType",
]


class ProviderType(str, Enum):
    """Destination coding-agent tools."""

    CLAUDE_CODE = "claude-code"
    CURSOR = "cursor"
    CODEX = "codex"
    OPENCODE = "opencode"
    GOOSE = "goose"
    GEMINI_CLI = "gemini-cli"
    ANTIGRAVITY = "antigravity"
    GITHUB_COPILOT = "github-copilot"
    AMP = "amp"
    KILO = "kilo"
    ROO = "roo"
    WINDSURF = "windsurf"
    CLINE = "cline"
    OPENHANDS = "openhands"


class ArtifactType(str, Enum):
    """Category of a portable artifact."""

    AGENT = "agent"
    COMMAND = "command"
    SKILL = "skill"
    CONFIG = "config"
    RULES = "rules"


@dataclass(frozen=True)
class PortableItem:
    """One artifact ready to be installed.

    Produced by an external discovery step and never mutated by the installer.

    Attributes:
        name: Identifier, possibly path-like (``docs/init``).
        source_path: Path of the source file in the kit.
        frontmatter: Parsed frontmatter metadata.
        body: Markdown body without frontmatter.
        segments: Pre-split path components for nested items.
        description: Short description, if any.
        artifact_type: Category the item was discovered as, if known.
    """

    name: str
    source_path: Path
    frontmatter: dict[str, Any] = field(default_factory=dict)
    body: str = ""
    segments: tuple[str, ...] = ()
    description: str = ""
    artifact_type: ArtifactType | None = None

    @property
    def display_name(self) -> str:
        """Frontmatter ``name`` when present, otherwise the item name."""
        value = self.frontmatter.get("name")
        return str(value) if value else self.name


@dataclass
class ConversionResult:
    """Provider-native rendering of one item.

    Attributes:
        content: Converted text.
        filename: Target filename (or slug, for mode-list formats).
        warnings: Non-fatal conversion warnings.
        error: Fatal conversion error; the installer treats it as a failure.
    """

    content: str
    filename: str
    warnings: list[str] = field(default_factory=list)
    error: str | None = None


@dataclass
class InstallResult:
    """Result of installing a batch of items into one provider.

    Attributes:
        provider: Target provider identifier.
        provider_display_name: Human readable provider name.
        success: True if the install succeeded (skips count as success).
        path: Target path that was written, or attempted.
        overwritten: True if existing content was replaced.
        skipped: True if nothing was written on purpose.
        skip_reason: Why the install was skipped.
        warnings: Non-fatal warnings collected along the way.
        error: Error message (None on success).
        error_kind: Category of ``error``.
        item_results: Per-item results of a per-file batch.
    """

    provider: str
    provider_display_name: str
    success: bool
    path: str
    overwritten: bool = False
    skipped: bool = False
    skip_reason: str | None = None
    warnings: list[str] = field(default_factory=list)
    error: str | None = None
    error_kind: ErrorKind | None = None
    item_results: list[InstallResult] = field(default_factory=list)

    def __post_init__(self) -> None:
        """Validate invariants."""
        if self.success and self.error is not None:
            raise ValueError("success=True but error is set")
        if not self.success and self.error is None:
            raise ValueError("success=False requires error message")
        if self.skipped and not self.success:
            raise ValueError("skipped=True requires success=True")
        if not self.provider:
            raise ValueError("provider cannot be empty")
