"""Provider configuration types.

A provider is a destination coding-agent tool. For each artifact type it
supports, a ``PathConfig`` says where items go for each scope, which output
dialect they are converted to, and which write strategy places them on disk.

Write strategies form a closed set of variants. Each variant carries only
the configuration that makes sense for it, so a per-file-only option can
never be attached to a shared-file target.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Union

from portable_installer.types import ArtifactType, ProviderType


class ConversionFormat(str, Enum):
    """Output dialect an item is converted to."""

    DIRECT_COPY = "direct-copy"
    FM_TO_FM = "fm-to-fm"
    FM_TO_YAML = "fm-to-yaml"
    FM_STRIP = "fm-strip"
    FM_TO_JSON = "fm-to-json"
    MD_TO_TOML = "md-to-toml"
    SKILL_MD = "skill-md"
    MD_STRIP = "md-strip"
    MD_TO_MDC = "md-to-mdc"


class SubagentSupport(str, Enum):
    """How far a provider supports delegating work to sub-agents."""

    FULL = "full"
    PARTIAL = "partial"
    NONE = "none"
    PLANNED = "planned"


@dataclass(frozen=True)
class PerFile:
    """One output file per item.

    Attributes:
        nested_commands: Keep ``/`` in names as subdirectories. When False,
            nested names are flattened with ``-``.
        total_char_limit: Aggregate size cap across one batch, if any.
    """

    name = "per-file"

    nested_commands: bool = True
    total_char_limit: int | None = None


@dataclass(frozen=True)
class SingleFile:
    """One item written to a fixed file path."""

    name = "single-file"


@dataclass(frozen=True)
class MergeSingle:
    """Items merged as named sections of one shared Markdown file."""

    name = "merge-single"


@dataclass(frozen=True)
class YamlMerge:
    """Items merged as entries of a shared YAML mode list."""

    name = "yaml-merge"


@dataclass(frozen=True)
class JsonMerge:
    """Items merged into a shared JSON mode list plus per-item rule files.

    Attributes:
        modes_filename: Mode list file name inside the base directory.
        rules_dir_name: Rule directory name, beside the base directory.
    """

    name = "json-merge"

    modes_filename: str = "cline_custom_modes.json"
    rules_dir_name: str = ".clinerules"


WriteStrategy = Union[PerFile, SingleFile, MergeSingle, YamlMerge, JsonMerge]

SHARED_TARGET_STRATEGIES = (MergeSingle, YamlMerge, JsonMerge)


@dataclass(frozen=True)
class PathConfig:
    """Where and how one artifact type is installed for a provider.

    Global paths are written ``~/``-relative and expanded when resolved;
    project paths are relative to the project directory. A ``None`` path
    means the scope is unsupported.

    Attributes:
        global_path: Global install location, or None.
        project_path: Project install location, or None.
        format: Output dialect.
        strategy: Write strategy variant.
        file_extension: Extension of generated files.
        char_limit: Per-file size limit handed to converters, if any.
    """

    global_path: str | None
    project_path: str | None
    format: ConversionFormat
    strategy: WriteStrategy = field(default_factory=PerFile)
    file_extension: str = ".md"
    char_limit: int | None = None

    def base_path(self, is_global: bool, project_dir: Path | None = None) -> Path | None:
        """Resolve the base path for a scope.

        Args:
            is_global: True for the global (home directory) scope.
            project_dir: Project directory (defaults to the current directory).

        Returns:
            Absolute base path, or None if the scope is unsupported.
        """
        raw = self.global_path if is_global else self.project_path
        if raw is None:
            return None
        if is_global:
            return Path.home() / raw.removeprefix("~/")
        return (project_dir or Path.cwd()) / raw

    @property
    def is_shared_target(self) -> bool:
        """True if every item of a batch lands in the same file."""
        return isinstance(self.strategy, SHARED_TARGET_STRATEGIES)


@dataclass(frozen=True)
class ProviderConfig:
    """Capabilities of one provider.

    Attributes:
        name: Provider identifier.
        display_name: Human readable name.
        subagents: Level of sub-agent support.
        paths: Path configuration per supported artifact type.
        detect_paths: Home-relative paths whose presence marks the tool
            as installed.
        detect_project_paths: Project-relative paths that also mark it.
    """

    name: ProviderType
    display_name: str
    subagents: SubagentSupport
    paths: dict[ArtifactType, PathConfig] = field(default_factory=dict)
    detect_paths: tuple[str, ...] = ()
    detect_project_paths: tuple[str, ...] = ()

    def path_config(self, artifact_type: ArtifactType) -> PathConfig | None:
        """Get the path configuration for an artifact type, if supported."""
        return self.paths.get(artifact_type)

    def supports(self, artifact_type: ArtifactType) -> bool:
        """Check whether the provider accepts an artifact type."""
        return artifact_type in self.paths

    def is_installed(self, project_dir: Path | None = None) -> bool:
        """Check whether the tool appears to be installed."""
        home = Path.home()
        if any((home / rel).exists() for rel in self.detect_paths):
            return True
        project = project_dir or Path.cwd()
        return any((project / rel).exists() for rel in self.detect_project_paths)


ProviderCatalog = dict[ProviderType, ProviderConfig]
