"""Static catalog of supported providers and where their artifacts live."""

from __future__ import annotations

from pathlib import Path

from portable_installer.providers.base import (
    ConversionFormat,
    JsonMerge,
    MergeSingle,
    PathConfig,
    PerFile,
    ProviderCatalog,
    ProviderConfig,
    SingleFile,
    SubagentSupport,
    YamlMerge,
)
from portable_installer.types import ArtifactType, ProviderType

DIRECT = ConversionFormat.DIRECT_COPY
MD_STRIP = ConversionFormat.MD_STRIP


def _skills(project_path: str, global_path: str) -> PathConfig:
    return PathConfig(global_path=global_path, project_path=project_path, format=DIRECT)


def _merged(project_path: str | None, global_path: str | None, fmt: ConversionFormat = MD_STRIP) -> PathConfig:
    return PathConfig(
        global_path=global_path, project_path=project_path, format=fmt, strategy=MergeSingle()
    )


def _single(
    project_path: str | None,
    global_path: str | None,
    fmt: ConversionFormat = MD_STRIP,
    **kwargs,
) -> PathConfig:
    return PathConfig(
        global_path=global_path, project_path=project_path, format=fmt, strategy=SingleFile(), **kwargs
    )


PROVIDERS: ProviderCatalog = {
    ProviderType.CLAUDE_CODE: ProviderConfig(
        name=ProviderType.CLAUDE_CODE,
        display_name="Claude Code",
        subagents=SubagentSupport.FULL,
        paths={
            ArtifactType.AGENT: PathConfig("~/.claude/agents", ".claude/agents", DIRECT),
            ArtifactType.COMMAND: PathConfig("~/.claude/commands", ".claude/commands", DIRECT),
            ArtifactType.SKILL: _skills(".claude/skills", "~/.claude/skills"),
            ArtifactType.CONFIG: _single("CLAUDE.md", "~/.claude/CLAUDE.md", DIRECT),
            ArtifactType.RULES: PathConfig("~/.claude/rules", ".claude/rules", DIRECT),
        },
        detect_paths=(".claude",),
    ),
    ProviderType.OPENCODE: ProviderConfig(
        name=ProviderType.OPENCODE,
        display_name="OpenCode",
        subagents=SubagentSupport.FULL,
        paths={
            ArtifactType.AGENT: PathConfig("~/.config/opencode/agents", ".opencode/agents", DIRECT),
            ArtifactType.COMMAND: PathConfig(
                "~/.config/opencode/commands", ".opencode/commands", DIRECT
            ),
            ArtifactType.SKILL: _skills(".opencode/skill", "~/.config/opencode/skill"),
            ArtifactType.CONFIG: _merged("AGENTS.md", "~/.config/opencode/AGENTS.md"),
            ArtifactType.RULES: _merged("AGENTS.md", "~/.config/opencode/AGENTS.md"),
        },
        detect_paths=(".config/opencode",),
    ),
    ProviderType.GITHUB_COPILOT: ProviderConfig(
        name=ProviderType.GITHUB_COPILOT,
        display_name="GitHub Copilot",
        subagents=SubagentSupport.PARTIAL,
        paths={
            ArtifactType.AGENT: PathConfig(
                None, ".github/agents", ConversionFormat.FM_TO_FM, file_extension=".agent.md"
            ),
            ArtifactType.SKILL: _skills(".github/skills", "~/.copilot/skills"),
            ArtifactType.CONFIG: _single(".github/copilot-instructions.md", None),
            ArtifactType.RULES: PathConfig(
                None, ".github/instructions", MD_STRIP, file_extension=".instructions.md"
            ),
        },
        detect_paths=(".copilot",),
    ),
    ProviderType.CODEX: ProviderConfig(
        name=ProviderType.CODEX,
        display_name="Codex",
        subagents=SubagentSupport.NONE,
        paths={
            ArtifactType.AGENT: _merged("AGENTS.md", "~/.codex/AGENTS.md", ConversionFormat.FM_STRIP),
            # Codex reads prompts from one flat global directory.
            ArtifactType.COMMAND: PathConfig(
                "~/.codex/prompts", None, DIRECT, strategy=PerFile(nested_commands=False)
            ),
            ArtifactType.SKILL: _skills(".codex/skills", "~/.codex/skills"),
            ArtifactType.CONFIG: _merged("AGENTS.md", "~/.codex/AGENTS.md"),
            ArtifactType.RULES: _merged("AGENTS.md", "~/.codex/prompts/rules.md"),
        },
        detect_paths=(".codex",),
    ),
    ProviderType.CURSOR: ProviderConfig(
        name=ProviderType.CURSOR,
        display_name="Cursor",
        subagents=SubagentSupport.NONE,
        paths={
            ArtifactType.AGENT: PathConfig(
                "~/.cursor/rules", ".cursor/rules", ConversionFormat.FM_TO_FM, file_extension=".mdc"
            ),
            ArtifactType.SKILL: _skills(".cursor/skills", "~/.cursor/skills"),
            ArtifactType.CONFIG: _single(
                ".cursor/rules/project-config.mdc",
                "~/.cursor/rules/project-config.mdc",
                ConversionFormat.MD_TO_MDC,
                file_extension=".mdc",
            ),
            ArtifactType.RULES: PathConfig(
                "~/.cursor/rules", ".cursor/rules", ConversionFormat.MD_TO_MDC, file_extension=".mdc"
            ),
        },
        detect_paths=(".cursor",),
    ),
    ProviderType.ROO: ProviderConfig(
        name=ProviderType.ROO,
        display_name="Roo Code",
        subagents=SubagentSupport.PARTIAL,
        paths={
            ArtifactType.AGENT: PathConfig(
                "~/.roo/custom_modes.yaml",
                ".roomodes",
                ConversionFormat.FM_TO_YAML,
                strategy=YamlMerge(),
                file_extension=".yaml",
            ),
            ArtifactType.SKILL: _skills(".roo/skills", "~/.roo/skills"),
            ArtifactType.CONFIG: _single(".roo/rules/project-config.md", "~/.roo/rules/project-config.md"),
            ArtifactType.RULES: PathConfig("~/.roo/rules", ".roo/rules", MD_STRIP),
        },
        detect_paths=(".roo",),
    ),
    ProviderType.KILO: ProviderConfig(
        name=ProviderType.KILO,
        display_name="Kilo Code",
        subagents=SubagentSupport.PARTIAL,
        paths={
            ArtifactType.AGENT: PathConfig(
                "~/.kilocode/custom_modes.yaml",
                ".kilocodemodes",
                ConversionFormat.FM_TO_YAML,
                strategy=YamlMerge(),
                file_extension=".yaml",
            ),
            ArtifactType.SKILL: _skills(".kilocode/skills", "~/.kilocode/skills"),
            ArtifactType.CONFIG: _single(
                ".kilocode/rules/project-config.md", "~/.kilocode/rules/project-config.md"
            ),
            ArtifactType.RULES: PathConfig("~/.kilocode/rules", ".kilocode/rules", MD_STRIP),
        },
        detect_paths=(".kilocode",),
    ),
    ProviderType.WINDSURF: ProviderConfig(
        name=ProviderType.WINDSURF,
        display_name="Windsurf",
        subagents=SubagentSupport.NONE,
        paths={
            ArtifactType.AGENT: PathConfig(
                "~/.codeium/windsurf/rules",
                ".windsurf/rules",
                ConversionFormat.FM_STRIP,
                char_limit=12000,
            ),
            ArtifactType.SKILL: _skills(".windsurf/skills", "~/.codeium/windsurf/skills"),
            ArtifactType.CONFIG: _single(
                ".windsurf/rules/project-config.md",
                "~/.codeium/windsurf/memories/global_rules.md",
                char_limit=6000,
            ),
            # Windsurf caps the combined size of all rule files.
            ArtifactType.RULES: PathConfig(
                "~/.codeium/windsurf/rules",
                ".windsurf/rules",
                MD_STRIP,
                strategy=PerFile(total_char_limit=12000),
                char_limit=6000,
            ),
        },
        detect_paths=(".codeium/windsurf",),
    ),
    ProviderType.GOOSE: ProviderConfig(
        name=ProviderType.GOOSE,
        display_name="Goose",
        subagents=SubagentSupport.NONE,
        paths={
            ArtifactType.AGENT: _merged("AGENTS.md", None, ConversionFormat.FM_STRIP),
            ArtifactType.SKILL: _skills(".goose/skills", "~/.config/goose/skills"),
            ArtifactType.CONFIG: _single(".goosehints", "~/.config/goose/.goosehints"),
            ArtifactType.RULES: _merged("AGENTS.md", None),
        },
        detect_paths=(".config/goose",),
    ),
    ProviderType.GEMINI_CLI: ProviderConfig(
        name=ProviderType.GEMINI_CLI,
        display_name="Gemini CLI",
        subagents=SubagentSupport.PLANNED,
        paths={
            ArtifactType.AGENT: _merged("AGENTS.md", "~/.gemini/GEMINI.md", ConversionFormat.FM_STRIP),
            ArtifactType.COMMAND: PathConfig(
                "~/.gemini/commands",
                ".gemini/commands",
                ConversionFormat.MD_TO_TOML,
                file_extension=".toml",
            ),
            ArtifactType.SKILL: _skills(".gemini/skills", "~/.gemini/skills"),
            ArtifactType.CONFIG: _merged("AGENTS.md", "~/.gemini/GEMINI.md"),
            ArtifactType.RULES: _merged("AGENTS.md", "~/.gemini/GEMINI.md"),
        },
        detect_paths=(".gemini",),
    ),
    ProviderType.AMP: ProviderConfig(
        name=ProviderType.AMP,
        display_name="Amp",
        subagents=SubagentSupport.FULL,
        paths={
            ArtifactType.AGENT: _merged("AGENTS.md", "~/.config/AGENTS.md", ConversionFormat.FM_STRIP),
            ArtifactType.SKILL: _skills(".agents/skills", "~/.config/agents/skills"),
            ArtifactType.CONFIG: _merged("AGENTS.md", "~/.config/AGENTS.md"),
            ArtifactType.RULES: _merged("AGENTS.md", "~/.config/AGENTS.md"),
        },
        detect_paths=(".config/amp",),
    ),
    ProviderType.ANTIGRAVITY: ProviderConfig(
        name=ProviderType.ANTIGRAVITY,
        display_name="Antigravity",
        subagents=SubagentSupport.NONE,
        paths={
            ArtifactType.AGENT: PathConfig(
                "~/.gemini/antigravity", ".agent/rules", ConversionFormat.FM_STRIP
            ),
            ArtifactType.SKILL: _skills(".agent/skills", "~/.gemini/antigravity/skills"),
            ArtifactType.CONFIG: _single(
                ".agent/rules/project-config.md", "~/.gemini/antigravity/project-config.md"
            ),
            ArtifactType.RULES: PathConfig("~/.gemini/antigravity/rules", ".agent/rules", MD_STRIP),
        },
        detect_paths=(".gemini/antigravity",),
        detect_project_paths=(".agent",),
    ),
    ProviderType.CLINE: ProviderConfig(
        name=ProviderType.CLINE,
        display_name="Cline",
        subagents=SubagentSupport.NONE,
        paths={
            # Global Cline modes live in VS Code settings; project scope only.
            ArtifactType.AGENT: PathConfig(
                None, ".clinerules", ConversionFormat.FM_TO_JSON, strategy=JsonMerge()
            ),
            ArtifactType.SKILL: _skills(".cline/skills", "~/.cline/skills"),
            ArtifactType.CONFIG: _single(".clinerules/project-config.md", None),
            ArtifactType.RULES: PathConfig("~/Documents/Cline/Rules", ".clinerules", MD_STRIP),
        },
        detect_paths=(".cline",),
    ),
    ProviderType.OPENHANDS: ProviderConfig(
        name=ProviderType.OPENHANDS,
        display_name="OpenHands",
        subagents=SubagentSupport.NONE,
        paths={
            ArtifactType.AGENT: PathConfig(
                "~/.openhands/skills", ".openhands/skills", ConversionFormat.SKILL_MD
            ),
            ArtifactType.SKILL: _skills(".openhands/skills", "~/.openhands/skills"),
            ArtifactType.CONFIG: _single(".openhands/microagents/repo.md", None),
            ArtifactType.RULES: PathConfig(
                "~/.openhands/microagents", ".openhands/microagents", MD_STRIP
            ),
        },
        detect_paths=(".openhands",),
    ),
}


def get_provider(provider: ProviderType | str, catalog: ProviderCatalog | None = None) -> ProviderConfig | None:
    """Look up a provider by identifier.

    Args:
        provider: Provider identifier.
        catalog: Catalog to search (defaults to the built-in catalog).

    Returns:
        ProviderConfig, or None for an unknown identifier.
    """
    catalog = PROVIDERS if catalog is None else catalog
    try:
        return catalog.get(ProviderType(provider))
    except ValueError:
        return None


def get_path_config(
    provider: ProviderType | str,
    artifact_type: ArtifactType,
    catalog: ProviderCatalog | None = None,
) -> PathConfig | None:
    """Get the path configuration for a provider and artifact type."""
    config = get_provider(provider, catalog)
    return config.path_config(artifact_type) if config else None


def providers_supporting(
    artifact_type: ArtifactType, catalog: ProviderCatalog | None = None
) -> list[ProviderType]:
    """List providers that accept an artifact type, in catalog order."""
    catalog = PROVIDERS if catalog is None else catalog
    return [name for name, config in catalog.items() if config.supports(artifact_type)]


def detect_installed_providers(
    project_dir: Path | None = None, catalog: ProviderCatalog | None = None
) -> list[ProviderType]:
    """List providers whose tool appears to be installed on this machine."""
    catalog = PROVIDERS if catalog is None else catalog
    return [name for name, config in catalog.items() if config.is_installed(project_dir)]


def get_install_path(
    item_name: str,
    provider: ProviderType | str,
    artifact_type: ArtifactType,
    is_global: bool,
    project_dir: Path | None = None,
    catalog: ProviderCatalog | None = None,
) -> Path | None:
    """Get the file an item would be written to.

    Shared-target strategies return the shared file itself; per-file
    strategies return ``<base>/<name><extension>``.

    Returns:
        Target path, or None if the provider or scope is unsupported.
    """
    path_config = get_path_config(provider, artifact_type, catalog)
    if path_config is None:
        return None
    base = path_config.base_path(is_global, project_dir)
    if base is None:
        return None

    strategy = path_config.strategy
    if isinstance(strategy, JsonMerge):
        return base / strategy.modes_filename
    if isinstance(strategy, (SingleFile, MergeSingle, YamlMerge)):
        return base

    name = item_name.replace("\\", "/")
    if isinstance(strategy, PerFile) and not strategy.nested_commands:
        name = name.replace("/", "-")
    return base / f"{name}{path_config.file_extension}"
