"""Strip Claude Code specific references from Markdown.

Used for rules and config, which are plain Markdown prose that mention
Claude Code tools, slash commands and ``.claude/`` paths. Fenced code
blocks are left untouched by the inline rewrites.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass, field

from portable_installer.converters.base import (
    BaseConverter,
    item_description,
    item_filename,
    quote,
)
from portable_installer.providers.base import (
    ConversionFormat,
    PathConfig,
    PerFile,
    ProviderCatalog,
    SubagentSupport,
)
from portable_installer.types import ArtifactType, ConversionResult, PortableItem, ProviderType

MAX_CONTENT_SIZE = 512_000

_CODE_BLOCK = re.compile(r"(```[\s\S]*?```)")

TOOL_REPLACEMENTS: list[tuple[re.Pattern[str], str]] = [
    (re.compile(r"\b(?:the\s+)?Read\s+tool\b", re.IGNORECASE), "file reading"),
    (re.compile(r"\buse\s+Read\b", re.IGNORECASE), "use file reading"),
    (re.compile(r"\b(?:the\s+)?Write\s+tool\b", re.IGNORECASE), "file writing"),
    (re.compile(r"\buse\s+Write\b", re.IGNORECASE), "use file writing"),
    (re.compile(r"\b(?:the\s+)?Edit\s+tool\b", re.IGNORECASE), "file editing"),
    (re.compile(r"\buse\s+Edit\b", re.IGNORECASE), "use file editing"),
    (re.compile(r"\b(?:the\s+)?Bash\s+tool\b", re.IGNORECASE), "terminal/shell"),
    (re.compile(r"\buse\s+Bash\b", re.IGNORECASE), "use terminal/shell"),
    (re.compile(r"\b(?:the\s+)?Grep\s+tool\b", re.IGNORECASE), "code search"),
    (re.compile(r"\buse\s+Grep\b", re.IGNORECASE), "use code search"),
    (re.compile(r"\b(?:the\s+)?Glob\s+tool\b", re.IGNORECASE), "file search"),
    (re.compile(r"\buse\s+Glob\b", re.IGNORECASE), "use file search"),
    (re.compile(r"\b(?:the\s+)?Task\s+tool\b", re.IGNORECASE), "subtask delegation"),
    (re.compile(r"\buse\s+Task\b", re.IGNORECASE), "use subtask delegation"),
    (re.compile(r"\bWebFetch\b"), "web access"),
    (re.compile(r"\bWebSearch\b"), "web access"),
    (re.compile(r"\bNotebookEdit\b"), "notebook editing"),
]

# Not preceded by a word character, ':' '/' or '.', so URLs and relative
# paths are never matched.
_SLASH_COMMAND = re.compile(r"(?<![\w/:.])/[a-z][a-z0-9/._:-]+")
_TRAILING_PUNCTUATION = ".,!?;:"
_PRESERVED_PATH_PREFIXES = ("/api/", "/src/", "/home/", "/Users/", "/var/", "/etc/", "/opt/", "/tmp/")
_FILE_EXTENSION = re.compile(r"\.\w+$")

DIRECTORY_FALLBACKS = {
    ArtifactType.RULES: "project rules directory/",
    ArtifactType.AGENT: "project subagents directory/",
    ArtifactType.COMMAND: "project commands directory/",
    ArtifactType.SKILL: "project skills directory/",
}
CLAUDE_DIR_NAMES = {
    ArtifactType.RULES: "rules",
    ArtifactType.AGENT: "agents",
    ArtifactType.COMMAND: "commands",
    ArtifactType.SKILL: "skills",
}
CONFIG_FALLBACK = "project configuration file"

DELEGATION_PATTERNS = [
    re.compile(r"^.*\bdelegate\s+to\s+`[^`]+`\s+agent.*$", re.IGNORECASE | re.MULTILINE),
    re.compile(r"^.*\bspawn.*agent.*$", re.IGNORECASE | re.MULTILINE),
    re.compile(r"^.*\buse.*subagent.*$", re.IGNORECASE | re.MULTILINE),
    re.compile(r"^.*\bactivate.*skill.*$", re.IGNORECASE | re.MULTILINE),
]

_HEADING = re.compile(r"^(#{1,6})\s+(.+)$")
_HOOK_TITLE = re.compile(r"hook", re.IGNORECASE)
_CLAUDE_API = re.compile(r"SendMessage|TaskCreate|TaskUpdate")
_CLAUDE_API_TITLE = re.compile(r"SendMessage|TaskCreate|TaskUpdate", re.IGNORECASE)
_AGENT_TEAM_TITLE = re.compile(r"agent\s+team", re.IGNORECASE)


@dataclass
class StripResult:
    """Outcome of stripping one document."""

    content: str
    warnings: list[str] = field(default_factory=list)
    removed_sections: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class _PathTarget:
    path: str
    is_directory: bool


def _map_prose(content: str, fn: Callable[[str], str]) -> str:
    """Apply ``fn`` to every part of ``content`` outside fenced code blocks."""
    parts = _CODE_BLOCK.split(content)
    return "".join(part if index % 2 else fn(part) for index, part in enumerate(parts))


def _path_target(
    provider: ProviderType | None, artifact_type: ArtifactType, catalog: ProviderCatalog
) -> _PathTarget | None:
    config = catalog.get(provider) if provider is not None else None
    path_config: PathConfig | None = config.path_config(artifact_type) if config else None
    if path_config is None:
        return None
    raw = path_config.project_path or path_config.global_path
    if not raw:
        return None

    path = raw.replace("\\", "/").removeprefix("./")
    is_directory = isinstance(path_config.strategy, PerFile)
    if is_directory and not path.endswith("/"):
        path += "/"
    return _PathTarget(path=path, is_directory=is_directory)


def _remove_slash_command(match: re.Match[str]) -> str:
    command = match.group(0)
    trailing = command[-1] if command[-1] in _TRAILING_PUNCTUATION else ""
    bare = command[:-1] if trailing else command

    if bare.startswith(_PRESERVED_PATH_PREFIXES):
        return command
    if _FILE_EXTENSION.search(bare):
        return command
    if bare.count("/") >= 3:
        return command
    return trailing


def _rewrite_claude_dir(
    text: str, dir_name: str, target: _PathTarget | None, fallback: str
) -> str:
    with_items = re.compile(rf"\.claude/{dir_name}/([a-zA-Z0-9_./-]+)", re.IGNORECASE)
    bare = re.compile(rf"\.claude/{dir_name}/", re.IGNORECASE)

    def replace_item(match: re.Match[str]) -> str:
        suffix = match.group(1)
        if target is None:
            return f"{fallback}{suffix}"
        return f"{target.path}{suffix}" if target.is_directory else target.path

    text = with_items.sub(replace_item, text)
    return bare.sub(target.path if target else fallback, text)


def _remove_sections(content: str, preserve_delegation: bool) -> tuple[str, list[str]]:
    kept: list[str] = []
    removed: list[str] = []
    skipping = False
    skip_level = 0

    for line in content.split("\n"):
        heading = _HEADING.match(line)
        if heading:
            level = len(heading.group(1))
            title = heading.group(2)
            if (
                _HOOK_TITLE.search(title)
                or _CLAUDE_API_TITLE.search(title)
                or (not preserve_delegation and _AGENT_TEAM_TITLE.search(title))
            ):
                skipping = True
                skip_level = level
                removed.append(title.strip())
                continue
            if skipping and level <= skip_level:
                skipping = False

        if skipping or _CLAUDE_API.search(line):
            continue
        kept.append(line)

    return "\n".join(kept), removed


def strip_claude_refs(
    content: str,
    provider: ProviderType | None,
    catalog: ProviderCatalog,
    char_limit: int | None = None,
) -> StripResult:
    """Strip Claude Code specific references from Markdown content.

    Args:
        content: Markdown text.
        provider: Target provider; its own paths replace ``.claude/`` paths.
        catalog: Provider catalog used to look those paths up.
        char_limit: Truncate the result to this many characters.

    Returns:
        StripResult with the rewritten content, warnings and the titles of
        removed sections.
    """
    if len(content) > MAX_CONTENT_SIZE:
        return StripResult(
            content=content,
            warnings=[f"Content exceeds {MAX_CONTENT_SIZE} chars; stripping skipped"],
        )

    targets = {kind: _path_target(provider, kind, catalog) for kind in CLAUDE_DIR_NAMES}
    config_target = _path_target(provider, ArtifactType.CONFIG, catalog)
    config_replacement = config_target.path if config_target else CONFIG_FALLBACK

    def rewrite(text: str) -> str:
        for pattern, replacement in TOOL_REPLACEMENTS:
            text = pattern.sub(replacement, text)
        text = _SLASH_COMMAND.sub(_remove_slash_command, text)
        for kind, dir_name in CLAUDE_DIR_NAMES.items():
            text = _rewrite_claude_dir(text, dir_name, targets[kind], DIRECTORY_FALLBACKS[kind])
        return re.sub(r"\bCLAUDE\.md\b", config_replacement, text)

    result = _map_prose(content, rewrite)
    result = "\n".join(line for line in result.split("\n") if ".claude/hooks/" not in line)

    config = catalog.get(provider) if provider is not None else None
    subagents = config.subagents if config else SubagentSupport.NONE
    preserve_delegation = subagents is not SubagentSupport.NONE
    if not preserve_delegation:
        for pattern in DELEGATION_PATTERNS:
            result = pattern.sub("", result)

    result, removed = _remove_sections(result, preserve_delegation)

    result = re.sub(r"\n{3,}", "\n\n", result)
    result = "\n".join(line.rstrip() for line in result.split("\n")).strip()

    warnings: list[str] = []
    if char_limit and len(result) > char_limit:
        result = result[:char_limit]
        target = provider.value if provider is not None else "target"
        warnings.append(f"Content truncated to {char_limit} characters for {target}")
    if not result:
        warnings.append("All content was Claude-specific")
    return StripResult(content=result, warnings=warnings, removed_sections=removed)


def _char_limit(item: PortableItem, provider: ProviderType, catalog: ProviderCatalog) -> int | None:
    config = catalog.get(provider)
    if config is None:
        return None
    for artifact_type in (item.artifact_type, ArtifactType.CONFIG, ArtifactType.RULES):
        path_config = config.path_config(artifact_type) if artifact_type else None
        if path_config is not None:
            return path_config.char_limit
    return None


class MdStripConverter(BaseConverter):
    """Plain Markdown with Claude Code references rewritten."""

    format = ConversionFormat.MD_STRIP

    def convert(
        self, item: PortableItem, provider: ProviderType, catalog: ProviderCatalog
    ) -> ConversionResult:
        stripped = strip_claude_refs(
            item.body, provider, catalog, _char_limit(item, provider, catalog)
        )
        path_config = self.path_config(item, provider, catalog, ArtifactType.RULES)
        extension = path_config.file_extension if path_config else ".md"
        return ConversionResult(
            content=stripped.content + "\n" if stripped.content else "",
            filename=item_filename(item, extension),
            warnings=stripped.warnings,
        )


def title_from_name(name: str) -> str:
    """Turn ``my-test-config`` into ``My Test Config``."""
    words = re.split(r"[-_\s/]+", name)
    return " ".join(word[:1].upper() + word[1:] for word in words if word)


class MdToMdcConverter(BaseConverter):
    """Cursor ``.mdc`` rule: stripped Markdown under MDC frontmatter.

    Rules without ``globs`` apply to every request.
    """

    format = ConversionFormat.MD_TO_MDC

    def convert(
        self, item: PortableItem, provider: ProviderType, catalog: ProviderCatalog
    ) -> ConversionResult:
        stripped = strip_claude_refs(item.body, provider, catalog)
        description = item_description(item) or f"{title_from_name(item.name)} rules"

        lines = ["---", f"description: {quote(description)}"]
        globs = item.frontmatter.get("globs")
        if globs:
            if isinstance(globs, (list, tuple)):
                globs = ",".join(str(glob) for glob in globs)
            lines.append(f"globs: {globs}")
            lines.append("alwaysApply: false")
        else:
            lines.append("alwaysApply: true")
        lines.append("---")

        content = "\n".join(lines) + f"\n\n{stripped.content}\n"
        return ConversionResult(
            content=content, filename=item_filename(item, ".mdc"), warnings=stripped.warnings
        )
