"""Converters that keep or rewrite YAML frontmatter."""

from __future__ import annotations

import logging

from portable_installer.converters.base import (
    BaseConverter,
    create_frontmatter_string,
    item_description,
    item_filename,
    parse_tools,
    quote,
)
from portable_installer.providers.base import ConversionFormat, ProviderCatalog
from portable_installer.types import ArtifactType, ConversionResult, PortableItem, ProviderType

logger = logging.getLogger(__name__)

COPILOT_CHAR_LIMIT = 30000

# Claude Code tool names to Copilot agent tool names
COPILOT_TOOL_MAP = {
    "read": "read",
    "write": "edit",
    "edit": "edit",
    "multiedit": "edit",
    "glob": "search",
    "grep": "search",
    "bash": "run_in_terminal",
    "webfetch": "fetch",
    "websearch": "fetch",
}


class DirectCopyConverter(BaseConverter):
    """Re-emit the item unchanged: frontmatter plus body.

    When no frontmatter was parsed (missing or malformed), the raw source
    file is copied as-is so nothing is lost.
    """

    format = ConversionFormat.DIRECT_COPY

    def convert(
        self, item: PortableItem, provider: ProviderType, catalog: ProviderCatalog
    ) -> ConversionResult:
        path_config = self.path_config(item, provider, catalog, ArtifactType.AGENT)
        extension = path_config.file_extension if path_config else ".md"
        filename = item_filename(item, extension)

        if not item.frontmatter:
            try:
                content = item.source_path.read_text(encoding="utf-8")
            except OSError:
                logger.debug("Source %s unreadable, using parsed body", item.source_path)
                content = item.body
            return ConversionResult(content=content, filename=filename)

        content = create_frontmatter_string(item.frontmatter) + item.body.lstrip("\n")
        if not content.endswith("\n"):
            content += "\n"
        return ConversionResult(content=content, filename=filename)


class FmToFmConverter(BaseConverter):
    """Translate Claude Code frontmatter into another tool's frontmatter."""

    format = ConversionFormat.FM_TO_FM

    def convert(
        self, item: PortableItem, provider: ProviderType, catalog: ProviderCatalog
    ) -> ConversionResult:
        if provider == ProviderType.GITHUB_COPILOT:
            return self._to_copilot(item)
        if provider == ProviderType.CURSOR:
            return self._to_cursor(item)
        return ConversionResult(
            content=item.body,
            filename=item_filename(item, ".md"),
            warnings=[f"No FM-to-FM converter for {provider.value}; copied body only"],
        )

    def _to_copilot(self, item: PortableItem) -> ConversionResult:
        lines = ["---", f"name: {quote(item.display_name)}"]
        description = item_description(item)
        if description:
            lines.append(f"description: {quote(description)}")

        tools: list[str] = []
        for tool in parse_tools(item.frontmatter.get("tools")):
            mapped = COPILOT_TOOL_MAP.get(tool.lower())
            if mapped and mapped not in tools:
                tools.append(mapped)
        if tools:
            lines.append("tools:")
            lines.extend(f"  - {tool}" for tool in tools)

        model = item.frontmatter.get("model")
        if model:
            lines.append(f"model: {quote(str(model))}")
        lines.append("---")

        content = "\n".join(lines) + f"\n\n{item.body.strip()}\n"
        warnings = []
        if len(content) > COPILOT_CHAR_LIMIT:
            warnings.append(
                f"{item.name}: {len(content)} characters exceeds Copilot's 30K agent limit"
            )
        return ConversionResult(
            content=content, filename=item_filename(item, ".agent.md"), warnings=warnings
        )

    def _to_cursor(self, item: PortableItem) -> ConversionResult:
        description = item_description(item) or f"{item.display_name} agent"
        content = (
            f"---\ndescription: {quote(description)}\nalwaysApply: false\n---\n\n"
            f"{item.body.strip()}\n"
        )
        return ConversionResult(content=content, filename=item_filename(item, ".mdc"))


class SkillMdConverter(BaseConverter):
    """Render an agent as an OpenHands-style ``<name>/SKILL.md``."""

    format = ConversionFormat.SKILL_MD

    def convert(
        self, item: PortableItem, provider: ProviderType, catalog: ProviderCatalog
    ) -> ConversionResult:
        frontmatter = {"name": item.display_name}
        description = item_description(item)
        if description:
            frontmatter["description"] = description

        content = (
            create_frontmatter_string(frontmatter)
            + f"# {item.display_name}\n\n{item.body.strip()}\n"
        )
        return ConversionResult(content=content, filename=item_filename(item, "/SKILL.md"))
