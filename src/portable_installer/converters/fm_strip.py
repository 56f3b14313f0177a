"""Frontmatter-stripping converter for plain Markdown providers."""

from __future__ import annotations

from portable_installer.converters.base import BaseConverter, item_filename
from portable_installer.providers.base import ConversionFormat, MergeSingle, ProviderCatalog
from portable_installer.types import ArtifactType, ConversionResult, PortableItem, ProviderType

MERGED_AGENTS_FILENAME = "AGENTS.md"
TRUNCATION_MARKER = "\n\n[truncated to fit {limit} characters]\n"


def build_merged_agents_md(sections: list[str], display_name: str) -> str:
    """Build a merged agents file with its generated banner.

    Args:
        sections: Rendered ``## Agent:`` sections.
        display_name: Provider name shown in the banner.

    Returns:
        File content ending with a newline.
    """
    body = "\n---\n\n".join(section.strip() for section in sections)
    return (
        "# Agents\n\n"
        "> Ported from Claude Code agents via portable-installer\n"
        f"> Target: {display_name}\n\n"
        f"{body}\n"
    )


def truncate(content: str, limit: int) -> str:
    """Cut content to at most ``limit`` characters, ending in a marker."""
    marker = TRUNCATION_MARKER.format(limit=limit)
    return content[: max(limit - len(marker), 0)].rstrip() + marker


class FmStripConverter(BaseConverter):
    """Drop frontmatter and render the body under a heading.

    Merge-single providers get a ``## Agent: <name>`` section destined for
    ``AGENTS.md``; per-file providers get one ``# <name>`` file per item,
    truncated to the provider's per-file limit.
    """

    format = ConversionFormat.FM_STRIP

    def convert(
        self, item: PortableItem, provider: ProviderType, catalog: ProviderCatalog
    ) -> ConversionResult:
        path_config = self.path_config(item, provider, catalog, ArtifactType.AGENT)
        body = item.body.strip()

        if path_config is not None and isinstance(path_config.strategy, MergeSingle):
            return ConversionResult(
                content=f"## Agent: {item.display_name.strip()}\n\n{body}\n",
                filename=MERGED_AGENTS_FILENAME,
            )

        content = f"# {item.display_name}\n\n{body}\n"
        warnings: list[str] = []
        limit = path_config.char_limit if path_config else None
        if limit and len(content) > limit:
            warnings.append(
                f"{item.name}: content truncated from {len(content)} to {limit} characters"
            )
            content = truncate(content, limit)

        extension = path_config.file_extension if path_config else ".md"
        return ConversionResult(
            content=content, filename=item_filename(item, extension), warnings=warnings
        )
