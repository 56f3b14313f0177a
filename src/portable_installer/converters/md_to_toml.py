"""Markdown command to Gemini CLI TOML command."""

from __future__ import annotations

from portable_installer.converters.base import (
    BaseConverter,
    item_description,
    item_filename,
    quote,
)
from portable_installer.providers.base import ConversionFormat, ProviderCatalog
from portable_installer.types import ConversionResult, PortableItem, ProviderType


def escape_multiline(text: str) -> str:
    """Escape backslashes and triple quotes for a TOML multi-line basic string."""
    return text.replace("\\", "\\\\").replace('"""', '""\\"')


class MdToTomlConverter(BaseConverter):
    """Render a command as ``description`` plus a multi-line ``prompt``.

    ``$ARGUMENTS`` placeholders become Gemini's ``{{args}}``.
    """

    format = ConversionFormat.MD_TO_TOML

    def convert(
        self, item: PortableItem, provider: ProviderType, catalog: ProviderCatalog
    ) -> ConversionResult:
        prompt = escape_multiline(item.body.strip().replace("$ARGUMENTS", "{{args}}"))
        # A trailing quote would fuse with the closing delimiter.
        if prompt.endswith('"'):
            prompt += "\n"

        lines = []
        description = item_description(item)
        if description:
            lines.append(f"description = {quote(description)}")
        lines.append(f'prompt = """\n{prompt}\n"""')
        return ConversionResult(content="\n".join(lines) + "\n", filename=item_filename(item, ".toml"))
