"""Custom-mode converters for Roo/Kilo (YAML) and Cline (JSON).

Both tools describe agents as "modes": a slug, a display name, a role
definition and the tool groups the mode may use.
"""

from __future__ import annotations

import json
import re
from typing import Any, Union

from pydantic import BaseModel, ConfigDict, Field

from portable_installer.converters.base import (
    BaseConverter,
    item_description,
    parse_tools,
    quote,
    to_slug,
)
from portable_installer.providers.base import ConversionFormat, ProviderCatalog
from portable_installer.types import ConversionResult, PortableItem, ProviderType

DEFAULT_GROUPS = ["read", "edit", "command", "mcp"]

# Claude Code tool names to mode tool groups
TOOL_GROUP_MAP = {
    "read": "read",
    "glob": "read",
    "grep": "read",
    "edit": "edit",
    "write": "edit",
    "multiedit": "edit",
    "bash": "command",
    "webfetch": "browser",
    "websearch": "browser",
}

MODES_ROOT_KEY = "customModes"
_YAML_ROOT = re.compile(r"^customModes:[ \t]*\r?\n", re.MULTILINE)
_YAML_ENTRY_BOUNDARY = re.compile(r"(?=\n  - slug:)")
_YAML_SLUG = re.compile(r"-\s*slug:\s*[\"']?([^\"'\s]+)")


class CustomMode(BaseModel):
    """One mode record of a JSON modes file.

    Keys this model does not know are kept as-is.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    slug: str
    name: str
    role_definition: str = Field(alias="roleDefinition")
    groups: list[Union[str, list[Any]]]
    custom_instructions: str = Field(default="", alias="customInstructions")


class CustomModesFile(BaseModel):
    """Root object of a JSON modes file."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    custom_modes: list[CustomMode] | None = Field(default=None, alias="customModes")


def tools_to_groups(tools: Any) -> list[str]:
    """Map frontmatter tools to mode groups.

    Example:
        >>> tools_to_groups("Read,Edit,Bash,WebFetch")
        ['read', 'edit', 'command', 'browser', 'mcp']
        >>> tools_to_groups(None)
        ['read', 'edit', 'command', 'mcp']
    """
    names = parse_tools(tools)
    if not names:
        return list(DEFAULT_GROUPS)

    groups: list[str] = []
    for name in names:
        group = TOOL_GROUP_MAP.get(name.lower())
        if group and group not in groups:
            groups.append(group)
    groups.append("mcp")
    return groups


def role_definition(item: PortableItem) -> str:
    """Get the role text of a mode: the body, or the description if empty."""
    return item.body.strip() or item_description(item) or item.display_name


class FmToYamlConverter(BaseConverter):
    """Render an agent as one ``  - slug: "..."`` YAML mode entry.

    The result ``filename`` carries the slug.
    """

    format = ConversionFormat.FM_TO_YAML

    def convert(
        self, item: PortableItem, provider: ProviderType, catalog: ProviderCatalog
    ) -> ConversionResult:
        slug = to_slug(item.name)
        if not slug:
            return ConversionResult(content="", filename="", error="cannot derive a mode slug")

        lines = [f"  - slug: {quote(slug)}", f"    name: {quote(item.display_name)}"]
        description = item_description(item)
        if description:
            lines.append(f"    description: {quote(description)}")

        lines.append("    roleDefinition: |")
        lines.extend(f"      {line}".rstrip() for line in role_definition(item).split("\n"))

        lines.append("    groups:")
        lines.extend(f"      - {group}" for group in tools_to_groups(item.frontmatter.get("tools")))
        lines.append('    customInstructions: ""')
        return ConversionResult(content="\n".join(lines), filename=slug)


def build_yaml_modes_file(entries: list[str]) -> str:
    """Wrap mode entries under the ``customModes:`` root."""
    body = "\n".join(entry.rstrip() for entry in entries if entry.strip())
    return f"{MODES_ROOT_KEY}:\n{body}\n"


def parse_yaml_modes_file(content: str) -> dict[str, str]:
    """Split a YAML modes file into raw entries keyed by slug.

    Entry text is returned exactly as found (minus surrounding blank lines),
    so untouched entries can be written back byte for byte.

    Args:
        content: File content.

    Returns:
        Ordered mapping of slug to entry text; empty when there is no
        ``customModes:`` root.
    """
    match = _YAML_ROOT.search(content)
    if not match:
        return {}

    modes: dict[str, str] = {}
    for part in _YAML_ENTRY_BOUNDARY.split(content[match.end():]):
        entry = part.lstrip("\r\n").rstrip()
        if not entry:
            continue
        slug_match = _YAML_SLUG.search(entry)
        if slug_match:
            modes[slug_match.group(1)] = entry
    return modes


class FmToJsonConverter(BaseConverter):
    """Render an agent as a Cline JSON mode record."""

    format = ConversionFormat.FM_TO_JSON

    def convert(
        self, item: PortableItem, provider: ProviderType, catalog: ProviderCatalog
    ) -> ConversionResult:
        slug = to_slug(item.name)
        if not slug:
            return ConversionResult(content="", filename="", error="cannot derive a mode slug")

        mode = CustomMode(
            slug=slug,
            name=item.display_name,
            role_definition=role_definition(item),
            groups=tools_to_groups(item.frontmatter.get("tools")),
            custom_instructions="",
        )
        return ConversionResult(content=json.dumps(dump_mode(mode), indent=2), filename=slug)


def dump_mode(mode: CustomMode) -> dict[str, Any]:
    """Serialize a mode with on-disk key names, keeping unknown keys."""
    return mode.model_dump(by_alias=True, exclude_unset=True)


def build_modes_json(modes: list[CustomMode]) -> str:
    """Build the content of a JSON modes file."""
    data = {MODES_ROOT_KEY: [dump_mode(mode) for mode in modes]}
    return json.dumps(data, indent=2, ensure_ascii=False) + "\n"
