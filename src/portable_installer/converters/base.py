"""Base class and shared helpers for item converters."""

from __future__ import annotations

import json
import re
from abc import ABC, abstractmethod
from typing import Any

import yaml

from portable_installer.providers.base import ConversionFormat, PathConfig, ProviderCatalog
from portable_installer.types import ArtifactType, ConversionResult, PortableItem, ProviderType

_SLUG_INVALID = re.compile(r"[^a-z0-9]+")


class BaseConverter(ABC):
    """Base class for conversion formats.

    Subclasses render one item into a provider's native dialect. Converters
    never write to disk; fatal problems are reported through
    ``ConversionResult.error``.
    """

    format: ConversionFormat

    @abstractmethod
    def convert(
        self, item: PortableItem, provider: ProviderType, catalog: ProviderCatalog
    ) -> ConversionResult:
        """Convert an item for a provider."""
        ...

    def path_config(
        self,
        item: PortableItem,
        provider: ProviderType,
        catalog: ProviderCatalog,
        default_type: ArtifactType,
    ) -> PathConfig | None:
        """Get the path configuration the item is being converted for."""
        config = catalog.get(provider)
        if config is None:
            return None
        return config.path_config(item.artifact_type or default_type)


def namespaced_name(item: PortableItem) -> str:
    """Get the ``/``-joined name of an item, honoring explicit segments."""
    name = item.name.replace("\\", "/")
    if "/" not in name and item.segments:
        return "/".join(item.segments)
    return name


def item_filename(item: PortableItem, extension: str) -> str:
    """Get the relative output filename for an item."""
    return f"{namespaced_name(item)}{extension}"


def to_slug(name: str) -> str:
    """Convert a name to kebab-case.

    Example:
        >>> to_slug("My Complex Agent_Name")
        'my-complex-agent-name'
    """
    return _SLUG_INVALID.sub("-", name.lower()).strip("-")


def parse_tools(value: Any) -> list[str]:
    """Parse a frontmatter ``tools`` value (comma string or list)."""
    if not value:
        return []
    if isinstance(value, str):
        parts = value.split(",")
    elif isinstance(value, (list, tuple)):
        parts = [str(part) for part in value]
    else:
        return []
    return [part.strip() for part in parts if part.strip()]


def item_description(item: PortableItem) -> str:
    """Get the item description, falling back to frontmatter."""
    return item.description or str(item.frontmatter.get("description") or "")


def quote(value: str) -> str:
    """Render a double-quoted scalar valid in both YAML and TOML."""
    return json.dumps(value, ensure_ascii=False)


def create_frontmatter_string(frontmatter: dict) -> str:
    """Create frontmatter string from dict.

    Args:
        frontmatter: Frontmatter dictionary.

    Returns:
        YAML frontmatter string with delimiters.
    """
    if not frontmatter:
        return ""
    yaml_str = yaml.dump(
        frontmatter, default_flow_style=False, sort_keys=False, allow_unicode=True
    )
    return f"---\n{yaml_str}---\n\n"
