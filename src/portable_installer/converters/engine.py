"""Conversion engine: routes items to the converter for a format.

Pattern: Strategy - each conversion format is a converter class registered
in a lookup table, so new formats can be added without touching ``convert()``.
"""

from __future__ import annotations

import logging

import yaml

from portable_installer.converters.base import BaseConverter
from portable_installer.converters.fm_strip import FmStripConverter
from portable_installer.converters.frontmatter import (
    DirectCopyConverter,
    FmToFmConverter,
    SkillMdConverter,
)
from portable_installer.converters.md_strip import MdStripConverter, MdToMdcConverter
from portable_installer.converters.md_to_toml import MdToTomlConverter
from portable_installer.converters.modes import FmToJsonConverter, FmToYamlConverter
from portable_installer.providers.base import ConversionFormat, ProviderCatalog
from portable_installer.providers.catalog import PROVIDERS
from portable_installer.types import ConversionResult, PortableItem, ProviderType

logger = logging.getLogger(__name__)


class ConversionEngine:
    """Converts items into provider-native content.

    Satisfies the ItemConverter protocol structurally.
    """

    def __init__(self, catalog: ProviderCatalog | None = None) -> None:
        """Initialize the engine with the built-in converters.

        Args:
            catalog: Provider catalog converters consult for paths and
                limits. Defaults to the built-in catalog.
        """
        self.catalog = PROVIDERS if catalog is None else catalog
        self._converters: dict[ConversionFormat, BaseConverter] = {}
        self._register_default_converters()

    def _register_default_converters(self) -> None:
        for converter in (
            DirectCopyConverter(),
            FmToFmConverter(),
            FmStripConverter(),
            FmToYamlConverter(),
            FmToJsonConverter(),
            MdToTomlConverter(),
            SkillMdConverter(),
            MdStripConverter(),
            MdToMdcConverter(),
        ):
            self.register_converter(converter)

    def register_converter(self, converter: BaseConverter) -> None:
        """Register a converter, replacing any converter for the same format."""
        self._converters[converter.format] = converter

    def get_converter(self, fmt: ConversionFormat) -> BaseConverter | None:
        """Get the converter for a format."""
        return self._converters.get(fmt)

    def convert(
        self, item: PortableItem, fmt: ConversionFormat, provider: ProviderType
    ) -> ConversionResult:
        """Convert an item for a provider.

        Args:
            item: The portable item.
            fmt: Output dialect.
            provider: Target provider.

        Returns:
            ConversionResult; ``error`` is set when the format is unknown or
            the item cannot be rendered.
        """
        converter = self.get_converter(fmt)
        if converter is None:
            name = fmt.value if isinstance(fmt, ConversionFormat) else fmt
            return ConversionResult(
                content="", filename=item.name, error=f"Unsupported conversion format: {name}"
            )
        try:
            return converter.convert(item, provider, self.catalog)
        except (ValueError, TypeError, yaml.YAMLError) as exc:
            logger.debug("Converter %s failed for %s", fmt, item.name, exc_info=True)
            return ConversionResult(content="", filename=item.name, error=str(exc))
