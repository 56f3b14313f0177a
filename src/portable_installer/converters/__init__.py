"""Item converters: render portable items in each provider's dialect."""

from portable_installer.converters.base import BaseConverter, to_slug
from portable_installer.converters.engine import ConversionEngine
from portable_installer.converters.fm_strip import build_merged_agents_md
from portable_installer.converters.modes import (
    CustomMode,
    CustomModesFile,
    build_modes_json,
    build_yaml_modes_file,
    parse_yaml_modes_file,
)

__all__ = [
    "BaseConverter",
    "ConversionEngine",
    "CustomMode",
    "CustomModesFile",
    "build_merged_agents_md",
    "build_modes_json",
    "build_yaml_modes_file",
    "parse_yaml_modes_file",
    "to_slug",
]
