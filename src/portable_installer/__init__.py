"""Portable installer of AI-assistant artifacts into coding-agent tools."""

__version__ = "0.1.0"

# Export protocol interfaces for type hints and dependency injection
from portable_installer.protocols import (
    FileSystem,
    InstallRegistry,
    ItemConverter,
)

__all__ = [
    "__version__",
    "FileSystem",
    "InstallRegistry",
    "ItemConverter",
]
