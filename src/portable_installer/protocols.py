"""Interfaces the installer and its write strategies are built against.

The converter, the registry and the filesystem are injected, so tests can
swap in an in-memory registry or a filesystem that fails on a chosen write.
Implementations match structurally; none of them subclass these protocols.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from portable_installer.providers.base import ConversionFormat
    from portable_installer.types import (
        ArtifactType,
        ConversionResult,
        PortableItem,
        ProviderType,
    )


@runtime_checkable
class ItemConverter(Protocol):
    """Protocol for converting one item into a provider-native representation.

    Implementations are pure: no filesystem or registry side effects.
    """

    def convert(
        self, item: PortableItem, fmt: ConversionFormat, provider: ProviderType
    ) -> ConversionResult:
        """Convert an item for a provider.

        Args:
            item: The portable item.
            fmt: Output dialect configured for the provider and artifact type.
            provider: Target provider.

        Returns:
            ConversionResult with content, target filename (or slug) and warnings.
            A fatal problem is reported through ``error`` rather than raised.
        """
        ...


@runtime_checkable
class InstallRegistry(Protocol):
    """Protocol for recording install provenance.

    Implementations persist one entry per item/type/provider/scope and are
    expected to be safe for concurrent calls from separate processes.
    """

    def record(
        self,
        item: str,
        artifact_type: ArtifactType,
        provider: ProviderType,
        is_global: bool,
        target_path: Path,
        source_path: Path,
        *,
        source_checksum: str,
        target_checksum: str,
        owned_sections: list[str] | None = None,
        install_source: str = "kit",
    ) -> None:
        """Record an installation.

        Args:
            item: Item name.
            artifact_type: Artifact category.
            provider: Target provider.
            is_global: True for a global (home directory) install.
            target_path: File the item was written into.
            source_path: Source file of the item.
            source_checksum: Checksum of the converted content.
            target_checksum: Checksum of what the item occupies in the target.
            owned_sections: Section keys or slugs owned in a shared target.
            install_source: Origin of the installation ("kit" or "manual").
        """
        ...


@runtime_checkable
class FileSystem(Protocol):
    """File access used for every read, write and rollback of a target."""

    def read_text(self, path: Path) -> str:
        """Read a UTF-8 file with its line endings untouched.

        Raises:
            FileNotFoundError: If the file is missing.
        """
        ...

    def write_text(self, path: Path, content: str) -> None:
        """Replace a file's content atomically; the parent must exist."""
        ...

    def exists(self, path: Path) -> bool:
        """Check if a path exists."""
        ...

    def is_dir(self, path: Path) -> bool:
        """Check if a path is a directory."""
        ...

    def mkdir(self, path: Path, parents: bool = False, exist_ok: bool = False) -> None:
        """Create a directory, with the same flags as ``Path.mkdir``."""
        ...

    def unlink(self, path: Path) -> None:
        """Delete a file; raises FileNotFoundError if it is already gone."""
        ...
