"""Shared test fixtures."""

from __future__ import annotations

import errno
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable

import pytest

from portable_installer.converters import ConversionEngine
from portable_installer.filesystem import RealFileSystem
from portable_installer.install import PortableInstaller
from portable_installer.protocols import FileSystem, ItemConverter
from portable_installer.providers import PROVIDERS, ConversionFormat, ProviderCatalog
from portable_installer.types import (
    ArtifactType,
    ConversionResult,
    PortableItem,
    ProviderType,
)


@pytest.fixture
def temp_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Override home directory for testing."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setattr(Path, "home", lambda: home)
    return home


@pytest.fixture
def project_dir(tmp_path: Path) -> Path:
    """Create an empty project directory."""
    project = tmp_path / "project"
    project.mkdir()
    return project


@pytest.fixture
def source_dir(tmp_path: Path) -> Path:
    """Create the kit directory items are read from."""
    source = tmp_path / "kit"
    source.mkdir()
    return source


# ============================================================================
# Registry Fake
# ============================================================================


@dataclass
class RecordedInstall:
    """One call to InMemoryRegistry.record."""

    item: str
    artifact_type: ArtifactType
    provider: ProviderType
    is_global: bool
    target_path: Path
    source_path: Path
    source_checksum: str
    target_checksum: str
    owned_sections: list[str] | None
    install_source: str


@dataclass
class InMemoryRegistry:
    """Registry double that keeps records in memory.

    Set ``fail_with`` to make every ``record`` call raise.
    """

    records: list[RecordedInstall] = field(default_factory=list)
    fail_with: Exception | None = None

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
        if self.fail_with is not None:
            raise self.fail_with
        self.records.append(
            RecordedInstall(
                item=item,
                artifact_type=artifact_type,
                provider=provider,
                is_global=is_global,
                target_path=target_path,
                source_path=source_path,
                source_checksum=source_checksum,
                target_checksum=target_checksum,
                owned_sections=owned_sections,
                install_source=install_source,
            )
        )

    def for_item(self, name: str) -> list[RecordedInstall]:
        return [r for r in self.records if r.item == name]


@pytest.fixture
def memory_registry() -> InMemoryRegistry:
    """Create an in-memory registry."""
    return InMemoryRegistry()


# ============================================================================
# Item Factory
# ============================================================================


@pytest.fixture
def make_item(source_dir: Path) -> Callable[..., PortableItem]:
    """Factory for portable items whose source file exists in the kit."""

    def _make(
        name: str,
        body: str = "Do the work carefully.",
        frontmatter: dict[str, Any] | None = None,
        description: str = "",
        segments: tuple[str, ...] = (),
    ) -> PortableItem:
        source_path = source_dir / f"{name.replace('/', '__')}.md"
        source_path.write_text(body)
        return PortableItem(
            name=name,
            source_path=source_path,
            frontmatter=frontmatter or {},
            body=body,
            segments=segments,
            description=description,
        )

    return _make


# ============================================================================
# Converter and Filesystem Doubles
# ============================================================================


@dataclass
class StubConverter:
    """Converter that emits the item body as-is.

    Items named in ``errors`` fail conversion with that message, items named
    in ``raises`` make ``convert`` raise; ``warnings`` are attached to every
    result.
    """

    errors: dict[str, str] = field(default_factory=dict)
    raises: dict[str, Exception] = field(default_factory=dict)
    warnings: list[str] = field(default_factory=list)
    extension: str = ".md"

    def convert(
        self, item: PortableItem, fmt: ConversionFormat, provider: ProviderType
    ) -> ConversionResult:
        if item.name in self.raises:
            raise self.raises[item.name]
        if item.name in self.errors:
            return ConversionResult(
                content="",
                filename=item.name,
                warnings=list(self.warnings),
                error=self.errors[item.name],
            )
        return ConversionResult(
            content=item.body,
            filename=f"{item.name}{self.extension}",
            warnings=list(self.warnings),
        )


class FailingFileSystem(RealFileSystem):
    """Real filesystem whose numbered writes raise.

    Writes are counted from 1; each write whose number is in ``fail_writes``
    raises ``error`` instead of touching the disk.
    """

    def __init__(self, fail_writes: set[int], error: OSError | None = None) -> None:
        self.fail_writes = fail_writes
        self.error = error or OSError(errno.ENOSPC, "No space left on device")
        self.writes = 0

    def write_text(self, path: Path, content: str) -> None:
        self.writes += 1
        if self.writes in self.fail_writes:
            raise self.error
        super().write_text(path, content)


# ============================================================================
# Installer
# ============================================================================


@pytest.fixture
def make_installer(
    temp_home: Path, project_dir: Path, memory_registry: InMemoryRegistry
) -> Callable[..., PortableInstaller]:
    """Factory for installers wired to the in-memory registry."""

    def _make(
        converter: ItemConverter | None = None,
        filesystem: FileSystem | None = None,
        catalog: ProviderCatalog | None = None,
    ) -> PortableInstaller:
        catalog = PROVIDERS if catalog is None else catalog
        return PortableInstaller(
            registry=memory_registry,
            converter=converter or ConversionEngine(catalog),
            filesystem=filesystem or RealFileSystem(),
            catalog=catalog,
            project_dir=project_dir,
        )

    return _make


@pytest.fixture
def installer(make_installer: Callable[..., PortableInstaller]) -> PortableInstaller:
    """Create an installer with the built-in converters and catalog."""
    return make_installer()
