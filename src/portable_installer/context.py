"""Wiring of the objects CLI commands work with.

Commands take an optional ``_context``; production code builds one with
``create_context`` and tests pass an ``AppContext`` holding doubles.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from portable_installer.protocols import FileSystem

if TYPE_CHECKING:
    from portable_installer.install import PortableInstaller
    from portable_installer.providers import ProviderCatalog
    from portable_installer.registry import RegistryManager


def _real_filesystem() -> FileSystem:
    from portable_installer.filesystem import RealFileSystem
    return RealFileSystem()


def _builtin_catalog() -> ProviderCatalog:
    from portable_installer.providers import PROVIDERS
    return PROVIDERS


@dataclass
class AppContext:
    """Registry, installer and project a CLI invocation operates on.

    Attributes:
        registry: Installation registry.
        installer: Installer sharing that registry.
        project_dir: Root for project-level paths.
        catalog: Provider catalog (the built-in one unless overridden).
        filesystem: Filesystem shared by the registry and the installer.
    """

    registry: RegistryManager
    installer: PortableInstaller
    project_dir: Path
    catalog: ProviderCatalog = field(default_factory=_builtin_catalog)
    filesystem: FileSystem = field(default_factory=_real_filesystem)


def create_context(
    registry_dir: Path | None = None,
    project_dir: Path | None = None,
) -> AppContext:
    """Build the production context.

    Args:
        registry_dir: Registry directory; ``~/.portable-installer`` if omitted.
        project_dir: Project root; the current directory if omitted.

    Returns:
        AppContext whose installer records into its registry.
    """
    from portable_installer.filesystem import RealFileSystem
    from portable_installer.install import PortableInstaller
    from portable_installer.providers import PROVIDERS
    from portable_installer.registry import RegistryManager, default_registry_dir

    fs = RealFileSystem()
    registry = RegistryManager.create(registry_dir or default_registry_dir(), fs)
    project_dir = project_dir or Path.cwd()
    installer = PortableInstaller.create(
        registry=registry,
        filesystem=fs,
        catalog=PROVIDERS,
        project_dir=project_dir,
    )

    return AppContext(
        registry=registry,
        installer=installer,
        project_dir=project_dir,
        catalog=PROVIDERS,
        filesystem=fs,
    )
