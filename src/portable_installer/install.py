"""Install portable items into provider configuration."""

from __future__ import annotations

import logging
import threading
from dataclasses import replace
from pathlib import Path

from portable_installer.converters import ConversionEngine
from portable_installer.errors import ErrorKind
from portable_installer.filesystem import RealFileSystem
from portable_installer.protocols import FileSystem, InstallRegistry, ItemConverter
from portable_installer.providers import PROVIDERS, ProviderCatalog, get_provider
from portable_installer.registry import RegistryManager
from portable_installer.strategies import StrategyContext, get_strategy_handler
from portable_installer.types import ArtifactType, InstallResult, PortableItem, ProviderType

logger = logging.getLogger(__name__)

# Providers that only accept a type in the global scope
GLOBAL_ONLY = {(ProviderType.CODEX, ArtifactType.COMMAND)}


class PortableInstaller:
    """Writes portable items into provider configuration files.

    Follows Separate Use from Creation: constructor requires all dependencies.
    Use factory method `create()` for production instantiation with defaults.
    """

    def __init__(
        self,
        registry: InstallRegistry,
        converter: ItemConverter,
        filesystem: FileSystem,
        catalog: ProviderCatalog,
        project_dir: Path | None = None,
    ) -> None:
        """Initialize installer with required dependencies.

        Args:
            registry: Installation registry (required).
            converter: Item converter (required).
            filesystem: Filesystem abstraction (required).
            catalog: Provider catalog (required).
            project_dir: Project directory for project-level installs.
                Defaults to the current directory at install time.

        Note:
            Use factory method `create()` for production code.
            Direct construction is for testing with explicit dependencies.
        """
        self.registry = registry
        self.converter = converter
        self.fs = filesystem
        self.catalog = catalog
        self.project_dir = project_dir

    @classmethod
    def create(
        cls,
        registry: InstallRegistry | None = None,
        converter: ItemConverter | None = None,
        filesystem: FileSystem | None = None,
        catalog: ProviderCatalog | None = None,
        project_dir: Path | None = None,
    ) -> PortableInstaller:
        """Factory method for production instantiation.

        Args:
            registry: Optional registry (defaults to ~/.portable-installer).
            converter: Optional converter (defaults to the built-in engine).
            filesystem: Optional filesystem abstraction.
            catalog: Optional provider catalog (defaults to the built-in one).
            project_dir: Optional project directory.

        Returns:
            Configured PortableInstaller instance.
        """
        catalog = PROVIDERS if catalog is None else catalog
        return cls(
            registry=registry or RegistryManager.create_default(),
            converter=converter or ConversionEngine(catalog),
            filesystem=filesystem or RealFileSystem(),
            catalog=catalog,
            project_dir=project_dir,
        )

    def install_portable_item(
        self,
        items: list[PortableItem],
        provider: ProviderType | str,
        artifact_type: ArtifactType,
        *,
        is_global: bool = False,
        cancel: threading.Event | None = None,
    ) -> InstallResult:
        """Install a batch of items into one provider.

        Args:
            items: Items to install, all of ``artifact_type``.
            provider: Target provider.
            artifact_type: Category of the items.
            is_global: Install into the home directory instead of the project.
            cancel: Event that aborts a pending merge-lock wait.

        Returns:
            One InstallResult for the provider. Errors are reported in the
            result, never raised.
        """
        config = get_provider(provider, self.catalog)
        if config is None:
            name = provider.value if isinstance(provider, ProviderType) else str(provider)
            return InstallResult(
                provider=name or "unknown",
                provider_display_name=name or "unknown",
                success=False,
                path="",
                error=f"Unknown provider: {name}",
                error_kind=ErrorKind.VALIDATION_FAILED,
            )

        def unsupported(message: str) -> InstallResult:
            return InstallResult(
                provider=config.name.value,
                provider_display_name=config.display_name,
                success=False,
                path="",
                error=message,
                error_kind=ErrorKind.VALIDATION_FAILED,
            )

        path_config = config.path_config(artifact_type)
        if path_config is None:
            return unsupported(f"{config.display_name} does not support {artifact_type.value}s")

        project_dir = self.project_dir or Path.cwd()
        base_path = path_config.base_path(is_global, project_dir)
        if base_path is None:
            scope = "global" if is_global else "project"
            return unsupported(
                f"{config.display_name} does not support {scope}-level {artifact_type.value}s"
            )

        if not items:
            return InstallResult(
                provider=config.name.value,
                provider_display_name=config.display_name,
                success=True,
                path=str(base_path),
                skipped=True,
                skip_reason="No items to install",
            )

        ctx = StrategyContext(
            provider_config=config,
            path_config=path_config,
            artifact_type=artifact_type,
            is_global=is_global,
            base_path=base_path,
            scope_root=Path.home() if is_global else project_dir,
            converter=self.converter,
            registry=self.registry,
            fs=self.fs,
            cancel=cancel,
        )
        items = [
            item if item.artifact_type is artifact_type else replace(item, artifact_type=artifact_type)
            for item in items
        ]

        try:
            handler = get_strategy_handler(path_config.strategy)
            logger.debug(
                "Installing %d %s item(s) to %s via %s",
                len(items),
                artifact_type.value,
                config.name.value,
                path_config.strategy.name,
            )
            return handler.install(ctx, items)
        except Exception as e:
            logger.exception("Unexpected error installing to %s", config.display_name)
            return InstallResult(
                provider=config.name.value,
                provider_display_name=config.display_name,
                success=False,
                path=str(base_path),
                error=str(e) or e.__class__.__name__,
                error_kind=ErrorKind.OTHER,
            )

    def install_portable_items(
        self,
        items: list[PortableItem],
        providers: list[ProviderType | str],
        artifact_type: ArtifactType,
        *,
        is_global: bool = False,
        cancel: threading.Event | None = None,
    ) -> list[InstallResult]:
        """Install a batch of items into several providers, one at a time.

        Duplicate providers are installed once. A failure for one provider
        never prevents the next.

        Returns:
            One InstallResult per distinct provider, in input order.
        """
        results = []
        for provider in dict.fromkeys(providers):
            config = get_provider(provider, self.catalog)
            provider_global = is_global or (
                config is not None and (config.name, artifact_type) in GLOBAL_ONLY
            )
            results.append(
                self.install_portable_item(
                    items, provider, artifact_type, is_global=provider_global, cancel=cancel
                )
            )
        return results
