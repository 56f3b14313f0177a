"""Shared machinery for write strategies.

Pattern: Strategy - each write-strategy variant has a handler class. The
installer builds one ``StrategyContext`` per call and hands it to the
handler registered for the variant.
"""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path

from portable_installer.errors import (
    ErrorKind,
    InstallError,
    LockAcquisitionError,
    describe_error,
)
from portable_installer.locking import merge_target_lock
from portable_installer.protocols import FileSystem, InstallRegistry, ItemConverter
from portable_installer.providers.base import PathConfig, ProviderConfig
from portable_installer.snapshot import FileSnapshot, restore_snapshots
from portable_installer.types import (
    ArtifactType,
    ConversionResult,
    InstallResult,
    PortableItem,
    ProviderType,
)
from portable_installer.validation import ensure_within, validate_item_segments

logger = logging.getLogger(__name__)


@dataclass
class StrategyContext:
    """Everything a handler needs for one provider install call.

    Attributes:
        provider_config: Target provider.
        path_config: Path configuration for the artifact type.
        artifact_type: Category of the items being installed.
        is_global: True for the home directory scope.
        base_path: Resolved base path for the scope.
        scope_root: Home directory (global) or project directory.
        converter: Item converter.
        registry: Installation registry.
        fs: Filesystem used for every read and write.
        cancel: Event that aborts a pending lock wait.
    """

    provider_config: ProviderConfig
    path_config: PathConfig
    artifact_type: ArtifactType
    is_global: bool
    base_path: Path
    scope_root: Path
    converter: ItemConverter
    registry: InstallRegistry
    fs: FileSystem
    cancel: threading.Event | None = None

    @property
    def provider(self) -> ProviderType:
        return self.provider_config.name

    @property
    def display_name(self) -> str:
        return self.provider_config.display_name

    @property
    def scope_label(self) -> str:
        return "home" if self.is_global else "project"

    def success(self, path: Path | str, **kwargs) -> InstallResult:
        """Build a success result for this provider."""
        return InstallResult(
            provider=self.provider.value,
            provider_display_name=self.display_name,
            success=True,
            path=str(path),
            **kwargs,
        )

    def failure(self, path: Path | str, error: InstallError) -> InstallResult:
        """Build a failure result carrying the error, its kind and warnings."""
        return InstallResult(
            provider=self.provider.value,
            provider_display_name=self.display_name,
            success=False,
            path=str(path),
            error=error.message,
            error_kind=error.kind,
            warnings=list(error.warnings),
        )

    def ensure_in_scope(self, target: Path) -> None:
        """Raise unless a shared target stays inside the scope root."""
        ensure_within(
            target,
            self.scope_root,
            f"Unsafe path: target escapes {self.scope_label} directory",
        )

    def convert(self, item: PortableItem) -> ConversionResult:
        """Validate an item's path and convert it.

        Raises:
            InstallError: On unsafe segments or a conversion error. The
                converter warnings travel on the error.
        """
        segment_error = validate_item_segments(item)
        if segment_error:
            raise InstallError(ErrorKind.VALIDATION_FAILED, segment_error)

        result = self.converter.convert(item, self.path_config.format, self.provider)
        if result.error:
            raise InstallError(
                ErrorKind.CONVERSION_FAILED,
                f"Failed to convert {item.name}: {result.error}",
                result.warnings,
            )
        return result

    def record(
        self,
        item: PortableItem,
        target: Path,
        *,
        source_checksum: str,
        target_checksum: str,
        owned_sections: list[str] | None = None,
    ) -> None:
        """Record one installed item in the registry."""
        self.registry.record(
            item.name,
            self.artifact_type,
            self.provider,
            self.is_global,
            target,
            item.source_path,
            source_checksum=source_checksum,
            target_checksum=target_checksum,
            owned_sections=owned_sections,
        )


def rollback(
    fs: FileSystem, snapshots: list[FileSnapshot], error: InstallError, path: Path
) -> InstallError:
    """Restore snapshots after a failed write.

    Args:
        fs: Filesystem to restore through.
        snapshots: Snapshots taken before the failed write, in capture order.
        error: The failure being handled.
        path: Path reported if the restore itself fails.

    Returns:
        ``error``, or a copy whose message notes a failed restore.
    """
    if not snapshots:
        return error
    try:
        restore_snapshots(fs, snapshots)
    except Exception as exc:
        logger.warning("Rollback of %s failed", path, exc_info=True)
        note = describe_error(exc, path).message
        return InstallError(
            error.kind, f"{error.message}; rollback failed: {note}", error.warnings
        )
    return error


class InstallStrategy(ABC):
    """Writes a batch of items for one provider."""

    @abstractmethod
    def install(self, ctx: StrategyContext, items: list[PortableItem]) -> InstallResult:
        """Install items and return one aggregated result.

        Implementations report failures through the result and only let
        unexpected exceptions escape.
        """
        ...


class SharedTargetInstaller(InstallStrategy):
    """Base for strategies where the whole batch lands in one shared file.

    The target must stay inside the scope root, and it is only read and
    rewritten while the merge lock for it is held.
    """

    def install(self, ctx: StrategyContext, items: list[PortableItem]) -> InstallResult:
        target = self.target_path(ctx)
        try:
            ctx.ensure_in_scope(target)
        except InstallError as e:
            return ctx.failure(target, e)

        try:
            with merge_target_lock(target, cancel=ctx.cancel):
                return self.install_locked(ctx, items, target)
        except (LockAcquisitionError, OSError) as e:
            error = describe_error(e, target)
            return ctx.failure(
                target,
                InstallError(error.kind, f"Failed to acquire merge lock: {error.message}"),
            )

    def target_path(self, ctx: StrategyContext) -> Path:
        """Get the shared file the batch is merged into."""
        return ctx.base_path

    @abstractmethod
    def install_locked(
        self, ctx: StrategyContext, items: list[PortableItem], target: Path
    ) -> InstallResult:
        """Merge and write the batch; called with the merge lock held."""
        ...
