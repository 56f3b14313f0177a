"""Registry of portable installations.

One JSON file records which item was installed where, with checksums of the
converted source and of what the item occupies in the target, so later runs
can tell kit-owned content from user edits.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from portable_installer import __version__
from portable_installer.checksum import UNKNOWN_CHECKSUM, compute_file_checksum
from portable_installer.filesystem import RealFileSystem
from portable_installer.locking import merge_target_lock
from portable_installer.protocols import FileSystem
from portable_installer.types import ArtifactType, ProviderType

logger = logging.getLogger(__name__)

REGISTRY_DIR_NAME = ".portable-installer"
REGISTRY_FILENAME = "portable-registry.json"
REGISTRY_VERSION = "3.0"
LEGACY_REGISTRY_VERSION = "2.0"

# The registry lock waits longer than merge locks: every install writes here.
REGISTRY_LOCK_RETRIES = 5
REGISTRY_LOCK_FACTOR = 2.0
REGISTRY_LOCK_MIN_TIMEOUT = 0.1
REGISTRY_LOCK_MAX_TIMEOUT = 5.0


def default_registry_dir() -> Path:
    """Get the default registry directory (``~/.portable-installer``)."""
    return Path.home() / REGISTRY_DIR_NAME


class PortableInstallation(BaseModel):
    """One installed item for one provider and scope."""

    model_config = ConfigDict(populate_by_name=True)

    item: str
    artifact_type: ArtifactType = Field(alias="type")
    provider: str
    is_global: bool = Field(alias="global")
    path: str
    installed_at: datetime = Field(alias="installedAt")
    source_path: str = Field(alias="sourcePath")
    cli_version: str | None = Field(default=None, alias="cliVersion")
    source_checksum: str = Field(default=UNKNOWN_CHECKSUM, alias="sourceChecksum")
    target_checksum: str = Field(default=UNKNOWN_CHECKSUM, alias="targetChecksum")
    install_source: Literal["kit", "manual"] = Field(default="kit", alias="installSource")
    owned_sections: list[str] | None = Field(default=None, alias="ownedSections")

    def occupies(
        self, item: str, artifact_type: ArtifactType, provider: str, is_global: bool
    ) -> bool:
        """Check whether this entry records the given item/type/provider/scope."""
        return (
            self.item == item
            and self.artifact_type == artifact_type
            and self.provider == provider
            and self.is_global == is_global
        )


class PortableRegistryFile(BaseModel):
    """On-disk registry document."""

    model_config = ConfigDict(populate_by_name=True)

    version: str = REGISTRY_VERSION
    installations: list[PortableInstallation] = Field(default_factory=list)
    last_reconciled: datetime | None = Field(default=None, alias="lastReconciled")


class RegistryManager:
    """Manages the portable installation registry.

    Satisfies the InstallRegistry protocol structurally. Every
    read-modify-write runs under a file lock, so concurrent installer
    processes never lose each other's entries.
    """

    def __init__(
        self, registry_dir: Path | None = None, filesystem: FileSystem | None = None
    ) -> None:
        """Initialize the registry manager.

        Args:
            registry_dir: Directory for the registry file. Defaults to
                ~/.portable-installer.
            filesystem: Filesystem used for reads and atomic writes.

        Note:
            Prefer using factory methods `create()` or `create_default()` for construction.
        """
        self.registry_dir = registry_dir or default_registry_dir()
        self.registry_file = self.registry_dir / REGISTRY_FILENAME
        self.filesystem = filesystem or RealFileSystem()

    @classmethod
    def create(cls, registry_dir: Path, filesystem: FileSystem | None = None) -> RegistryManager:
        """Create a registry manager with a custom directory.

        Args:
            registry_dir: Directory for the registry file.
            filesystem: Optional filesystem implementation.

        Returns:
            Configured RegistryManager instance.
        """
        return cls(registry_dir=registry_dir, filesystem=filesystem)

    @classmethod
    def create_default(cls) -> RegistryManager:
        """Create a registry manager with the default directory.

        Returns:
            RegistryManager configured with default paths.
        """
        return cls()

    @contextmanager
    def _locked(self) -> Iterator[None]:
        with merge_target_lock(
            self.registry_file,
            retries=REGISTRY_LOCK_RETRIES,
            factor=REGISTRY_LOCK_FACTOR,
            min_timeout=REGISTRY_LOCK_MIN_TIMEOUT,
            max_timeout=REGISTRY_LOCK_MAX_TIMEOUT,
        ):
            yield

    def load(self) -> PortableRegistryFile:
        """Load the registry from disk, upgrading a v2.0 document in memory.

        Returns:
            The registry (empty if the file does not exist).

        Raises:
            ValueError: If the file is not valid JSON or has an unknown version.
        """
        try:
            content = self.filesystem.read_text(self.registry_file)
        except FileNotFoundError:
            return PortableRegistryFile()

        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            raise ValueError(f"{REGISTRY_FILENAME} is not valid JSON: {e}") from e

        version = data.get("version") if isinstance(data, dict) else None
        if version == LEGACY_REGISTRY_VERSION:
            logger.debug("Upgrading registry %s from v2.0 to v3.0", self.registry_file)
            return self._upgrade_legacy(data)
        if version != REGISTRY_VERSION:
            raise ValueError(f"{REGISTRY_FILENAME} has unsupported schema/version: {version!r}")
        return PortableRegistryFile.model_validate(data)

    def _upgrade_legacy(self, data: dict[str, Any]) -> PortableRegistryFile:
        installations = []
        for raw in data.get("installations", []):
            entry = dict(raw)
            entry["sourceChecksum"] = UNKNOWN_CHECKSUM
            entry["targetChecksum"] = self._checksum_or_unknown(Path(entry.get("path", "")))
            entry["installSource"] = "kit"
            entry.pop("ownedSections", None)
            installations.append(entry)
        return PortableRegistryFile.model_validate(
            {"version": REGISTRY_VERSION, "installations": installations}
        )

    @staticmethod
    def _checksum_or_unknown(path: Path) -> str:
        try:
            return compute_file_checksum(path) if path.is_file() else UNKNOWN_CHECKSUM
        except OSError:
            logger.debug("Could not checksum %s during registry upgrade", path)
            return UNKNOWN_CHECKSUM

    def save(self, registry: PortableRegistryFile) -> None:
        """Save the registry to disk atomically.

        Args:
            registry: Registry document to save.
        """
        self.filesystem.mkdir(self.registry_dir, parents=True, exist_ok=True)
        data = registry.model_dump(mode="json", by_alias=True, exclude_none=True)
        self.filesystem.write_text(self.registry_file, json.dumps(data, indent=2) + "\n")

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
        """Record an installation, replacing any entry for the same slot.

        A slot is the combination of item name, artifact type, provider and
        scope.
        """
        provider_id = ProviderType(provider).value
        with self._locked():
            registry = self.load()
            registry.installations = [
                entry
                for entry in registry.installations
                if not entry.occupies(item, artifact_type, provider_id, is_global)
            ]
            registry.installations.append(
                PortableInstallation(
                    item=item,
                    artifact_type=artifact_type,
                    provider=provider_id,
                    is_global=is_global,
                    path=str(target_path),
                    installed_at=datetime.now(timezone.utc),
                    source_path=str(source_path),
                    cli_version=__version__,
                    source_checksum=source_checksum or UNKNOWN_CHECKSUM,
                    target_checksum=target_checksum or UNKNOWN_CHECKSUM,
                    install_source=install_source,
                    owned_sections=owned_sections,
                )
            )
            self.save(registry)

    def remove_installation(
        self,
        item: str,
        artifact_type: ArtifactType,
        provider: ProviderType,
        is_global: bool,
    ) -> PortableInstallation | None:
        """Remove an installation entry.

        Returns:
            The removed entry, or None if no entry matched.
        """
        provider_id = ProviderType(provider).value
        with self._locked():
            registry = self.load()
            for index, entry in enumerate(registry.installations):
                if entry.occupies(item, artifact_type, provider_id, is_global):
                    removed = registry.installations.pop(index)
                    self.save(registry)
                    return removed
        return None

    def find_installations(
        self,
        item: str,
        artifact_type: ArtifactType | None = None,
        provider: ProviderType | None = None,
        is_global: bool | None = None,
    ) -> list[PortableInstallation]:
        """Find installations of an item (name match is case-insensitive)."""
        wanted = item.lower()
        return [
            entry
            for entry in self.list_installations(artifact_type, provider)
            if entry.item.lower() == wanted and (is_global is None or entry.is_global == is_global)
        ]

    def list_installations(
        self,
        artifact_type: ArtifactType | None = None,
        provider: ProviderType | None = None,
    ) -> list[PortableInstallation]:
        """List installations, optionally filtered by type and provider."""
        provider_id = ProviderType(provider).value if provider else None
        return [
            entry
            for entry in self.load().installations
            if (artifact_type is None or entry.artifact_type == artifact_type)
            and (provider_id is None or entry.provider == provider_id)
        ]

    def sync(self) -> list[PortableInstallation]:
        """Drop entries whose target path no longer exists.

        Returns:
            The removed entries.
        """
        with self._locked():
            registry = self.load()
            kept: list[PortableInstallation] = []
            removed: list[PortableInstallation] = []
            for entry in registry.installations:
                (kept if Path(entry.path).exists() else removed).append(entry)
            if removed:
                registry.installations = kept
                self.save(registry)
        return removed
