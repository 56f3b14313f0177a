"""YAML-merge strategy: items as entries of a ``customModes:`` list."""

from __future__ import annotations

import logging
from pathlib import Path

from portable_installer.checksum import compute_content_checksum
from portable_installer.converters.modes import build_yaml_modes_file, parse_yaml_modes_file
from portable_installer.errors import InstallError, describe_error
from portable_installer.snapshot import FileSnapshot, capture_snapshot
from portable_installer.strategies.base import SharedTargetInstaller, StrategyContext, rollback
from portable_installer.types import InstallResult, PortableItem

logger = logging.getLogger(__name__)


class YamlMergeInstaller(SharedTargetInstaller):
    """Writes new mode entries first, then every untouched existing entry.

    Existing entries are carried over as raw text, so modes this installer
    does not own keep their exact bytes.
    """

    def install_locked(
        self, ctx: StrategyContext, items: list[PortableItem], target: Path
    ) -> InstallResult:
        try:
            existing = parse_yaml_modes_file(ctx.fs.read_text(target))
        except FileNotFoundError:
            existing = {}
        except OSError as e:
            error = describe_error(e, target)
            return ctx.failure(
                target,
                InstallError(
                    error.kind, f"Failed to read existing YAML modes file: {error.message}"
                ),
            )

        entries: dict[str, str] = {}
        source_checksums: list[str] = []
        warnings: list[str] = []
        for item in items:
            try:
                conversion = ctx.convert(item)
            except InstallError as e:
                return ctx.failure(target, e)
            # filename carries the mode slug
            entries[conversion.filename] = conversion.content
            source_checksums.append(compute_content_checksum(conversion.content))
            warnings.extend(conversion.warnings)

        owned = list(entries)
        for slug, entry in existing.items():
            entries.setdefault(slug, entry)
        content = build_yaml_modes_file(list(entries.values()))

        snapshots: list[FileSnapshot] = []
        try:
            snapshots.append(capture_snapshot(ctx.fs, target))
            ctx.fs.write_text(target, content)
            target_checksum = compute_content_checksum(content)
            for item, source_checksum in zip(items, source_checksums):
                ctx.record(
                    item,
                    target,
                    source_checksum=source_checksum,
                    target_checksum=target_checksum,
                    owned_sections=owned,
                )
        except Exception as e:
            logger.debug("YAML merge into %s failed", target, exc_info=True)
            return ctx.failure(target, rollback(ctx.fs, snapshots, describe_error(e, target), target))

        return ctx.success(target, overwritten=snapshots[0].existed, warnings=warnings)
