"""Merge-single strategy: items as named sections of one Markdown file."""

from __future__ import annotations

import logging
from pathlib import Path

from portable_installer.checksum import compute_content_checksum
from portable_installer.errors import ErrorKind, InstallError, describe_error
from portable_installer.sections import (
    SectionKind,
    build_section_content,
    merge_sections,
    parse_merged_sections,
    render_merged_file,
    section_key,
    section_kind_for,
)
from portable_installer.snapshot import FileSnapshot, capture_snapshot
from portable_installer.strategies.base import SharedTargetInstaller, StrategyContext, rollback
from portable_installer.types import InstallResult, PortableItem

logger = logging.getLogger(__name__)


class MergeSingleInstaller(SharedTargetInstaller):
    """Replaces or appends one section per item, keeping everything else.

    Sections of other kinds, sections of other items, unknown blocks and the
    user preamble are written back unchanged.
    """

    def install_locked(
        self, ctx: StrategyContext, items: list[PortableItem], target: Path
    ) -> InstallResult:
        kind = section_kind_for(ctx.artifact_type)
        if kind is SectionKind.CONFIG and len(items) > 1:
            return ctx.failure(
                target,
                InstallError(
                    ErrorKind.VALIDATION_FAILED,
                    "Config merge target accepts only one item per install",
                ),
            )

        warnings: list[str] = []
        try:
            existing = ctx.fs.read_text(target)
        except FileNotFoundError:
            existing = ""
        except OSError as e:
            error = describe_error(e, target)
            return ctx.failure(
                target,
                InstallError(error.kind, f"Failed to read existing merged file: {error.message}"),
            )
        parsed = parse_merged_sections(existing)
        warnings.extend(parsed.warnings)

        rendered: dict[str, str] = {}
        source_checksums: dict[str, str] = {}
        for item in items:
            try:
                conversion = ctx.convert(item)
            except InstallError as e:
                return ctx.failure(target, e)

            key = section_key(kind, item)
            if key in rendered:
                warnings.append(
                    f'Duplicate {kind.value} section "{key}" in this batch; last item wins'
                )
            rendered[key] = build_section_content(kind, key, conversion.content)
            source_checksums[key] = compute_content_checksum(conversion.content)
            warnings.extend(conversion.warnings)

        sections = merge_sections(parsed.sections, rendered, kind)
        content = render_merged_file(sections, parsed.preamble, kind, ctx.display_name)

        snapshots: list[FileSnapshot] = []
        try:
            snapshots.append(capture_snapshot(ctx.fs, target))
            ctx.fs.write_text(target, content)
            for item in items:
                key = section_key(kind, item)
                ctx.record(
                    item,
                    target,
                    source_checksum=source_checksums[key],
                    target_checksum=compute_content_checksum(rendered[key]),
                    owned_sections=[key],
                )
        except Exception as e:
            logger.debug("Merge into %s failed", target, exc_info=True)
            return ctx.failure(target, rollback(ctx.fs, snapshots, describe_error(e, target), target))

        return ctx.success(target, overwritten=snapshots[0].existed, warnings=warnings)
