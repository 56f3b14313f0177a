"""Per-file and single-file write strategies."""

from __future__ import annotations

import logging
from pathlib import Path

from portable_installer.checksum import compute_content_checksum
from portable_installer.errors import InstallError, describe_error
from portable_installer.providers.base import PerFile
from portable_installer.snapshot import FileSnapshot, capture_snapshot
from portable_installer.strategies.base import (
    InstallStrategy,
    StrategyContext,
    rollback,
)
from portable_installer.types import ConversionResult, InstallResult, PortableItem
from portable_installer.validation import ensure_within, is_same_path

logger = logging.getLogger(__name__)

SAME_SOURCE_REASON = "Already exists at source location"


def flatten_filename(filename: str) -> str:
    """Turn a nested filename into a flat one.

    Example:
        >>> flatten_filename("docs/init.md")
        'docs-init.md'
    """
    return filename.replace("\\", "/").replace("/", "-")


def measure(conversion: ConversionResult) -> int:
    """Get the size an item adds to the batch cap; 0 if it cannot be measured."""
    try:
        return len(conversion.content)
    except Exception:
        logger.debug("Could not measure converted %s", conversion.filename, exc_info=True)
        return 0


class PerFileInstaller(InstallStrategy):
    """Writes each item to its own file under the base directory.

    When the strategy carries ``total_char_limit``, items are written only
    while the running size of the batch stays within the cap; later items
    are skipped, not failed.
    """

    def install(self, ctx: StrategyContext, items: list[PortableItem]) -> InstallResult:
        strategy = ctx.path_config.strategy
        cap = strategy.total_char_limit if isinstance(strategy, PerFile) else None

        results: list[InstallResult] = []
        running = 0
        for item in items:
            try:
                target, conversion = self.plan(ctx, item)
            except InstallError as e:
                results.append(ctx.failure(ctx.base_path, e))
                continue
            except Exception as e:
                logger.debug("Planning %s failed", item.name, exc_info=True)
                results.append(ctx.failure(ctx.base_path, describe_error(e, ctx.base_path)))
                continue

            if is_same_path(target, item.source_path):
                results.append(
                    ctx.success(
                        target,
                        skipped=True,
                        skip_reason=SAME_SOURCE_REASON,
                        warnings=list(conversion.warnings),
                    )
                )
                continue

            size = measure(conversion)
            if cap is not None and running + size > cap:
                logger.debug("Skipping %s: batch would exceed %d chars", item.name, cap)
                results.append(
                    ctx.success(
                        target,
                        skipped=True,
                        skip_reason=f"Would exceed aggregate char limit ({running}+{size}/{cap})",
                        warnings=[
                            f'Skipped "{item.name}": would exceed {cap} char limit ({running}+{size})'
                        ],
                    )
                )
                continue

            result = self.write(ctx, item, target, conversion)
            if result.success:
                running += size
            results.append(result)

        return aggregate_results(ctx, results)

    def target_for(self, ctx: StrategyContext, filename: str) -> tuple[Path, Path]:
        """Get the target path of a converted file and the directory it must stay in."""
        return ctx.base_path / filename, ctx.base_path

    def plan(self, ctx: StrategyContext, item: PortableItem) -> tuple[Path, ConversionResult]:
        """Validate and convert an item and compute its target path.

        Raises:
            InstallError: If the item is unsafe or cannot be converted.
        """
        conversion = ctx.convert(item)
        filename = conversion.filename
        strategy = ctx.path_config.strategy
        if isinstance(strategy, PerFile) and not strategy.nested_commands:
            filename = flatten_filename(filename)

        target, boundary = self.target_for(ctx, filename)
        ensure_within(target, boundary, "Unsafe path: target escapes base directory")
        return target, conversion

    def write(
        self,
        ctx: StrategyContext,
        item: PortableItem,
        target: Path,
        conversion: ConversionResult,
    ) -> InstallResult:
        """Write one converted item and register it, rolling back on failure."""
        snapshots: list[FileSnapshot] = []
        try:
            ctx.fs.mkdir(target.parent, parents=True, exist_ok=True)
            snapshots.append(capture_snapshot(ctx.fs, target))
            ctx.fs.write_text(target, conversion.content)
            digest = compute_content_checksum(conversion.content)
            ctx.record(item, target, source_checksum=digest, target_checksum=digest)
        except Exception as e:
            logger.debug("Install of %s to %s failed", item.name, target, exc_info=True)
            error = rollback(ctx.fs, snapshots, describe_error(e, target), target)
            error.warnings = list(conversion.warnings)
            return ctx.failure(target, error)

        return ctx.success(
            target, overwritten=snapshots[0].existed, warnings=list(conversion.warnings)
        )


class SingleFileInstaller(PerFileInstaller):
    """Writes exactly one item to the fixed base path."""

    def install(self, ctx: StrategyContext, items: list[PortableItem]) -> InstallResult:
        item, extra = items[0], items[1:]
        try:
            target, conversion = self.plan(ctx, item)
        except InstallError as e:
            return ctx.failure(ctx.base_path, e)
        except Exception as e:
            logger.debug("Planning %s failed", item.name, exc_info=True)
            return ctx.failure(ctx.base_path, describe_error(e, ctx.base_path))

        if is_same_path(target, item.source_path):
            return ctx.success(
                target, skipped=True, skip_reason=SAME_SOURCE_REASON, warnings=list(conversion.warnings)
            )

        result = self.write(ctx, item, target, conversion)
        if extra:
            ignored = ", ".join(other.name for other in extra)
            result.warnings.append(
                f"{ctx.display_name} {ctx.artifact_type.value} target holds one item; ignored: {ignored}"
            )
        return result

    def target_for(self, ctx: StrategyContext, filename: str) -> tuple[Path, Path]:
        return ctx.base_path, ctx.base_path.parent


def aggregate_results(ctx: StrategyContext, results: list[InstallResult]) -> InstallResult:
    """Fold per-item results of a batch into one provider result.

    The batch succeeds when at least one item was written. With failures and
    nothing written it fails; it is skipped only when every item was skipped.
    """
    failures = [r for r in results if not r.success]
    written = [r for r in results if r.success and not r.skipped]
    warnings = [warning for r in results for warning in r.warnings]

    if failures and not written:
        first = failures[0]
        return InstallResult(
            provider=ctx.provider.value,
            provider_display_name=ctx.display_name,
            success=False,
            path=first.path,
            error="; ".join(r.error or "" for r in failures),
            error_kind=first.error_kind,
            warnings=warnings,
            item_results=results,
        )

    warnings.extend(f"Failed item: {r.error}" for r in failures)
    all_skipped = all(r.skipped for r in results)
    skip_reasons = {r.skip_reason for r in results}
    skip_reason = None
    if all_skipped:
        skip_reason = skip_reasons.pop() if len(skip_reasons) == 1 else "All items skipped"
    return ctx.success(
        written[0].path if written else results[0].path,
        overwritten=any(r.overwritten for r in results),
        skipped=all_skipped,
        skip_reason=skip_reason,
        warnings=warnings,
        item_results=results,
    )
