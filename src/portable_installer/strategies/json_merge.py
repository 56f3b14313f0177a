"""JSON-merge strategy: Cline-style mode list plus plain rule files."""

from __future__ import annotations

import json
import logging
from pathlib import Path

from pydantic import ValidationError

from portable_installer.checksum import compute_content_checksum
from portable_installer.converters.base import namespaced_name
from portable_installer.converters.modes import CustomMode, CustomModesFile, build_modes_json
from portable_installer.errors import ErrorKind, InstallError, describe_error
from portable_installer.providers.base import JsonMerge
from portable_installer.snapshot import FileSnapshot, capture_snapshot
from portable_installer.strategies.base import SharedTargetInstaller, StrategyContext, rollback
from portable_installer.types import InstallResult, PortableItem
from portable_installer.validation import ensure_within, validate_rule_segment

logger = logging.getLogger(__name__)


def _first_issue(exc: ValidationError) -> str:
    errors = exc.errors()
    return errors[0]["msg"] if errors else "schema validation failed"


def _schema_error(message: str) -> InstallError:
    return InstallError(ErrorKind.SCHEMA_INVALID, message)


def rule_file_content(item: PortableItem) -> str:
    """Render the plain Markdown rule file written beside the modes file."""
    return f"# {item.display_name}\n\n{item.body}\n"


class JsonMergeInstaller(SharedTargetInstaller):
    """Merges modes into the JSON modes file and writes one rule file per item.

    The whole batch is all-or-nothing: every file touched is snapshotted
    before its first write and all of them are restored, newest first, if
    anything fails.
    """

    def target_path(self, ctx: StrategyContext) -> Path:
        return ctx.base_path / self._strategy(ctx).modes_filename

    @staticmethod
    def _strategy(ctx: StrategyContext) -> JsonMerge:
        strategy = ctx.path_config.strategy
        return strategy if isinstance(strategy, JsonMerge) else JsonMerge()

    def install_locked(
        self, ctx: StrategyContext, items: list[PortableItem], target: Path
    ) -> InstallResult:
        modes: dict[str, CustomMode] = {}
        source_checksums: list[str] = []
        warnings: list[str] = []
        for item in items:
            try:
                mode, digest, mode_warnings = self._convert_mode(ctx, item)
            except InstallError as e:
                return ctx.failure(target, e)
            modes[mode.slug] = mode
            source_checksums.append(digest)
            warnings.extend(mode_warnings)

        rules_dir = ctx.base_path.parent / self._strategy(ctx).rules_dir_name
        try:
            rule_paths = [self._rule_path(rules_dir, item) for item in items]
            existing = self._load_existing(ctx, target)
        except InstallError as e:
            return ctx.failure(target, e)
        merged = list(modes.values()) + [mode for mode in existing if mode.slug not in modes]
        content = build_modes_json(merged)

        snapshots: list[FileSnapshot] = []
        failure_path = target
        try:
            snapshots.append(capture_snapshot(ctx.fs, target))
            ctx.fs.write_text(target, content)

            ctx.fs.mkdir(rules_dir, parents=True, exist_ok=True)
            captured: set[Path] = set()
            for item, rule_path in zip(items, rule_paths):
                failure_path = rule_path
                ctx.fs.mkdir(rule_path.parent, parents=True, exist_ok=True)
                if rule_path not in captured:
                    snapshots.append(capture_snapshot(ctx.fs, rule_path))
                    captured.add(rule_path)
                ctx.fs.write_text(rule_path, rule_file_content(item))

            failure_path = target
            target_checksum = compute_content_checksum(content)
            owned = [mode.slug for mode in merged]
            for item, source_checksum in zip(items, source_checksums):
                ctx.record(
                    item,
                    target,
                    source_checksum=source_checksum,
                    target_checksum=target_checksum,
                    owned_sections=owned,
                )
        except Exception as e:
            logger.debug("JSON merge into %s failed", failure_path, exc_info=True)
            error = rollback(ctx.fs, snapshots, describe_error(e, failure_path), failure_path)
            return ctx.failure(target, error)

        return ctx.success(target, overwritten=snapshots[0].existed, warnings=warnings)

    def _convert_mode(
        self, ctx: StrategyContext, item: PortableItem
    ) -> tuple[CustomMode, str, list[str]]:
        conversion = ctx.convert(item)
        try:
            raw = json.loads(conversion.content)
        except json.JSONDecodeError as e:
            raise _schema_error(
                f"Failed to parse generated mode JSON for {item.name}: {e}"
            ) from e
        try:
            mode = CustomMode.model_validate(raw)
        except ValidationError as e:
            raise _schema_error(
                f"Invalid mode format for {item.name}: {_first_issue(e)}"
            ) from e
        return mode, compute_content_checksum(conversion.content), conversion.warnings

    def _load_existing(self, ctx: StrategyContext, modes_path: Path) -> list[CustomMode]:
        try:
            raw = json.loads(ctx.fs.read_text(modes_path))
        except FileNotFoundError:
            return []
        except (OSError, ValueError) as e:
            message = describe_error(e, modes_path).message
            raise _schema_error(f"Failed to parse existing modes JSON: {message}") from e

        try:
            parsed = CustomModesFile.model_validate(raw)
        except ValidationError as e:
            raise _schema_error(f"Invalid existing modes file format: {_first_issue(e)}") from e
        return parsed.custom_modes or []

    @staticmethod
    def _rule_path(rules_dir: Path, item: PortableItem) -> Path:
        name = namespaced_name(item)
        for segment in (part for part in name.split("/") if part):
            error = validate_rule_segment(segment)
            if error:
                raise InstallError(ErrorKind.VALIDATION_FAILED, error)

        rule_path = rules_dir / f"{name}.md"
        ensure_within(
            rule_path,
            rules_dir,
            f"Unsafe path: rule target escapes rules directory ({rule_path})",
        )
        return rule_path
