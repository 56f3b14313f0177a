"""Tests for the installer and the per-file strategies."""

from __future__ import annotations

import errno
from pathlib import Path
from typing import Callable

from conftest import FailingFileSystem, InMemoryRegistry, StubConverter

from portable_installer.checksum import compute_content_checksum
from portable_installer.errors import ErrorKind
from portable_installer.install import PortableInstaller
from portable_installer.providers import (
    ConversionFormat,
    PathConfig,
    PerFile,
    ProviderConfig,
    SubagentSupport,
)
from portable_installer.strategies.per_file import SAME_SOURCE_REASON, measure
from portable_installer.types import (
    ArtifactType,
    ConversionResult,
    PortableItem,
    ProviderType,
)

MakeItem = Callable[..., PortableItem]
MakeInstaller = Callable[..., PortableInstaller]


def _capped_catalog(limit: int) -> dict[ProviderType, ProviderConfig]:
    return {
        ProviderType.WINDSURF: ProviderConfig(
            name=ProviderType.WINDSURF,
            display_name="Windsurf",
            subagents=SubagentSupport.NONE,
            paths={
                ArtifactType.RULES: PathConfig(
                    None,
                    ".windsurf/rules",
                    ConversionFormat.MD_STRIP,
                    strategy=PerFile(total_char_limit=limit),
                ),
            },
        )
    }


class TestDispatch:
    """Tests for capability checks before any strategy runs."""

    def test_unknown_provider(self, installer: PortableInstaller, make_item: MakeItem) -> None:
        """Test an unknown provider is a validation failure."""
        result = installer.install_portable_item([make_item("a")], "notepad", ArtifactType.AGENT)
        assert not result.success
        assert result.provider == "notepad"
        assert result.error == "Unknown provider: notepad"
        assert result.error_kind is ErrorKind.VALIDATION_FAILED

    def test_unsupported_type(self, installer: PortableInstaller, make_item: MakeItem) -> None:
        """Test a provider without the artifact type is rejected."""
        result = installer.install_portable_item(
            [make_item("a")], ProviderType.CURSOR, ArtifactType.COMMAND
        )
        assert result.error == "Cursor does not support commands"
        assert result.provider_display_name == "Cursor"

    def test_unsupported_scope(self, installer: PortableInstaller, make_item: MakeItem) -> None:
        """Test a provider without the requested scope is rejected."""
        result = installer.install_portable_item(
            [make_item("a")], ProviderType.CLINE, ArtifactType.AGENT, is_global=True
        )
        assert result.error == "Cline does not support global-level agents"

    def test_empty_batch(self, installer: PortableInstaller, project_dir: Path) -> None:
        """Test an empty batch is skipped without touching disk."""
        result = installer.install_portable_item([], ProviderType.CLAUDE_CODE, ArtifactType.AGENT)
        assert result.success
        assert result.skipped
        assert result.skip_reason == "No items to install"
        assert not (project_dir / ".claude").exists()

    def test_unexpected_exception_is_reported(
        self, make_installer: MakeInstaller, make_item: MakeItem
    ) -> None:
        """Test an unexpected error becomes a failure result."""

        class ExplodingConverter:
            def convert(self, item, fmt, provider) -> ConversionResult:
                raise RuntimeError("converter exploded")

        installer = make_installer(converter=ExplodingConverter())
        result = installer.install_portable_item(
            [make_item("a")], ProviderType.CLAUDE_CODE, ArtifactType.AGENT
        )
        assert not result.success
        assert result.error == "converter exploded"
        assert result.error_kind is ErrorKind.OTHER

    def test_codex_commands_forced_global(
        self, installer: PortableInstaller, make_item: MakeItem, temp_home: Path, project_dir: Path
    ) -> None:
        """Test Codex prompts go to the home directory during multi-provider installs."""
        item = make_item("docs/init", body="Write the docs.")
        codex, claude = installer.install_portable_items(
            [item], [ProviderType.CODEX, ProviderType.CLAUDE_CODE], ArtifactType.COMMAND
        )

        assert codex.success
        assert codex.path == str(temp_home / ".codex" / "prompts" / "docs-init.md")
        assert (temp_home / ".codex" / "prompts" / "docs-init.md").read_text() == "Write the docs."
        assert claude.success
        assert (project_dir / ".claude" / "commands" / "docs" / "init.md").exists()

    def test_codex_project_command_rejected(
        self, installer: PortableInstaller, make_item: MakeItem
    ) -> None:
        """Test a direct project-level Codex command install is rejected."""
        result = installer.install_portable_item(
            [make_item("init")], ProviderType.CODEX, ArtifactType.COMMAND
        )
        assert result.error == "Codex does not support project-level commands"

    def test_duplicate_providers_installed_once(
        self, installer: PortableInstaller, make_item: MakeItem
    ) -> None:
        """Test repeated providers produce one result each."""
        results = installer.install_portable_items(
            [make_item("a")],
            [ProviderType.CLAUDE_CODE, ProviderType.CLAUDE_CODE, "notepad"],
            ArtifactType.AGENT,
        )
        assert [r.provider for r in results] == ["claude-code", "notepad"]
        assert results[0].success
        assert not results[1].success


class TestPerFile:
    """Tests for the per-file strategy."""

    def test_writes_and_records(
        self,
        installer: PortableInstaller,
        make_item: MakeItem,
        project_dir: Path,
        memory_registry: InMemoryRegistry,
    ) -> None:
        """Test an item is written and recorded with matching checksums."""
        item = make_item("reviewer", body="Review code.")
        result = installer.install_portable_item([item], ProviderType.CLAUDE_CODE, ArtifactType.AGENT)

        target = project_dir / ".claude" / "agents" / "reviewer.md"
        assert result.success
        assert not result.overwritten
        assert result.path == str(target)
        assert target.read_text() == "Review code."

        (record,) = memory_registry.records
        digest = compute_content_checksum("Review code.")
        assert record.item == "reviewer"
        assert record.artifact_type is ArtifactType.AGENT
        assert record.provider is ProviderType.CLAUDE_CODE
        assert record.is_global is False
        assert record.target_path == target
        assert record.source_path == item.source_path
        assert record.source_checksum == digest
        assert record.target_checksum == digest

    def test_reinstall_overwrites(self, installer: PortableInstaller, make_item: MakeItem) -> None:
        """Test a second install reports the overwrite."""
        installer.install_portable_item([make_item("a")], ProviderType.CLAUDE_CODE, ArtifactType.AGENT)
        result = installer.install_portable_item(
            [make_item("a", body="new")], ProviderType.CLAUDE_CODE, ArtifactType.AGENT
        )
        assert result.overwritten

    def test_global_scope(
        self, installer: PortableInstaller, make_item: MakeItem, temp_home: Path
    ) -> None:
        """Test global installs land under the home directory."""
        result = installer.install_portable_item(
            [make_item("a")], ProviderType.CLAUDE_CODE, ArtifactType.AGENT, is_global=True
        )
        assert result.path == str(temp_home / ".claude" / "agents" / "a.md")

    def test_traversal_rejected(
        self, installer: PortableInstaller, make_item: MakeItem, tmp_path: Path
    ) -> None:
        """Test an escaping item name is refused before anything is written."""
        result = installer.install_portable_item(
            [make_item("../evil")], ProviderType.CLAUDE_CODE, ArtifactType.AGENT
        )
        assert not result.success
        assert result.error == "Unsafe item path segment: .."
        assert result.error_kind is ErrorKind.VALIDATION_FAILED
        assert not (tmp_path / "project" / ".claude" / "evil.md").exists()

    def test_partial_batch_succeeds(
        self, installer: PortableInstaller, make_item: MakeItem, project_dir: Path
    ) -> None:
        """Test one bad item does not fail the rest of the batch."""
        result = installer.install_portable_item(
            [make_item("good"), make_item("../bad")], ProviderType.CLAUDE_CODE, ArtifactType.AGENT
        )
        assert result.success
        assert result.warnings == ["Failed item: Unsafe item path segment: .."]
        assert [r.success for r in result.item_results] == [True, False]
        assert (project_dir / ".claude" / "agents" / "good.md").exists()

    def test_same_source_skipped(
        self,
        installer: PortableInstaller,
        project_dir: Path,
        memory_registry: InMemoryRegistry,
    ) -> None:
        """Test an item whose source is its own target is left alone."""
        target = project_dir / ".claude" / "agents" / "reviewer.md"
        target.parent.mkdir(parents=True)
        target.write_text("original")
        item = PortableItem(name="reviewer", source_path=target, body="original")

        result = installer.install_portable_item([item], ProviderType.CLAUDE_CODE, ArtifactType.AGENT)
        assert result.success
        assert result.skipped
        assert result.skip_reason == SAME_SOURCE_REASON
        assert target.read_text() == "original"
        assert memory_registry.records == []

    def test_conversion_failure_keeps_warnings(
        self, make_installer: MakeInstaller, make_item: MakeItem
    ) -> None:
        """Test converter warnings survive a conversion failure."""
        installer = make_installer(
            converter=StubConverter(errors={"bad": "no frontmatter"}, warnings=["odd tools"])
        )
        result = installer.install_portable_item(
            [make_item("bad")], ProviderType.CLAUDE_CODE, ArtifactType.AGENT
        )
        assert result.error == "Failed to convert bad: no frontmatter"
        assert result.error_kind is ErrorKind.CONVERSION_FAILED
        assert result.warnings == ["odd tools"]

    def test_flattened_names(
        self, installer: PortableInstaller, make_item: MakeItem, temp_home: Path
    ) -> None:
        """Test providers without nested commands get flat filenames."""
        installer.install_portable_item(
            [make_item("git/commit/fix")], ProviderType.CODEX, ArtifactType.COMMAND, is_global=True
        )
        assert (temp_home / ".codex" / "prompts" / "git-commit-fix.md").exists()


class TestAggregateCap:
    """Tests for the per-batch size cap."""

    def test_items_over_cap_are_skipped(
        self,
        make_installer: MakeInstaller,
        make_item: MakeItem,
        project_dir: Path,
        memory_registry: InMemoryRegistry,
    ) -> None:
        """Test an item that would push the batch over the cap is skipped."""
        installer = make_installer(converter=StubConverter(), catalog=_capped_catalog(100))
        items = [make_item("a", body="x" * 60), make_item("b", body="y" * 60), make_item("c", body="z" * 30)]

        result = installer.install_portable_item(items, ProviderType.WINDSURF, ArtifactType.RULES)

        rules = project_dir / ".windsurf" / "rules"
        assert result.success
        assert not result.skipped
        assert result.path == str(rules / "a.md")
        assert result.warnings == ['Skipped "b": would exceed 100 char limit (60+60)']
        assert result.item_results[1].skipped
        assert result.item_results[1].skip_reason == "Would exceed aggregate char limit (60+60/100)"
        assert (rules / "a.md").exists()
        assert not (rules / "b.md").exists()
        assert (rules / "c.md").exists()
        assert [r.item for r in memory_registry.records] == ["a", "c"]

    def test_all_items_over_cap(
        self, make_installer: MakeInstaller, make_item: MakeItem
    ) -> None:
        """Test a batch where nothing fits is skipped, not failed."""
        installer = make_installer(converter=StubConverter(), catalog=_capped_catalog(10))
        result = installer.install_portable_item(
            [make_item("a", body="x" * 60)], ProviderType.WINDSURF, ArtifactType.RULES
        )
        assert result.success
        assert result.skipped
        assert result.skip_reason == "Would exceed aggregate char limit (0+60/10)"

    def test_failed_items_do_not_count(
        self, make_installer: MakeInstaller, make_item: MakeItem, project_dir: Path
    ) -> None:
        """Test only written items count against the cap."""
        installer = make_installer(
            converter=StubConverter(errors={"a": "broken"}), catalog=_capped_catalog(100)
        )
        result = installer.install_portable_item(
            [make_item("a", body="x" * 60), make_item("b", body="y" * 90)],
            ProviderType.WINDSURF,
            ArtifactType.RULES,
        )
        assert result.success
        assert (project_dir / ".windsurf" / "rules" / "b.md").exists()

    def test_failure_with_only_skips_is_a_failure(
        self, make_installer: MakeInstaller, make_item: MakeItem
    ) -> None:
        """Test a batch with a failed item and nothing written fails."""
        installer = make_installer(
            converter=StubConverter(errors={"a": "broken"}), catalog=_capped_catalog(10)
        )
        result = installer.install_portable_item(
            [make_item("a"), make_item("b", body="y" * 60)],
            ProviderType.WINDSURF,
            ArtifactType.RULES,
        )
        assert not result.success
        assert not result.skipped
        assert result.error == "Failed to convert a: broken"
        assert result.error_kind is ErrorKind.CONVERSION_FAILED
        assert result.item_results[1].skipped

    def test_unmeasurable_content_counts_as_zero(self) -> None:
        """Test measuring an item never blocks it."""
        assert measure(ConversionResult(content="abc", filename="a.md")) == 3
        assert measure(ConversionResult(content=None, filename="a.md")) == 0


class TestItemIsolation:
    """Tests for one item's failure leaving the rest of the batch alone."""

    def test_raising_converter_fails_only_its_item(
        self,
        make_installer: MakeInstaller,
        make_item: MakeItem,
        project_dir: Path,
        memory_registry: InMemoryRegistry,
    ) -> None:
        """Test a converter exception in mid-batch still installs the other items."""
        installer = make_installer(
            converter=StubConverter(raises={"b": RuntimeError("converter blew up")}),
            catalog=_capped_catalog(1000),
        )
        result = installer.install_portable_item(
            [make_item("a"), make_item("b"), make_item("c")],
            ProviderType.WINDSURF,
            ArtifactType.RULES,
        )

        rules = project_dir / ".windsurf" / "rules"
        assert result.success
        assert "Failed item: converter blew up" in result.warnings
        assert [r.success for r in result.item_results] == [True, False, True]
        assert result.item_results[1].error_kind is ErrorKind.OTHER
        assert (rules / "a.md").exists()
        assert (rules / "c.md").exists()
        assert [r.item for r in memory_registry.records] == ["a", "c"]

    def test_raising_converter_single_file(
        self, make_installer: MakeInstaller, make_item: MakeItem
    ) -> None:
        """Test a converter exception on a single-file target is reported, not raised."""
        installer = make_installer(
            converter=StubConverter(raises={"main": ValueError("bad input")})
        )
        result = installer.install_portable_item(
            [make_item("main")], ProviderType.CLAUDE_CODE, ArtifactType.CONFIG
        )
        assert not result.success
        assert result.error == "bad input"
        assert result.error_kind is ErrorKind.OTHER


class TestPerFileRollback:
    """Tests for restoring files after a failed write."""

    def test_registry_failure_restores_previous_content(
        self,
        installer: PortableInstaller,
        make_item: MakeItem,
        project_dir: Path,
        memory_registry: InMemoryRegistry,
    ) -> None:
        """Test a failed registry update puts the old file back."""
        target = project_dir / ".claude" / "agents" / "a.md"
        target.parent.mkdir(parents=True)
        target.write_text("old")
        memory_registry.fail_with = RuntimeError("registry down")

        result = installer.install_portable_item(
            [make_item("a", body="new")], ProviderType.CLAUDE_CODE, ArtifactType.AGENT
        )
        assert not result.success
        assert result.error == "registry down"
        assert result.error_kind is ErrorKind.OTHER
        assert target.read_text() == "old"

    def test_registry_failure_removes_new_file(
        self,
        installer: PortableInstaller,
        make_item: MakeItem,
        project_dir: Path,
        memory_registry: InMemoryRegistry,
    ) -> None:
        """Test a file created by the failed install is removed."""
        memory_registry.fail_with = RuntimeError("registry down")
        installer.install_portable_item([make_item("a")], ProviderType.CLAUDE_CODE, ArtifactType.AGENT)
        assert not (project_dir / ".claude" / "agents" / "a.md").exists()

    def test_disk_full(
        self, make_installer: MakeInstaller, make_item: MakeItem, project_dir: Path
    ) -> None:
        """Test a write error is classified."""
        installer = make_installer(filesystem=FailingFileSystem({1}))
        result = installer.install_portable_item(
            [make_item("a")], ProviderType.CLAUDE_CODE, ArtifactType.AGENT
        )
        assert result.error == "Disk full: no space left on device"
        assert result.error_kind is ErrorKind.DISK_FULL
        assert not (project_dir / ".claude" / "agents" / "a.md").exists()

    def test_failed_rollback_is_reported(
        self,
        make_installer: MakeInstaller,
        make_item: MakeItem,
        project_dir: Path,
        memory_registry: InMemoryRegistry,
    ) -> None:
        """Test a restore failure is appended to the original error."""
        target = project_dir / ".claude" / "agents" / "a.md"
        target.parent.mkdir(parents=True)
        target.write_text("old")
        memory_registry.fail_with = RuntimeError("registry down")
        installer = make_installer(
            filesystem=FailingFileSystem({2}, OSError(errno.EACCES, "Permission denied"))
        )

        result = installer.install_portable_item(
            [make_item("a")], ProviderType.CLAUDE_CODE, ArtifactType.AGENT
        )
        assert result.error == f"registry down; rollback failed: Permission denied: {target}"
        assert result.error_kind is ErrorKind.OTHER


class TestSingleFile:
    """Tests for the single-file strategy."""

    def test_writes_first_item_only(
        self, installer: PortableInstaller, make_item: MakeItem, project_dir: Path
    ) -> None:
        """Test the first item is written and the rest reported."""
        result = installer.install_portable_item(
            [make_item("main", body="Be concise."), make_item("extra")],
            ProviderType.CLAUDE_CODE,
            ArtifactType.CONFIG,
        )
        assert result.success
        assert result.path == str(project_dir / "CLAUDE.md")
        assert (project_dir / "CLAUDE.md").read_text() == "Be concise."
        assert result.warnings == ["Claude Code config target holds one item; ignored: extra"]

    def test_nested_fixed_path(
        self, installer: PortableInstaller, make_item: MakeItem, project_dir: Path
    ) -> None:
        """Test the parent directory of a fixed path is created."""
        result = installer.install_portable_item(
            [make_item("main", body="Use tabs.")], ProviderType.ROO, ArtifactType.CONFIG
        )
        assert result.success
        assert (project_dir / ".roo" / "rules" / "project-config.md").read_text() == "Use tabs.\n"
