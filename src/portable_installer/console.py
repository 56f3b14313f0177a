"""Rich output helpers for the CLI."""

from __future__ import annotations

from typing import TYPE_CHECKING

from rich.console import Console
from rich.table import Table

from portable_installer.types import ArtifactType

if TYPE_CHECKING:
    from portable_installer.providers import ProviderConfig
    from portable_installer.registry import PortableInstallation


class ConsoleView:
    """Renders the provider catalog and registry to the terminal."""

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()

    def show_providers(
        self,
        providers: list[ProviderConfig],
        detected: set[str] | None = None,
    ) -> None:
        """Display the provider catalog.

        Args:
            providers: Providers to list.
            detected: Identifiers of providers found on this machine, if known.
        """
        if not providers:
            self.console.print("[yellow]No providers match[/yellow]")
            return

        table = Table(title="Providers")
        table.add_column("Provider", style="cyan")
        table.add_column("Name")
        table.add_column("Supports")
        table.add_column("Subagents")
        if detected is not None:
            table.add_column("Detected")

        for config in providers:
            supported = ", ".join(t.value for t in ArtifactType if config.supports(t))
            row = [config.name.value, config.display_name, supported, config.subagents.value]
            if detected is not None:
                row.append("[green]✓[/green]" if config.name.value in detected else "")
            table.add_row(*row)

        self.console.print(table)

    def show_installed(self, installations: list[PortableInstallation]) -> None:
        """Display registry entries.

        Args:
            installations: Entries to list.
        """
        if not installations:
            self.console.print("[yellow]No items installed[/yellow]")
            return

        table = Table(title="Installed Items")
        table.add_column("Item", style="cyan")
        table.add_column("Type")
        table.add_column("Provider")
        table.add_column("Scope")
        table.add_column("Path")
        table.add_column("Installed")

        for entry in installations:
            table.add_row(
                entry.item,
                entry.artifact_type.value,
                entry.provider,
                "global" if entry.is_global else "project",
                entry.path,
                entry.installed_at.strftime("%Y-%m-%d %H:%M"),
            )

        self.console.print(table)

    def show_success(self, message: str) -> None:
        self.console.print(f"[green]✓[/green] {message}")

    def show_error(self, message: str) -> None:
        self.console.print(f"[red]✗[/red] {message}")

    def show_warning(self, message: str) -> None:
        self.console.print(f"[yellow]![/yellow] {message}")

    def show_info(self, message: str) -> None:
        self.console.print(f"[blue]i[/blue] {message}")
