"""CLI commands using Typer."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Annotated

if TYPE_CHECKING:
    from portable_installer.context import AppContext
    from portable_installer.registry import PortableInstallation

import typer
from rich.logging import RichHandler

from portable_installer import __version__
from portable_installer.console import ConsoleView
from portable_installer.context import create_context
from portable_installer.providers import (
    detect_installed_providers,
    get_install_path,
    get_provider,
)
from portable_installer.types import ArtifactType, ProviderType

app = typer.Typer(
    name="portable-installer",
    help="Install AI-assistant agents, commands, skills, rules and config into coding-agent tools",
    no_args_is_help=True,
)

view = ConsoleView()
console = view.console


def version_callback(value: bool) -> None:
    """Show version and exit."""
    if value:
        console.print(f"portable-installer v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            "-V",
            callback=version_callback,
            is_eager=True,
            help="Show version and exit",
        ),
    ] = False,
    verbose: Annotated[
        bool, typer.Option("--verbose", "-v", help="Show debug logging")
    ] = False,
) -> None:
    """Install AI-assistant artifacts into coding-agent tools."""
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(message)s",
            handlers=[RichHandler(console=console, show_path=False)],
        )


def _parse_provider(value: str) -> ProviderType:
    try:
        return ProviderType(value)
    except ValueError as e:
        valid = ", ".join(p.value for p in ProviderType)
        view.show_error(f"Unknown provider '{value}'. Choose from: {valid}")
        raise typer.Exit(1) from e


@app.command()
def providers(
    artifact_type: Annotated[
        ArtifactType | None, typer.Option("--type", "-t", help="Only providers supporting this type")
    ] = None,
    detect: Annotated[
        bool, typer.Option("--detect", "-d", help="Mark tools found on this machine")
    ] = False,
    _context=None,
) -> None:
    """List supported providers."""
    ctx = _context or create_context()
    configs = [
        config
        for config in ctx.catalog.values()
        if artifact_type is None or config.supports(artifact_type)
    ]
    detected = None
    if detect:
        detected = {p.value for p in detect_installed_providers(ctx.project_dir, ctx.catalog)}
    view.show_providers(configs, detected)


@app.command()
def where(
    item: Annotated[str, typer.Argument(help="Item name, e.g. 'reviewer' or 'docs/init'")],
    provider: Annotated[str, typer.Option("--provider", "-p", help="Target provider")],
    artifact_type: Annotated[ArtifactType, typer.Option("--type", "-t", help="Artifact type")],
    is_global: Annotated[
        bool, typer.Option("--global", "-g", help="Global (home directory) scope")
    ] = False,
    _context=None,
) -> None:
    """Show the file an item would be installed to."""
    ctx = _context or create_context()
    provider_type = _parse_provider(provider)
    path = get_install_path(
        item, provider_type, artifact_type, is_global, ctx.project_dir, ctx.catalog
    )
    if path is None:
        config = get_provider(provider_type, ctx.catalog)
        name = config.display_name if config else provider
        scope = "global" if is_global else "project"
        view.show_error(f"{name} does not support {scope}-level {artifact_type.value}s")
        raise typer.Exit(1)
    console.print(str(path))


def _load_installations(
    ctx: AppContext, artifact_type: ArtifactType | None, provider: ProviderType | None
) -> list[PortableInstallation]:
    try:
        return ctx.registry.list_installations(artifact_type, provider)
    except ValueError as e:
        view.show_error(str(e))
        raise typer.Exit(1) from e


@app.command()
def installed(
    provider: Annotated[
        str | None, typer.Option("--provider", "-p", help="Filter by provider")
    ] = None,
    artifact_type: Annotated[
        ArtifactType | None, typer.Option("--type", "-t", help="Filter by artifact type")
    ] = None,
    _context=None,
) -> None:
    """Show installed items."""
    ctx = _context or create_context()
    provider_type = _parse_provider(provider) if provider else None
    view.show_installed(_load_installations(ctx, artifact_type, provider_type))


@app.command()
def forget(
    item: Annotated[str, typer.Argument(help="Item name")],
    provider: Annotated[str, typer.Option("--provider", "-p", help="Provider")],
    artifact_type: Annotated[ArtifactType, typer.Option("--type", "-t", help="Artifact type")],
    is_global: Annotated[
        bool, typer.Option("--global", "-g", help="Global (home directory) scope")
    ] = False,
    _context=None,
) -> None:
    """Remove an item from the registry without touching installed files."""
    ctx = _context or create_context()
    provider_type = _parse_provider(provider)
    try:
        removed = ctx.registry.remove_installation(item, artifact_type, provider_type, is_global)
    except ValueError as e:
        view.show_error(str(e))
        raise typer.Exit(1) from e

    if removed is None:
        view.show_warning(f"Item '{item}' not found in installed items")
        raise typer.Exit(1)
    view.show_success(f"Forgot {item} ({artifact_type.value}) for {provider_type.value}")


@app.command()
def sync(
    _context=None,
) -> None:
    """Drop registry entries whose installed file no longer exists."""
    ctx = _context or create_context()
    try:
        removed = ctx.registry.sync()
    except ValueError as e:
        view.show_error(str(e))
        raise typer.Exit(1) from e

    if not removed:
        view.show_info("Registry is up to date")
        return
    for entry in removed:
        view.show_warning(f"Removed orphaned entry {entry.item} ({entry.provider}): {entry.path}")
    view.show_success(f"Removed {len(removed)} orphaned entr{'y' if len(removed) == 1 else 'ies'}")


if __name__ == "__main__":
    app()
