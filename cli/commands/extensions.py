"""Extensions CLI commands for panelext.

Manage extensions installed in the host's extensions directory.
"""

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from cli.panelext.output import (
    print_error,
    print_extensions,
    print_info,
    print_key_value,
    print_success,
    print_warning,
)
from extensions import ExtensionContext, ExtensionError, LifecycleManager, OverrideConflictError
from host.config import get_config

console = Console()

extensions_app = typer.Typer(
    name="extensions",
    help="Manage host extensions.",
    no_args_is_help=True,
)


def get_manager() -> LifecycleManager:
    """Get a lifecycle manager for the configured host."""
    return LifecycleManager(ExtensionContext.from_config(get_config()))


@extensions_app.command("list")
def list_extensions() -> None:
    """List extensions found in the extensions directory.

    Example:
        panelext extensions list
    """
    manager = get_manager()

    if not manager.paths.extensions_dir.is_dir():
        print_error(f"Extensions directory not found: {manager.paths.extensions_dir}")
        raise typer.Exit(1)

    statuses = manager.list_extensions()
    if not statuses:
        console.print("[yellow]No extensions found[/yellow]")
        console.print("[dim]Import one with: panelext extensions import <archive>[/dim]")
        return

    print_extensions(statuses)
    console.print(f"\n[dim]Total: {len(statuses)} extensions[/dim]")


@extensions_app.command("show")
def show(
    extension_id: str = typer.Argument(..., help="Extension id"),
) -> None:
    """Show details of an extension.

    Example:
        panelext extensions show dark-theme
    """
    manager = get_manager()

    try:
        descriptor = manager.load_descriptor(extension_id)
    except ExtensionError as e:
        print_error(str(e))
        raise typer.Exit(1)

    record = manager.ledger.get(extension_id)

    console.print(f"\n[bold cyan]{descriptor.name}[/bold cyan] v{descriptor.version}")
    if descriptor.author:
        console.print(f"[dim]by {descriptor.author}[/dim]")
    if descriptor.description:
        console.print(f"\n{descriptor.description}")

    console.print("\n[bold]Extension[/bold]")
    print_key_value("  ID", descriptor.id)
    print_key_value("  Types", ", ".join(sorted(t.label for t in descriptor.types)))
    print_key_value("  Entry Point", descriptor.entry_point)
    print_key_value("  State", manager.state(extension_id).value)

    if record and record.applied_migrations:
        console.print("\n[bold]Applied Migrations[/bold]")
        for name in record.applied_migrations:
            console.print(f"  - {name}")

    if record and record.language_overrides:
        console.print("\n[bold]Language Overrides[/bold]")
        for key in record.language_overrides:
            console.print(f"  - {key}")


@extensions_app.command("enable")
def enable(
    extension_id: str = typer.Argument(..., help="Extension id to enable"),
) -> None:
    """Enable an extension and publish its artifacts.

    Example:
        panelext extensions enable dark-theme
    """
    manager = get_manager()
    print_info(f"Enabling extension: {extension_id}")

    try:
        manager.enable(extension_id)
    except OverrideConflictError as e:
        print_error(f"Failed to enable extension: {e}")
        for conflict in e.conflicts:
            console.print(
                f"  • {conflict.override_key} ← {conflict.blocking_extension_name} "
                f"([dim]{conflict.blocking_extension_id}[/dim])"
            )
        raise typer.Exit(1)
    except ExtensionError as e:
        print_error(f"Failed to enable extension: {e}")
        raise typer.Exit(1)

    print_success(f"Extension '{extension_id}' has been enabled successfully.")


@extensions_app.command("disable")
def disable(
    extension_id: str = typer.Argument(..., help="Extension id to disable"),
) -> None:
    """Disable an extension without uninstalling it.

    Example:
        panelext extensions disable dark-theme
    """
    manager = get_manager()

    try:
        changed = manager.disable(extension_id)
    except ExtensionError as e:
        print_error(f"Failed to disable extension: {e}")
        raise typer.Exit(1)

    if changed:
        print_success(f"Extension '{extension_id}' has been disabled successfully.")
    else:
        print_warning(f"Extension '{extension_id}' was never enabled")


@extensions_app.command("uninstall")
def uninstall(
    extension_id: str = typer.Argument(..., help="Extension id to uninstall"),
    yes: bool = typer.Option(
        False,
        "--yes",
        "-y",
        help="Skip confirmation",
    ),
) -> None:
    """Uninstall an extension, deleting its files and record.

    Example:
        panelext extensions uninstall dark-theme
    """
    manager = get_manager()

    if not yes:
        if not typer.confirm(f"Uninstall {extension_id}? This deletes its files."):
            raise typer.Exit(0)

    try:
        manager.uninstall(extension_id)
    except ExtensionError as e:
        print_error(f"Failed to uninstall extension: {e}")
        raise typer.Exit(1)

    print_success(f"Uninstalled: {extension_id}")


@extensions_app.command("import")
def import_archive(
    archive: Path = typer.Argument(..., help="Path to a .zip or .tar.gz extension archive"),
    enable_after: bool = typer.Option(
        False,
        "--enable",
        "-e",
        help="Enable the extension after importing",
    ),
) -> None:
    """Import an extension archive, replacing any existing version.

    Examples:
        panelext extensions import ./dark-theme.zip
        panelext extensions import ./dark-theme.zip --enable
    """
    manager = get_manager()

    if not archive.exists():
        print_error(f"Path does not exist: {archive}")
        raise typer.Exit(1)

    try:
        result = manager.import_archive(archive, auto_enable=enable_after)
    except ExtensionError as e:
        print_error(f"Error importing extension: {e}")
        raise typer.Exit(1)

    print_success(f"{result.message}: {result.extension_id}")
    if enable_after:
        print_info(f"Extension '{result.extension_id}' enabled")


@extensions_app.command("export")
def export(
    extension_id: str = typer.Argument(..., help="Extension id to export"),
    output: Optional[Path] = typer.Option(
        None,
        "--output",
        "-o",
        help="Output zip path (default: storage/exports/<id>-<timestamp>.zip)",
    ),
) -> None:
    """Export an extension as a zip archive.

    Examples:
        panelext extensions export dark-theme
        panelext extensions export dark-theme -o dark-theme.zip
    """
    manager = get_manager()

    try:
        path = manager.export_archive(extension_id, output)
    except ExtensionError as e:
        print_error(f"Failed to export extension: {e}")
        raise typer.Exit(1)

    print_success(f"Exported {extension_id} to {path}")


@extensions_app.command("init")
def init() -> None:
    """Initialize the host directories used by extensions.

    Example:
        panelext extensions init
    """
    manager = get_manager()
    paths = manager.paths

    for directory in (paths.extensions_dir, paths.storage_dir, paths.lang_dir):
        directory.mkdir(parents=True, exist_ok=True)

    print_success("Extensions directory initialized")
    console.print(f"[dim]Location: {paths.extensions_dir}[/dim]")
    console.print()
    console.print("[bold]Extension layout:[/bold]")
    console.print("  <id>/")
    console.print("  ├── extension.json   # Descriptor")
    console.print("  ├── migrations/      # SQL scripts")
    console.print("  ├── public/          # Static assets")
    console.print("  ├── views/           # Templates")
    console.print("  ├── config/<id>.json # Config fragment")
    console.print("  ├── theme/           # Stylesheets")
    console.print("  ├── admin|app|server/{pages,resources,widgets}/")
    console.print("  └── lang/            # Translations and overrides")
