"""Rich console output utilities for the panelext CLI."""

import logging
from typing import Any

from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from schemas.extension import ExtensionStatus

console = Console()
error_console = Console(stderr=True)


def setup_logging(level: str = "INFO") -> None:
    """Route all log records through a single rich handler on stderr."""
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = RichHandler(console=error_console, show_path=False, markup=False)
    handler.setLevel(numeric_level)
    handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))
    root_logger.addHandler(handler)

    # filelock logs every acquire/release at DEBUG
    logging.getLogger("filelock").setLevel(logging.WARNING)


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[green]✓[/green] {message}")


def print_error(message: str) -> None:
    """Print an error message to stderr."""
    error_console.print(f"[red]✗[/red] {message}")


def print_warning(message: str) -> None:
    """Print a warning message."""
    console.print(f"[yellow]![/yellow] {message}")


def print_info(message: str) -> None:
    """Print an info message."""
    console.print(f"[blue]→[/blue] {message}")


def print_key_value(key: str, value: Any, key_style: str = "bold") -> None:
    """Print a key-value pair."""
    console.print(f"[{key_style}]{key}:[/{key_style}] {value}")


def print_extensions(statuses: list[ExtensionStatus]) -> None:
    """Print extensions as a table."""
    table = Table(title="Extensions")
    table.add_column("ID", style="cyan")
    table.add_column("Name")
    table.add_column("Version")
    table.add_column("Status")
    table.add_column("Installed")

    for status in statuses:
        state = "[green]Enabled[/green]" if status.enabled else "[red]Disabled[/red]"
        installed = "[green]Yes[/green]" if status.installed else "[yellow]No[/yellow]"
        table.add_row(status.id, status.name, status.version, state, installed)

    console.print(table)
