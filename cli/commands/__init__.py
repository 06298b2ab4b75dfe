"""CLI command modules for panelext."""

from cli.commands.extensions import extensions_app

__all__ = ["extensions_app"]
