"""panelext CLI.

Command-line interface for the extension lifecycle engine. The typer
application lives in cli.panelext.cli.
"""

__version__ = "0.1.0"

__all__ = ["__version__"]
