"""panelext CLI.

Command-line interface for managing host extensions.
"""

from pathlib import Path
from typing import Optional

import typer

from cli.panelext.output import console, print_error, setup_logging
from host.config import reload_config

app = typer.Typer(
    name="panelext",
    help="panelext - manage extensions of the panel host",
    no_args_is_help=True,
)

# Register sub-apps
from cli.commands.extensions import extensions_app

app.add_typer(extensions_app, name="extensions")


@app.callback()
def main_options(
    config: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to config.toml (default: search current and parent directories)",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable debug logging",
    ),
) -> None:
    """Load configuration and set up logging for every command."""
    try:
        settings = reload_config(config)
    except (ValueError, TypeError, OSError) as e:
        print_error(f"Invalid configuration: {e}")
        raise typer.Exit(1)

    setup_logging("DEBUG" if verbose else settings.logging.level)


@app.command()
def version() -> None:
    """Show panelext version."""
    from cli.panelext import __version__

    console.print(f"panelext v{__version__}")


def main() -> None:
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
