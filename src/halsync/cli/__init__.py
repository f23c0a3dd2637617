"""
hal CLI - Main application entry point.

This module sets up the Typer CLI application with all subcommands.
"""

import logging
import sys

import typer
from rich.console import Console

from halsync import __version__
from halsync.cli import capability, component
from halsync.core.config.env import load_layered_env

# Help panel names for command grouping
PANEL_DEVELOP = "Develop Components"
PANEL_INSTALL = "Manage Your hal Installation"

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Create the main Typer app
app = typer.Typer(
    name="hal",
    help="Push local components to a cluster and keep them in sync",
    no_args_is_help=True,
    add_completion=True,
    context_settings={"help_option_names": ["--help", "-h"]},
)

console = Console()


@app.callback()
def main(
    ctx: typer.Context,
    debug: bool = typer.Option(
        False,
        "--debug",
        help="Enable debug output with detailed logging",
    ),
    namespace: str | None = typer.Option(
        None,
        "--namespace",
        "-n",
        help="Namespace to work in (default: config, then kubectl context)",
    ),
) -> None:
    """
    hal - inner-loop development against a cluster.

    Quick Start:
        hal component push              # Push the current directory
        hal component wait backend      # Wait for a component to be ready
        hal capability list             # See what can be bound

    Documentation:
        hal --help                      # This message
        hal <command> --help            # Help for specific command
    """
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format=LOG_FORMAT,
        stream=sys.stderr,
    )

    # Shell env > project .env.local > project .env > user .env
    load_layered_env()

    ctx.obj = {"debug": debug, "namespace": namespace}


# =============================================================================
# Develop Components
# =============================================================================

app.add_typer(component.app, name="component", rich_help_panel=PANEL_DEVELOP)
app.add_typer(capability.app, name="capability", rich_help_panel=PANEL_DEVELOP)


# =============================================================================
# Manage Your hal Installation
# =============================================================================


@app.command(rich_help_panel=PANEL_INSTALL)
def version() -> None:
    """Show hal version and exit."""
    console.print(f"hal version {__version__}")
    raise typer.Exit(0)


def cli_main() -> None:
    """Main CLI entry point."""
    app()


__all__ = ["app", "cli_main"]
