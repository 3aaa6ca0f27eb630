"""Utility CLI commands - version."""
import typer
from rich.console import Console

from homeport import __version__

# Module-level console instance (will be set by register function)
console: Console = Console()


def version():
    """Show Homeport version."""
    console.print(f"Homeport v{__version__} - DNS, TLS and a reverse proxy for your home server")


def register_utility_commands(app: typer.Typer, shared_console: Console):
    """Register utility commands with the main Typer app.

    Args:
        app: Main Typer application
        shared_console: Shared Rich console instance
    """
    global console
    console = shared_console

    app.command()(version)
