#!/usr/bin/env python3
"""Homeport CLI - DNS, TLS and a reverse proxy for home servers."""

import typer
from rich.console import Console

from homeport.cli_proxy_commands import register_proxy_commands
from homeport.cli_utility_commands import register_utility_commands
from homeport.core.logger import console as shared_console
from homeport.core.logger import get_logger

app = typer.Typer(
    name="homeport",
    help="""Homeport - Expose a home server on your own domains

Cloudflare DNS + Traefik + Let's Encrypt, in one command.

Quick start:
  hp proxy                        # DNS, proxy and certificates for localhost:3000
  hp dns --target 203.0.113.5     # Only point domains at an address
  hp status                       # Check the proxy containers

More commands: hp --help
""",
    add_completion=False,
)

console: Console = shared_console
logger = get_logger(__name__)

# Attach modular subcommands
register_proxy_commands(app, console)
register_utility_commands(app, console)

if __name__ == "__main__":
    app()
