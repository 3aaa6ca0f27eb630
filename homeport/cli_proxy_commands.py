"""Proxy CLI commands - proxy, dns, status."""
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from homeport.cli_support import (
    finish,
    handle_cli_error,
    is_mock,
    prepare_run,
    print_error,
    print_info,
    print_success,
    print_warning,
)
from homeport.core.config import get_config
from homeport.core.errors import HomeportError
from homeport.core.orchestrator import DnsWorkflow, ProxyWorkflow
from homeport.core.prompts import Prompter
from homeport.core.runner import CommandRunner
from homeport.models.proxy import ContainerStatus
from homeport.services.docker.runtime import ContainerRuntime

# Module-level console instance (will be set by register function)
console: Console = Console()

PROXY_PORTS = (80, 443)


def proxy(
    email: Optional[str] = typer.Option(None, "--email", "-e", help="Email for Let's Encrypt certificates"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Replace conflicting DNS records without asking"),
    debug: bool = typer.Option(False, "--debug", help="Show API responses and generated config"),
    log_file: Optional[str] = typer.Option(None, "--log-file", help="Write a detailed log to this file"),
):
    """Point your domains at this machine and serve them over HTTPS.

    Verifies the Cloudflare token, detects public/internal IPs, sets A
    records for the selected domains, then configures Traefik to route
    every domain to localhost:3000 with Let's Encrypt certificates.

    Examples:
        homeport proxy
        homeport proxy --email ops@example.com --yes
    """
    config = prepare_run(debug, log_file)
    prompter = Prompter(console)

    workflow = ProxyWorkflow(
        config,
        prompter=prompter,
        console=console,
        email=email,
        assume_yes=yes,
        mock=is_mock(),
    )
    try:
        outcome = workflow.run()
    except KeyboardInterrupt:
        print_warning(console, "Cancelled")
        raise typer.Exit(130)
    except Exception as e:
        handle_cli_error(e, console, verbose=config.debug)
    finish(outcome, console)


def dns(
    target: str = typer.Option(..., "--target", "-t", help="IPv4 address (A record) or hostname (CNAME)"),
    proxied: bool = typer.Option(False, "--proxied", help="Route traffic through Cloudflare's proxy"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Replace conflicting DNS records without asking"),
    debug: bool = typer.Option(False, "--debug", help="Show API responses"),
    log_file: Optional[str] = typer.Option(None, "--log-file", help="Write a detailed log to this file"),
):
    """Point selected domains at an IP address or hostname.

    Examples:
        homeport dns --target 203.0.113.5
        homeport dns --target myhost.duckdns.org --proxied
    """
    config = prepare_run(debug, log_file)

    workflow = DnsWorkflow(
        config,
        target,
        prompter=Prompter(console),
        console=console,
        proxied=proxied,
        assume_yes=yes,
    )
    try:
        outcome = workflow.run()
    except KeyboardInterrupt:
        print_warning(console, "Cancelled")
        raise typer.Exit(130)
    except Exception as e:
        handle_cli_error(e, console, verbose=config.debug)
    finish(outcome, console)


def status():
    """Show the state of the Traefik and placeholder containers."""
    config = get_config()
    runtime = ContainerRuntime(CommandRunner(timeout=config.command_timeout, mock=is_mock()))

    try:
        runtime.preflight()
    except HomeportError as e:
        print_error(console, str(e))
        raise typer.Exit(e.exit_code)

    print_success(console, "Docker is running")

    proxy_state = runtime.state(config.proxy_container, ports=PROXY_PORTS)
    placeholder_state = runtime.state(config.placeholder_container, ports=[80])

    table = Table(title="Homeport containers")
    table.add_column("Container", style="cyan")
    table.add_column("State")
    table.add_column("Ports")
    table.add_row(config.proxy_container, proxy_state.status.value, _ports_label(proxy_state, "80, 443"))
    table.add_row(
        config.placeholder_container,
        placeholder_state.status.value,
        _ports_label(placeholder_state, f"{config.backend_port} → 80"),
    )
    console.print(table)

    if proxy_state.status == ContainerStatus.RUNNING:
        if proxy_state.ports_bound:
            print_success(console, "Traefik is running with ports 80 and 443 bound")
        else:
            print_warning(console, "Traefik is running but ports 80/443 are not bound")
            _show_port_conflicts(runtime)
        return

    if proxy_state.status == ContainerStatus.ABSENT:
        print_info(console, "Traefik is not installed. Run 'homeport proxy' to set it up.")
    else:
        print_warning(console, "Traefik exists but is stopped. Run 'homeport proxy' to start it.")

    if any(runtime.port_in_use_externally(port) for port in PROXY_PORTS):
        print_warning(console, "Ports 80/443 are already taken, Traefik will not be able to bind them")
        _show_port_conflicts(runtime)


def _ports_label(state, ports: str) -> str:
    if state.status != ContainerStatus.RUNNING:
        return "-"
    return ports if state.ports_bound else "[yellow]not bound[/yellow]"


def _show_port_conflicts(runtime: ContainerRuntime) -> None:
    for port in PROXY_PORTS:
        if not runtime.port_in_use_externally(port):
            console.print(f"   • port {port} is free")
            continue
        listeners = runtime.port_listeners(port)
        if not listeners:
            console.print(f"   • port {port} is published by another container")
        for listener in listeners:
            console.print(f"   • port {port} held by {listener.describe()}")


def register_proxy_commands(app: typer.Typer, shared_console: Console):
    """Register proxy commands with the main Typer app.

    Args:
        app: Main Typer application
        shared_console: Shared Rich console instance
    """
    global console
    console = shared_console

    app.command()(proxy)
    app.command()(dns)
    app.command()(status)
