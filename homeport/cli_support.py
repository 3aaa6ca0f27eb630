"""Shared utilities for Homeport CLI modules."""
from __future__ import annotations

import os
from typing import Optional

import typer
from rich.console import Console

from homeport.core.config import HomeportConfig, get_config
from homeport.core.pipeline import PipelineOutcome, StepStatus


def is_mock() -> bool:
    """Return True when CLI runs in mock mode."""
    return os.environ.get("HOMEPORT_MOCK") == "1"


def setup_file_logging(log_file: Optional[str] = None, verbose: bool = False) -> None:
    """Set up file logging for CLI commands.

    Args:
        log_file: Path to log file (optional)
        verbose: Enable verbose logging
    """
    from homeport.core.logger import setup_file_logging as _setup_file_logging
    _setup_file_logging(log_file=log_file, verbose=verbose)


def prepare_run(debug: bool = False, log_file: Optional[str] = None) -> HomeportConfig:
    """Apply --debug/--log-file and return the active configuration."""
    from homeport.core.logger import set_debug

    config = get_config()
    if debug:
        config.debug = True
    set_debug(config.debug)
    setup_file_logging(log_file=log_file, verbose=config.debug)
    return config


def finish(outcome: PipelineOutcome, console: Console) -> None:
    """Report a workflow outcome and exit with its code when it failed.

    Raises:
        typer.Exit: If the workflow failed
    """
    if outcome.status == StepStatus.STOPPED:
        print_warning(console, outcome.message)
        return

    if outcome.status == StepStatus.FAILED:
        print_error(console, f"{outcome.message} [dim](step: {outcome.failed_step})[/dim]")
        raise typer.Exit(outcome.exit_code)


def handle_cli_error(
    e: Exception,
    console: Console,
    verbose: bool = False,
    exit_code: int = 1
) -> None:
    """Handle CLI errors with consistent formatting.

    Args:
        e: Exception to handle
        console: Rich console for output
        verbose: Show exception traceback if True
        exit_code: Exit code to use
    """
    console.print(f"[red]Error:[/red] {e}")
    if verbose:
        console.print_exception()
    raise typer.Exit(exit_code)


def print_success(console: Console, message: str, prefix: str = "✓") -> None:
    console.print(f"[green]{prefix}[/green] {message}")


def print_error(console: Console, message: str, prefix: str = "✗") -> None:
    console.print(f"[red]{prefix}[/red] {message}")


def print_warning(console: Console, message: str, prefix: str = "⚠") -> None:
    console.print(f"[yellow]{prefix}[/yellow] {message}")


def print_info(console: Console, message: str, prefix: str = "ℹ") -> None:
    console.print(f"[cyan]{prefix}[/cyan] {message}")
