"""Unified logging for Homeport with console and file output."""
import logging
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

console = Console()

# Log file configuration
LOG_DIR = Path.home() / ".homeport" / "logs"
LOG_FILE = LOG_DIR / "homeport.log"

# Track if file logging has been set up
_file_logging_configured = False

# Level for loggers created after set_debug() has run
_level = logging.INFO


def setup_file_logging(log_file: str = None, verbose: bool = False):
    """Set up file logging for Homeport runs.

    Args:
        log_file: Path to log file (defaults to ~/.homeport/logs/homeport.log)
        verbose: Enable debug-level logging

    Note:
        Creates log directory if it doesn't exist.
        Falls back to /tmp if the home log directory cannot be created.
    """
    global _file_logging_configured

    if _file_logging_configured:
        return

    target_log_file = Path(log_file) if log_file else LOG_FILE

    try:
        target_log_file.parent.mkdir(parents=True, exist_ok=True)
    except OSError:
        # ~/.homeport may still be a legacy token file rather than a directory
        target_log_file = Path("/tmp/homeport.log")
        target_log_file.parent.mkdir(parents=True, exist_ok=True)

    root_logger = logging.getLogger("homeport")
    file_handler = logging.FileHandler(target_log_file)
    file_handler.setLevel(logging.DEBUG if verbose else logging.INFO)

    file_formatter = logging.Formatter(
        "%(asctime)s | %(name)s | %(levelname)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    file_handler.setFormatter(file_formatter)
    root_logger.addHandler(file_handler)
    root_logger.setLevel(logging.DEBUG if verbose else logging.INFO)

    _file_logging_configured = True

    root_logger.info(f"Homeport logging initialized: {target_log_file}")


def set_debug(enabled: bool) -> None:
    """Switch every Homeport logger between INFO and DEBUG."""
    global _level

    level = logging.DEBUG if enabled else logging.INFO
    _level = level
    logging.getLogger("homeport").setLevel(level)
    for name, logger in logging.root.manager.loggerDict.items():
        if name.startswith("homeport") and isinstance(logger, logging.Logger):
            logger.setLevel(level)


def get_logger(name: str) -> logging.Logger:
    """Get a configured logger instance with console output.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured logger with Rich console handler

    Note:
        File logging must be enabled separately via setup_file_logging()
    """
    logger = logging.getLogger(name)

    # Only add console handler if not already present
    if not any(isinstance(h, RichHandler) for h in logger.handlers):
        handler = RichHandler(console=console, show_path=False)
        handler.setFormatter(logging.Formatter("%(message)s"))
        logger.addHandler(handler)
        logger.setLevel(_level)

    return logger
