"""Shared CLI helpers: exit codes, console output and logging setup."""

import logging
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler

from pulsecode.core.config import PulseCodeConfig, load_config
from pulsecode.core.exceptions import ConfigError

# Exit codes
EXIT_SUCCESS = 0
EXIT_ERROR = 1
EXIT_CONFIG_ERROR = 2

# Shared console for output
console = Console()


def _error(message: str) -> None:
    console.print(f"[red]Error:[/red] {message}")


def _info(message: str) -> None:
    console.print(f"[blue]{message}[/blue]")


def _setup_logging(verbose: bool = False, quiet: bool = False, level: str | None = None) -> None:
    """Configure the root logger.

    Args:
        verbose: Force DEBUG.
        quiet: Force WARNING (ignored when verbose).
        level: Level name from configuration, used otherwise.

    """
    if verbose:
        log_level = logging.DEBUG
    elif quiet:
        log_level = logging.WARNING
    else:
        log_level = logging.getLevelName(level or "INFO")

    logging.basicConfig(
        level=log_level,
        format="%(name)s: %(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _load_config_or_exit(config_path: Path | None) -> PulseCodeConfig:
    """Load configuration, exiting with EXIT_CONFIG_ERROR on failure."""
    try:
        return load_config(config_path)
    except ConfigError as e:
        _error(str(e))
        raise typer.Exit(code=EXIT_CONFIG_ERROR) from None
