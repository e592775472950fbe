"""Config command group for pulsecode.

Provides configuration inspection commands:
- `pulsecode config path`: Show which config file is used
- `pulsecode config verify`: Validate a configuration file
- `pulsecode config show`: Print the effective configuration

Example:
    $ pulsecode config verify
    $ pulsecode config verify ~/my-pulsecode.yaml
"""

import logging
from pathlib import Path

import typer
import yaml

from pulsecode.cli_utils import EXIT_CONFIG_ERROR, EXIT_SUCCESS, _load_config_or_exit, console
from pulsecode.core.config import default_config_path, load_config
from pulsecode.core.exceptions import ConfigError

logger = logging.getLogger(__name__)

config_app = typer.Typer(
    name="config",
    help="Configuration management commands",
    no_args_is_help=True,
)


@config_app.command(name="path")
def path_command() -> None:
    """Show the config file location and whether it exists."""
    path = default_config_path()
    state = "[green]exists[/green]" if path.exists() else "[yellow]not found, using defaults[/yellow]"
    console.print(f"{path} ({state})")


@config_app.command(name="verify")
def verify_command(
    config: Path = typer.Argument(
        None,
        help="Path to config file (default: $PULSECODE_CONFIG or ~/.config/pulsecode/config.yaml)",
    ),
) -> None:
    """Verify a configuration file for errors.

    Exits with code 0 if valid, 2 if the file is missing or invalid.
    """
    config_path = (config or default_config_path()).expanduser().resolve()

    if not config_path.exists():
        console.print(f"[red][ERR][/red] Config file not found: {config_path}")
        raise typer.Exit(code=EXIT_CONFIG_ERROR)

    if not config_path.is_file():
        console.print(f"[red][ERR][/red] Not a file: {config_path}")
        raise typer.Exit(code=EXIT_CONFIG_ERROR)

    try:
        loaded = load_config(config_path)
    except ConfigError as e:
        console.print(f"[red][ERR][/red] {e}")
        raise typer.Exit(code=EXIT_CONFIG_ERROR) from None

    console.print(f"[green][OK][/green] {config_path}")
    for kind, settings in loaded.providers.items():
        if settings.cli_path and not Path(settings.cli_path).is_file():
            console.print(f"[yellow][WARN][/yellow] {kind.value}.cli_path does not exist: {settings.cli_path}")
    raise typer.Exit(code=EXIT_SUCCESS)


@config_app.command(name="show")
def show_command(
    config: Path = typer.Option(None, "--config", "-c", help="Path to config file"),
) -> None:
    """Print the effective configuration as YAML."""
    loaded = _load_config_or_exit(config)
    console.print(yaml.safe_dump(loaded.model_dump(mode="json"), sort_keys=False), end="", markup=False)
