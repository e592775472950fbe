"""PulseCode command-line interface.

Commands:
- `pulsecode serve`: Run the HTTP/SSE server
- `pulsecode check [PROVIDER]`: Check which assistant CLIs are installed
- `pulsecode git-status [PATH]`: Show branch and working-tree changes
- `pulsecode config ...`: Configuration commands

Example:
    $ pulsecode serve --port 9000
    $ pulsecode check claude
"""

import asyncio
import logging
from pathlib import Path

import typer
from rich.table import Table

from pulsecode import __version__
from pulsecode.cli_utils import (
    EXIT_ERROR,
    EXIT_SUCCESS,
    _error,
    _info,
    _load_config_or_exit,
    _setup_logging,
    console,
)
from pulsecode.commands.config import config_app
from pulsecode.core.async_utils import run_async_with_timeout
from pulsecode.providers import ProviderKind, ProviderLauncher
from pulsecode.vcs import FileChange, GitReader

logger = logging.getLogger(__name__)

app = typer.Typer(
    name="pulsecode",
    help="Supervise AI coding assistant sessions across workspaces",
    no_args_is_help=True,
)
app.add_typer(config_app, name="config")

ConfigOption = typer.Option(
    None,
    "--config",
    "-c",
    help="Path to config file (default: $PULSECODE_CONFIG or ~/.config/pulsecode/config.yaml)",
)


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"pulsecode {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
) -> None:
    """Supervise AI coding assistant sessions across workspaces."""


@app.command()
def serve(
    config: Path | None = ConfigOption,
    host: str | None = typer.Option(None, "--host", help="Bind address (default from config)"),
    port: int | None = typer.Option(None, "--port", "-p", help="Port (default from config)"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Only log warnings and errors"),
) -> None:
    """Run the HTTP API and event stream server."""
    loaded = _load_config_or_exit(config)
    _setup_logging(verbose=verbose, quiet=quiet, level=loaded.log_level)

    from pulsecode.dashboard.server import run_server

    _info(f"Serving on http://{host or loaded.host}:{port or loaded.port}")
    run_server(loaded, host=host, port=port)


@app.command()
def check(
    provider: str | None = typer.Argument(None, help="Provider to check (default: all)"),
    config: Path | None = ConfigOption,
) -> None:
    """Check which assistant CLIs are installed.

    Exits with code 0 if every checked provider is available, 1 otherwise.
    """
    loaded = _load_config_or_exit(config)
    launcher = ProviderLauncher(loaded.providers)

    names = [provider] if provider else [kind.value for kind in ProviderKind]

    table = Table(title="Assistant CLIs")
    table.add_column("Provider", style="cyan")
    table.add_column("Available")
    table.add_column("Details")

    all_available = True
    for name in names:
        result = launcher.check_availability(name)
        all_available = all_available and result.available
        table.add_row(
            name,
            "[green]yes[/green]" if result.available else "[red]no[/red]",
            result.message,
        )

    console.print(table)
    raise typer.Exit(code=EXIT_SUCCESS if all_available else EXIT_ERROR)


async def _read_git(reader: GitReader, path: Path) -> tuple[str | None, list[FileChange]]:
    branch, changes = await asyncio.gather(reader.current_branch(path), reader.status_lines(path))
    return branch, changes


@app.command(name="git-status")
def git_status(
    path: Path = typer.Argument(Path("."), help="Directory inside a git repository"),
    config: Path | None = ConfigOption,
) -> None:
    """Show the current branch and working-tree changes."""
    loaded = _load_config_or_exit(config)
    target = path.resolve()
    if not target.is_dir():
        _error(f"Not a directory: {target}")
        raise typer.Exit(code=EXIT_ERROR)

    reader = GitReader(executable=loaded.git_executable, timeout=loaded.git_timeout)
    branch, changes = run_async_with_timeout(_read_git(reader, target))

    console.print(f"[bold]Branch:[/bold] {branch or '[dim](none)[/dim]'}")
    if not changes:
        console.print("[dim]No changes[/dim]")
        return

    table = Table()
    table.add_column("Path")
    table.add_column("Type")
    table.add_column("Status")
    for change in changes:
        color = {"added": "green", "deleted": "red"}.get(change.type.value, "yellow")
        table.add_row(change.path, f"[{color}]{change.type.value}[/{color}]", change.status.value)
    console.print(table)


if __name__ == "__main__":
    app()
