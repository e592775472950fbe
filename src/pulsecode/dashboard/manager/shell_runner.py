"""One-shot shell commands in a workspace directory.

Non-zero exit is a result, not an error; only a failure to launch the
shell (missing shell, missing cwd) raises.
"""

import asyncio
import contextlib
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from pulsecode.core import platform_command
from pulsecode.core.exceptions import SpawnError

logger = logging.getLogger(__name__)

# Exit code reported when the timeout kills the command
TIMEOUT_EXIT_CODE = 124


@dataclass(frozen=True)
class ShellResult:
    """Captured outcome of a shell command.

    Attributes:
        exit_code: Process return code.
        stdout: Decoded standard output.
        stderr: Decoded standard error.
        timed_out: True if the command was killed by the timeout.

    """

    exit_code: int
    stdout: str
    stderr: str
    timed_out: bool = False

    @property
    def success(self) -> bool:
        return self.exit_code == 0 and not self.timed_out


class CommandExecutor(Protocol):
    """Runs a command string in a directory."""

    async def run(self, command: str, cwd: Path | str) -> ShellResult: ...


class ShellRunner:
    """Runs commands through the host shell.

    Attributes:
        shell: Shell executable; None selects the platform default.
        timeout: Seconds before the command is killed; None waits forever.

    """

    def __init__(self, shell: str | None = None, timeout: float | None = None) -> None:
        self.shell = shell
        self.timeout = timeout

    async def run(self, command: str, cwd: Path | str) -> ShellResult:
        """Run a command and capture its output.

        Args:
            command: Command string passed to the shell.
            cwd: Working directory.

        Returns:
            ShellResult with exit code and decoded output.

        Raises:
            SpawnError: If the shell could not be started.

        """
        argv = [*platform_command.get_shell_command(self.shell), command]
        logger.debug("Running shell command in %s: %s", cwd, command)

        try:
            process = await asyncio.create_subprocess_exec(
                *argv,
                cwd=str(cwd),
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise SpawnError(
                f"Failed to run command in {cwd}: {e}",
                executable=argv[0],
            ) from e

        try:
            stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=self.timeout)
        except TimeoutError:
            logger.warning("Shell command timed out after %ss in %s: %s", self.timeout, cwd, command)
            with contextlib.suppress(ProcessLookupError):
                process.kill()
            await process.wait()
            return ShellResult(
                exit_code=TIMEOUT_EXIT_CODE,
                stdout="",
                stderr=f"Command timed out after {self.timeout}s",
                timed_out=True,
            )

        exit_code = process.returncode if process.returncode is not None else -1
        if exit_code != 0:
            logger.debug("Shell command exited %d in %s", exit_code, cwd)
        return ShellResult(
            exit_code=exit_code,
            stdout=stdout.decode("utf-8", errors="replace"),
            stderr=stderr.decode("utf-8", errors="replace"),
        )
