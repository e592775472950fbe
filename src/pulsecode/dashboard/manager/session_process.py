"""Session process for one workspace.

Owns a single assistant CLI child process:
- Spawning with pipes for stdin, stdout and stderr
- Independent reader tasks per output stream
- Exit watcher that reports the return code once both streams hit EOF
- Bounded buffer of raw output chunks for late observers
- One-shot "waiting for initialization" hint if the tool stays silent

The registry decides what a lifecycle event means for the workspace; the
session only reports through its callbacks.
"""

import asyncio
import contextlib
import logging
from collections import deque
from collections.abc import Callable
from datetime import UTC, datetime
from enum import StrEnum
from pathlib import Path
from typing import Any

from pulsecode.core.async_utils import delayed_invoke, maybe_await
from pulsecode.core.exceptions import NoActiveSessionError, SessionError, SpawnError
from pulsecode.dashboard.sse_channel.event_parser import ChunkDecoder, OutputChunk
from pulsecode.providers.base import LaunchSpec

logger = logging.getLogger(__name__)

DEFAULT_BUFFER_SIZE = 500  # raw chunks kept per session
DEFAULT_INIT_GRACE = 2.0  # seconds of silence before the init hint
READ_CHUNK_SIZE = 4096

OutputCallback = Callable[["SessionProcess", str, bool], Any]
ExitCallback = Callable[["SessionProcess", int], Any]


class SessionState(StrEnum):
    """Lifecycle of one session process.

    Valid transitions:
        NOT_STARTED → STARTING (start requested)
        STARTING → RUNNING (process spawned)
        STARTING → ERRORED (spawn failed)
        RUNNING → COMPLETED (exit code 0)
        RUNNING → ERRORED (non-zero exit or signal)
        RUNNING → STOPPED (terminated by user)
    """

    NOT_STARTED = "not_started"
    STARTING = "starting"
    RUNNING = "running"
    COMPLETED = "completed"
    ERRORED = "errored"
    STOPPED = "stopped"


class SessionProcess:
    """A running assistant CLI bound to one workspace.

    Attributes:
        workspace_id: Owning workspace.
        tool_name: Display name of the tool (for notices).
        launch: Executable, arguments and environment.
        cwd: Working directory (the workspace path).
        state: Current lifecycle state.
        has_received_output: True once any stream produced bytes.
        exit_code: Return code once the process exited.

    """

    def __init__(
        self,
        workspace_id: str,
        tool_name: str,
        launch: LaunchSpec,
        cwd: Path,
        *,
        on_output: OutputCallback | None = None,
        on_notice: OutputCallback | None = None,
        on_exit: ExitCallback | None = None,
        buffer_size: int = DEFAULT_BUFFER_SIZE,
        init_grace: float = DEFAULT_INIT_GRACE,
    ) -> None:
        """Initialize session (does not spawn).

        Args:
            workspace_id: Owning workspace id.
            tool_name: Tool name used in notices.
            launch: Resolved launch specification.
            cwd: Working directory for the child.
            on_output: Called with (session, display_text, is_error) per chunk.
            on_notice: Called with (session, text, is_error) for supervisor notices.
            on_exit: Called with (session, returncode) after the streams close.
            buffer_size: Maximum raw chunks retained.
            init_grace: Seconds without output before the init hint; 0 disables it.

        """
        self.workspace_id = workspace_id
        self.tool_name = tool_name
        self.launch = launch
        self.cwd = cwd
        self.state = SessionState.NOT_STARTED
        self.has_received_output = False
        self.exit_code: int | None = None
        self.started_at: datetime | None = None
        self.init_grace = init_grace

        self._on_output = on_output
        self._on_notice = on_notice
        self._on_exit = on_exit
        self._buffer: deque[str] = deque(maxlen=buffer_size)
        self._process: asyncio.subprocess.Process | None = None
        self._tasks: list[asyncio.Task[Any]] = []
        self._hint_task: asyncio.Task[Any] | None = None
        self._stop_requested = False
        self._closed = asyncio.Event()

    @property
    def pid(self) -> int | None:
        return self._process.pid if self._process is not None else None

    @property
    def is_running(self) -> bool:
        """Check if the child is alive and accepting input."""
        return (
            self.state == SessionState.RUNNING
            and self._process is not None
            and self._process.returncode is None
        )

    async def start(self) -> None:
        """Spawn the child process and start the reader and watcher tasks.

        Raises:
            SessionError: If the session was already started.
            SpawnError: If the OS refused to launch the process.

        """
        if self.state != SessionState.NOT_STARTED:
            raise SessionError(f"Session already {self.state.value}", workspace_id=self.workspace_id)

        self.state = SessionState.STARTING
        logger.info(
            "Spawning %s for workspace %s: %s",
            self.tool_name,
            self.workspace_id[:8],
            self.launch.display(),
        )

        try:
            self._process = await asyncio.create_subprocess_exec(
                *self.launch.argv,
                cwd=str(self.cwd),
                env=self.launch.env or None,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            self.state = SessionState.ERRORED
            self._closed.set()
            logger.error("Failed to spawn %s in %s: %s", self.tool_name, self.cwd, e)
            raise SpawnError(
                f"Failed to start {self.tool_name} in {self.cwd}: {e}",
                executable=self.launch.executable,
            ) from e

        self.state = SessionState.RUNNING
        self.started_at = datetime.now(UTC)

        # Stopped while spawning
        if self._stop_requested:
            self.terminate()

        process = self._process
        if process.stdout is None or process.stderr is None:
            process.kill()
            self.state = SessionState.ERRORED
            self._closed.set()
            raise SpawnError(
                f"Failed to attach output pipes for {self.tool_name}",
                executable=self.launch.executable,
            )
        pumps = [
            asyncio.create_task(self._pump(process.stdout, is_error=False)),
            asyncio.create_task(self._pump(process.stderr, is_error=True)),
        ]
        self._tasks = [*pumps, asyncio.create_task(self._watch(process, pumps))]

        await self._notify(f"Started {self.tool_name} (PID {process.pid})", is_error=False)

        if self.init_grace > 0:
            self._hint_task = asyncio.create_task(delayed_invoke(self.init_grace, self._emit_init_hint()))

    async def write(self, text: str) -> None:
        """Write one line of input to the child's stdin.

        Args:
            text: Input text; a newline is appended.

        Raises:
            NoActiveSessionError: If the process is gone or stdin is broken.

        """
        process = self._process
        if not self.is_running or process is None or process.stdin is None:
            raise NoActiveSessionError(
                f"No running {self.tool_name} session to receive input",
                workspace_id=self.workspace_id,
            )
        if process.stdin.is_closing():
            raise NoActiveSessionError(
                f"{self.tool_name} input stream is closed",
                workspace_id=self.workspace_id,
            )

        try:
            process.stdin.write((text + "\n").encode("utf-8"))
            await process.stdin.drain()
        except (BrokenPipeError, ConnectionResetError) as e:
            raise NoActiveSessionError(
                f"{self.tool_name} input stream is broken: {e}",
                workspace_id=self.workspace_id,
            ) from e

    def terminate(self) -> None:
        """Send the termination signal without waiting for exit."""
        self._stop_requested = True
        process = self._process
        if process is None or process.returncode is not None:
            return
        logger.info("Terminating %s (PID %d) for workspace %s", self.tool_name, process.pid, self.workspace_id[:8])
        with contextlib.suppress(ProcessLookupError):
            process.terminate()

    def kill(self) -> None:
        """Force-kill the process."""
        self._stop_requested = True
        process = self._process
        if process is None or process.returncode is not None:
            return
        logger.warning("Killing %s (PID %d)", self.tool_name, process.pid)
        with contextlib.suppress(ProcessLookupError):
            process.kill()

    async def wait_closed(self, timeout: float | None = None) -> None:
        """Wait until the exit watcher has finished.

        Raises:
            TimeoutError: If timeout elapsed first.

        """
        await asyncio.wait_for(self._closed.wait(), timeout=timeout)

    def output_lines(self) -> list[str]:
        """Return buffered raw output chunks, oldest first."""
        return list(self._buffer)

    async def _pump(self, stream: asyncio.StreamReader, is_error: bool) -> None:
        decoder = ChunkDecoder(is_error=is_error)
        try:
            while True:
                data = await stream.read(READ_CHUNK_SIZE)
                if not data:
                    break
                await self._deliver(decoder.feed(data))
        except (ConnectionResetError, BrokenPipeError) as e:
            logger.debug("%s stream closed for %s: %s", "stderr" if is_error else "stdout", self.workspace_id[:8], e)
        await self._deliver(decoder.flush())

    async def _deliver(self, chunk: OutputChunk | None) -> None:
        if chunk is None:
            return
        self._buffer.append(chunk.raw)
        self.has_received_output = True
        if self._on_output is None or not chunk.display:
            return
        try:
            await maybe_await(self._on_output(self, chunk.display, chunk.is_error))
        except Exception:
            logger.exception("Output callback failed for workspace %s", self.workspace_id[:8])

    async def _watch(self, process: asyncio.subprocess.Process, pumps: list[asyncio.Task[None]]) -> None:
        """Wait for both streams to close and the process to exit."""
        try:
            await asyncio.gather(*pumps, return_exceptions=True)
            returncode = await process.wait()
        finally:
            if self._hint_task is not None and not self._hint_task.done():
                self._hint_task.cancel()

        self.exit_code = returncode
        if self._stop_requested:
            self.state = SessionState.STOPPED
        elif returncode == 0:
            self.state = SessionState.COMPLETED
        else:
            self.state = SessionState.ERRORED
        logger.info(
            "%s (PID %d) for workspace %s exited with code %d",
            self.tool_name,
            process.pid,
            self.workspace_id[:8],
            returncode,
        )

        try:
            if self._on_exit is not None:
                await maybe_await(self._on_exit(self, returncode))
        except Exception:
            logger.exception("Exit callback failed for workspace %s", self.workspace_id[:8])
        finally:
            self._closed.set()

    async def _emit_init_hint(self) -> None:
        if self.has_received_output or not self.is_running:
            return
        await self._notify(f"Waiting for {self.tool_name} to initialize...", is_error=False)

    async def _notify(self, text: str, is_error: bool) -> None:
        if self._on_notice is None:
            return
        try:
            await maybe_await(self._on_notice(self, text, is_error))
        except Exception:
            logger.exception("Notice callback failed for workspace %s", self.workspace_id[:8])
