"""Workspace registry for the session supervisor.

Manages all Workspace records and their session processes with:
- Creation and removal of workspaces
- At most one session per workspace
- Status kept in step with session presence (running iff a session is attached)
- Event publication for every status or presence change

The registry map is mutated only under an asyncio.Lock. Events are
published after the lock is released so observers may call back in.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Protocol

from pulsecode.core.exceptions import (
    NoActiveSessionError,
    NotFoundError,
    ProcessExitError,
    SessionAlreadyActiveError,
    SpawnError,
)
from pulsecode.dashboard.sse_channel.channel import OutputBroadcaster
from pulsecode.providers.base import LaunchSpec, ProviderKind
from pulsecode.providers.registry import parse_provider
from pulsecode.vcs.git_reader import FileChange

from .session_process import DEFAULT_BUFFER_SIZE, DEFAULT_INIT_GRACE, SessionProcess
from .workspace import Workspace, WorkspaceStatus

logger = logging.getLogger(__name__)

# Seconds to wait for sessions to close on shutdown before force-killing
DEFAULT_SHUTDOWN_TIMEOUT = 5.0


class Launcher(Protocol):
    """Anything that turns a provider and path into a LaunchSpec."""

    def resolve_launch(self, kind: ProviderKind, workspace_path: Path, args: tuple[str, ...] = ()) -> LaunchSpec: ...


class WorkspaceRegistry:
    """Owns workspaces and their session processes.

    Attributes:
        output_buffer_size: Raw chunks retained per session.
        init_grace_seconds: Silence before the initialization hint.

    """

    def __init__(
        self,
        broadcaster: OutputBroadcaster,
        launcher: Launcher,
        *,
        output_buffer_size: int = DEFAULT_BUFFER_SIZE,
        init_grace_seconds: float = DEFAULT_INIT_GRACE,
    ) -> None:
        """Initialize workspace registry.

        Args:
            broadcaster: Destination for workspace and terminal events.
            launcher: Resolves provider launches (ProviderLauncher in production).
            output_buffer_size: Raw chunks retained per session.
            init_grace_seconds: Silence before the initialization hint.

        """
        self.output_buffer_size = output_buffer_size
        self.init_grace_seconds = init_grace_seconds

        self._broadcaster = broadcaster
        self._launcher = launcher
        self._workspaces: dict[str, Workspace] = {}
        self._sessions: dict[str, SessionProcess] = {}
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._workspaces)

    async def create(self, path: str | Path, name: str, provider: str | ProviderKind | None) -> Workspace:
        """Create a new idle workspace.

        Args:
            path: Project directory (made absolute, need not exist).
            name: Display name.
            provider: Provider identifier.

        Returns:
            Snapshot of the new workspace.

        Raises:
            ValidationError: If path or name is empty, or provider is unknown.

        """
        kind = parse_provider(provider)
        workspace = Workspace.create(path, name, kind)

        async with self._lock:
            self._workspaces[workspace.id] = workspace
            snapshot = workspace.snapshot()

        logger.info("Created workspace %s (%s) at %s using %s", snapshot.name, snapshot.id[:8], snapshot.path, kind)
        await self._broadcaster.workspace_updated(snapshot)
        return snapshot

    async def list(self) -> list[Workspace]:
        """Return snapshots of all workspaces in insertion order."""
        async with self._lock:
            return [workspace.snapshot() for workspace in self._workspaces.values()]

    async def get(self, workspace_id: str) -> Workspace:
        """Get a workspace snapshot.

        Raises:
            NotFoundError: If the id is unknown.

        """
        async with self._lock:
            return self._require(workspace_id).snapshot()

    async def remove(self, workspace_id: str) -> None:
        """Remove a workspace, terminating its session first.

        The session is signalled but not awaited; its later exit finds no
        workspace and is discarded.

        Raises:
            NotFoundError: If the id is unknown.

        """
        async with self._lock:
            workspace = self._require(workspace_id)
            session = self._sessions.pop(workspace_id, None)
            if session is not None:
                session.terminate()
            del self._workspaces[workspace_id]

        logger.info("Removed workspace %s (%s)", workspace.name, workspace_id[:8])
        await self._broadcaster.workspace_removed(workspace_id)

    async def start_session(self, workspace_id: str, args: tuple[str, ...] = ()) -> Workspace:
        """Start the workspace's assistant tool.

        Args:
            workspace_id: Target workspace.
            args: Extra arguments for the tool.

        Returns:
            Workspace snapshot after the spawn.

        Raises:
            NotFoundError: If the id is unknown.
            SessionAlreadyActiveError: If a session is already attached.
            SpawnError: If the tool or its helper could not be launched;
                the workspace is left in ERROR.

        """
        async with self._lock:
            workspace = self._require(workspace_id)
            if workspace_id in self._sessions:
                raise SessionAlreadyActiveError(
                    f"Workspace {workspace.name} already has a running session",
                    workspace_id=workspace_id,
                )

            try:
                launch = self._launcher.resolve_launch(workspace.provider, workspace.path, tuple(args))
            except SpawnError as e:
                workspace.set_error(str(e))
                failed = workspace.snapshot()
                spawn_error: SpawnError | None = e
            else:
                spawn_error = None
                session = SessionProcess(
                    workspace_id,
                    workspace.provider.value,
                    launch,
                    workspace.path,
                    on_output=self._handle_output,
                    on_notice=self._handle_notice,
                    on_exit=self._handle_exit,
                    buffer_size=self.output_buffer_size,
                    init_grace=self.init_grace_seconds,
                )
                # Attached before spawning so status and presence change together
                self._sessions[workspace_id] = session
                workspace.set_running()
                running = workspace.snapshot()

        if spawn_error is not None:
            await self._broadcaster.workspace_updated(failed)
            await self._broadcaster.terminal_output(workspace_id, str(spawn_error), is_error=True)
            raise spawn_error

        await self._broadcaster.workspace_updated(running)

        try:
            await session.start()
        except SpawnError as e:
            snapshot = None
            async with self._lock:
                if self._sessions.get(workspace_id) is session:
                    del self._sessions[workspace_id]
                    current = self._workspaces.get(workspace_id)
                    if current is not None:
                        current.set_error(str(e))
                        snapshot = current.snapshot()
            if snapshot is not None:
                await self._broadcaster.workspace_updated(snapshot)
                await self._broadcaster.terminal_output(workspace_id, str(e), is_error=True)
            raise

        return running

    async def send_input(self, workspace_id: str, text: str) -> None:
        """Write a line to the attached session's stdin.

        Raises:
            NotFoundError: If the id is unknown.
            NoActiveSessionError: If no session is attached or stdin is broken.

        """
        async with self._lock:
            workspace = self._require(workspace_id)
            session = self._sessions.get(workspace_id)
            if session is None:
                raise NoActiveSessionError(
                    f"Workspace {workspace.name} has no running session",
                    workspace_id=workspace_id,
                )
            workspace.touch()

        await session.write(text)

    async def stop_session(self, workspace_id: str) -> Workspace:
        """Terminate the attached session and mark the workspace idle.

        Returns immediately after signalling; the process exit that follows
        is a no-op.

        Returns:
            Workspace snapshot (status IDLE).

        Raises:
            NotFoundError: If the id is unknown.
            NoActiveSessionError: If no session is attached.

        """
        async with self._lock:
            workspace = self._require(workspace_id)
            session = self._sessions.pop(workspace_id, None)
            if session is None:
                raise NoActiveSessionError(
                    f"Workspace {workspace.name} has no running session",
                    workspace_id=workspace_id,
                )
            session.terminate()
            workspace.set_idle()
            snapshot = workspace.snapshot()

        await self._broadcaster.workspace_updated(snapshot)
        await self._broadcaster.terminal_output(workspace_id, f"Stopped {session.tool_name}", is_error=False)
        return snapshot

    async def update_git_info(
        self,
        workspace_id: str,
        branch: str | None,
        changes: list[FileChange] | None,
    ) -> Workspace:
        """Attach version-control results to a workspace.

        Raises:
            NotFoundError: If the id is unknown.

        """
        async with self._lock:
            workspace = self._require(workspace_id)
            workspace.git_branch = branch
            workspace.file_changes = list(changes) if changes is not None else None
            snapshot = workspace.snapshot()

        await self._broadcaster.workspace_updated(snapshot)
        return snapshot

    async def get_output(self, workspace_id: str) -> list[str]:
        """Return the raw buffered output of the current session.

        Raises:
            NotFoundError: If the id is unknown.

        """
        async with self._lock:
            self._require(workspace_id)
            session = self._sessions.get(workspace_id)
            return session.output_lines() if session is not None else []

    def find(self, workspace_id: str) -> Workspace | None:
        """Return a snapshot without locking, or None if unknown."""
        workspace = self._workspaces.get(workspace_id)
        return workspace.snapshot() if workspace is not None else None

    def get_session(self, workspace_id: str) -> SessionProcess | None:
        return self._sessions.get(workspace_id)

    def has_session(self, workspace_id: str) -> bool:
        """Check if a session is attached to the workspace."""
        return workspace_id in self._sessions

    async def shutdown(self, timeout: float = DEFAULT_SHUTDOWN_TIMEOUT) -> None:
        """Terminate all sessions and wait for them to close.

        Sessions still alive after timeout are killed.
        """
        async with self._lock:
            sessions = list(self._sessions.values())
            self._sessions.clear()
            stopped = []
            for workspace in self._workspaces.values():
                if workspace.status == WorkspaceStatus.RUNNING:
                    workspace.set_idle()
                    stopped.append(workspace.snapshot())

        for snapshot in stopped:
            await self._broadcaster.workspace_updated(snapshot)

        for session in sessions:
            session.terminate()

        for session in sessions:
            try:
                await session.wait_closed(timeout=timeout)
            except TimeoutError:
                session.kill()
                try:
                    await session.wait_closed(timeout=timeout)
                except TimeoutError:
                    logger.error("Session for workspace %s did not exit", session.workspace_id[:8])

        logger.info("Workspace registry shutdown complete (%d sessions)", len(sessions))

    def _require(self, workspace_id: str) -> Workspace:
        workspace = self._workspaces.get(workspace_id)
        if workspace is None:
            raise NotFoundError(f"Workspace not found: {workspace_id}", workspace_id=workspace_id)
        return workspace

    async def _handle_output(self, session: SessionProcess, text: str, is_error: bool) -> None:
        workspace = self._workspaces.get(session.workspace_id)
        if workspace is None:
            logger.debug("Dropping output for removed workspace %s", session.workspace_id[:8])
            return
        workspace.touch()
        await self._broadcaster.terminal_output(session.workspace_id, text, is_error=is_error)

    async def _handle_notice(self, session: SessionProcess, text: str, is_error: bool) -> None:
        if session.workspace_id not in self._workspaces:
            return
        await self._broadcaster.terminal_output(session.workspace_id, text, is_error=is_error)

    async def _handle_exit(self, session: SessionProcess, returncode: int) -> None:
        async with self._lock:
            if self._sessions.get(session.workspace_id) is not session:
                # Stopped or removed; status already settled
                logger.debug("Ignoring exit of detached session for %s", session.workspace_id[:8])
                return
            del self._sessions[session.workspace_id]
            workspace = self._workspaces[session.workspace_id]
            workspace.set_finished(returncode)
            snapshot = workspace.snapshot()

        if returncode == 0:
            notice = f"{session.tool_name} exited with code 0"
        else:
            notice = str(ProcessExitError.from_returncode(session.tool_name, returncode))
            logger.warning("Workspace %s: %s", session.workspace_id[:8], notice)

        await self._broadcaster.workspace_updated(snapshot)
        await self._broadcaster.terminal_output(session.workspace_id, notice, is_error=returncode != 0)
