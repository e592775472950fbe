"""Workspace service facade.

The single entry point for presentation layers (HTTP routes, CLI). Every
operation returns a plain result dict; PulseCodeError subclasses are
converted to ``{"success": False, "error": message}`` here so callers
never handle supervisor exceptions.
"""

import asyncio
import contextlib
import logging
from pathlib import Path
from typing import Any

from pulsecode.core import platform_command
from pulsecode.core.config import PulseCodeConfig
from pulsecode.core.exceptions import PulseCodeError, SpawnError, ValidationError
from pulsecode.dashboard.manager.command_router import CommandRouter, RouteKind, classify
from pulsecode.dashboard.manager.registry import WorkspaceRegistry
from pulsecode.dashboard.manager.shell_runner import ShellRunner
from pulsecode.dashboard.sse_channel.channel import OutputBroadcaster
from pulsecode.providers.registry import ProviderLauncher
from pulsecode.vcs.git_reader import GitReader

logger = logging.getLogger(__name__)

# Seconds allowed for the OS opener to hand off
OPEN_TIMEOUT = 10.0


def _failure(error: Exception, **extra: Any) -> dict[str, Any]:
    return {"success": False, "error": str(error), "error_type": type(error).__name__, **extra}


class WorkspaceService:
    """Facade over registry, router, git reader and provider launcher.

    Attributes:
        registry: Workspace and session owner.
        router: Input routing.
        git: Version-control reader.
        launcher: Provider launch and availability resolver.
        broadcaster: Event fan-out (for SSE and listeners).

    """

    def __init__(
        self,
        registry: WorkspaceRegistry,
        router: CommandRouter,
        git: GitReader,
        launcher: ProviderLauncher,
        broadcaster: OutputBroadcaster,
    ) -> None:
        self.registry = registry
        self.router = router
        self.git = git
        self.launcher = launcher
        self.broadcaster = broadcaster

    @classmethod
    def from_config(cls, config: PulseCodeConfig) -> "WorkspaceService":
        """Wire all components from configuration.

        Args:
            config: Loaded configuration.

        Returns:
            Ready-to-use service.

        """
        broadcaster = OutputBroadcaster(
            max_queue_size=config.event_queue_size,
            heartbeat_interval=config.heartbeat_interval,
        )
        launcher = ProviderLauncher(config.providers)
        registry = WorkspaceRegistry(
            broadcaster,
            launcher,
            output_buffer_size=config.output_buffer_size,
            init_grace_seconds=config.init_grace_seconds,
        )
        router = CommandRouter(registry, ShellRunner(shell=config.shell, timeout=config.shell_timeout))
        git = GitReader(executable=config.git_executable, timeout=config.git_timeout)
        return cls(registry, router, git, launcher, broadcaster)

    async def list_workspaces(self) -> list[dict[str, Any]]:
        return [workspace.to_summary() for workspace in await self.registry.list()]

    async def get_workspace(self, workspace_id: str) -> dict[str, Any]:
        try:
            workspace = await self.registry.get(workspace_id)
        except PulseCodeError as e:
            return _failure(e)
        return {"success": True, "workspace": workspace.to_summary()}

    async def create_workspace(self, path: str, name: str, provider: str | None = None) -> dict[str, Any]:
        """Create a workspace and attach its git branch if readable.

        Returns:
            {success, workspace} or {success: False, error}.

        """
        try:
            workspace = await self.registry.create(path, name, provider)
        except PulseCodeError as e:
            logger.info("Rejected workspace %r at %r: %s", name, path, e)
            return _failure(e)

        branch = await self.git.current_branch(workspace.path)
        if branch is not None:
            workspace = await self.registry.update_git_info(workspace.id, branch, workspace.file_changes)
        return {"success": True, "workspace": workspace.to_summary()}

    async def remove_workspace(self, workspace_id: str) -> dict[str, Any]:
        try:
            await self.registry.remove(workspace_id)
        except PulseCodeError as e:
            return _failure(e)
        return {"success": True}

    async def execute_command(self, workspace_id: str, text: str) -> dict[str, Any]:
        """Route one line of input.

        Returns:
            {success, route, output?, exit_code?, workspace?, error?}.

        """
        try:
            result = await self.router.execute(workspace_id, text)
        except PulseCodeError as e:
            return _failure(e, route=self._guess_route(workspace_id, text))
        return result.to_dict()

    async def stop_session(self, workspace_id: str) -> dict[str, Any]:
        try:
            workspace = await self.registry.stop_session(workspace_id)
        except PulseCodeError as e:
            return _failure(e)
        return {"success": True, "workspace": workspace.to_summary()}

    async def get_git_branch(self, path: str) -> dict[str, Any]:
        branch = await self.git.current_branch(path)
        return {"success": branch is not None, "branch": branch}

    async def get_file_changes(self, path: str) -> dict[str, Any]:
        """Read working-tree changes for an arbitrary path."""
        if not Path(path).is_dir():
            return {"success": False, "changes": [], "error": f"Not a directory: {path}"}
        changes = await self.git.status_lines(path)
        return {"success": True, "changes": [change.to_dict() for change in changes]}

    async def refresh_git_info(self, workspace_id: str) -> dict[str, Any]:
        """Re-read branch and changes for a workspace and broadcast them."""
        try:
            workspace = await self.registry.get(workspace_id)
            branch, changes = await asyncio.gather(
                self.git.current_branch(workspace.path),
                self.git.status_lines(workspace.path),
            )
            workspace = await self.registry.update_git_info(workspace_id, branch, changes)
        except PulseCodeError as e:
            return _failure(e)
        return {"success": True, "workspace": workspace.to_summary()}

    async def get_session_output(self, workspace_id: str) -> dict[str, Any]:
        try:
            lines = await self.registry.get_output(workspace_id)
        except PulseCodeError as e:
            return _failure(e, lines=[])
        return {"success": True, "lines": lines}

    async def check_tool_availability(self, provider: str) -> dict[str, Any]:
        """Probe a provider's CLI. Never raises."""
        return self.launcher.check_availability(provider).to_dict()

    async def open_path(self, path: str) -> dict[str, Any]:
        """Open a path with the OS file manager or default handler."""
        try:
            if not path or not path.strip():
                raise ValidationError("Path must not be empty")
            if not Path(path).exists():
                raise ValidationError(f"Path does not exist: {path}")
            await self._launch_opener(path)
        except PulseCodeError as e:
            return _failure(e)
        return {"success": True}

    async def shutdown(self) -> None:
        """Stop all sessions and disconnect event subscribers."""
        await self.registry.shutdown()
        await self.broadcaster.shutdown()

    async def _launch_opener(self, path: str) -> None:
        argv = platform_command.get_open_command(path)
        try:
            process = await asyncio.create_subprocess_exec(
                *argv,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.DEVNULL,
            )
        except OSError as e:
            raise SpawnError(f"Failed to open {path}: {e}", executable=argv[0]) from e

        try:
            await asyncio.wait_for(process.wait(), timeout=OPEN_TIMEOUT)
        except TimeoutError:
            # Opener handed off but did not exit; leave it running
            logger.debug("Opener %s still running for %s", argv[0], path)
        else:
            logger.debug("Opener %s exited %s for %s", argv[0], process.returncode, path)

    def _guess_route(self, workspace_id: str, text: str) -> str | None:
        """Best-effort route label for failure results."""
        if self.registry.has_session(workspace_id):
            return RouteKind.SEND_INPUT.value
        workspace = self.registry.find(workspace_id)
        if workspace is None:
            return None
        with contextlib.suppress(ValidationError):
            return classify(workspace, text, False).kind.value
        return None
