"""Routes a line of user input to one of three destinations.

Priority-ordered, mutually exclusive:
1. A session is running for the workspace: forward the input verbatim.
2. The input is a trigger word of the workspace's provider (optionally
   followed by arguments): start a session.
3. Anything else: run it once in the host shell, in the workspace path.

The running-session check comes first so that typing a trigger word into
a live session is forwarded, not treated as a second start.
"""

import logging
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from pulsecode.core.exceptions import ValidationError
from pulsecode.providers.registry import get_provider

from .registry import WorkspaceRegistry
from .shell_runner import CommandExecutor, ShellResult
from .workspace import Workspace

logger = logging.getLogger(__name__)


class RouteKind(StrEnum):
    """Destination chosen for an input line."""

    SEND_INPUT = "send_input"
    START_SESSION = "start_session"
    SHELL = "shell"


@dataclass(frozen=True)
class RouteDecision:
    kind: RouteKind
    args: tuple[str, ...] = ()


@dataclass
class CommandResult:
    """Outcome of executing one input line.

    Attributes:
        route: Where the input went.
        workspace: Workspace snapshot after a session start.
        shell: Captured shell result for the SHELL route.

    """

    route: RouteKind
    workspace: Workspace | None = None
    shell: ShellResult | None = None
    args: tuple[str, ...] = field(default_factory=tuple)

    @property
    def success(self) -> bool:
        return self.shell.success if self.shell is not None else True

    @property
    def output(self) -> str | None:
        """Combined shell output, if any."""
        if self.shell is None:
            return None
        if self.shell.stderr and self.shell.stdout:
            return self.shell.stdout.rstrip("\n") + "\n" + self.shell.stderr
        return self.shell.stdout or self.shell.stderr

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"success": self.success, "route": self.route.value}
        if self.shell is not None:
            data["output"] = self.output
            data["exit_code"] = self.shell.exit_code
            data["timed_out"] = self.shell.timed_out
        if self.workspace is not None:
            data["workspace"] = self.workspace.to_summary()
        return data


def classify(workspace: Workspace, text: str, session_running: bool) -> RouteDecision:
    """Decide where an input line goes.

    Args:
        workspace: Target workspace (its provider selects the trigger words).
        text: Raw input.
        session_running: Whether a session is attached.

    Returns:
        RouteDecision with session arguments for START_SESSION.

    Raises:
        ValidationError: If the input is blank and no session is running.

    """
    if session_running:
        return RouteDecision(RouteKind.SEND_INPUT)

    if not text.strip():
        raise ValidationError("Command must not be empty")

    args = get_provider(workspace.provider).match_trigger(text)
    if args is not None:
        return RouteDecision(RouteKind.START_SESSION, args)

    return RouteDecision(RouteKind.SHELL)


class CommandRouter:
    """Executes input lines against a workspace."""

    def __init__(self, registry: WorkspaceRegistry, executor: CommandExecutor) -> None:
        self.registry = registry
        self.executor = executor

    async def execute(self, workspace_id: str, text: str) -> CommandResult:
        """Route and execute one input line.

        Args:
            workspace_id: Target workspace.
            text: Raw input.

        Returns:
            CommandResult describing the route taken.

        Raises:
            NotFoundError: If the workspace is unknown.
            ValidationError: If the input is blank with no running session.
            NoActiveSessionError: If forwarding to a session that just ended.
            SpawnError: If the session or shell could not be launched.

        """
        workspace = await self.registry.get(workspace_id)
        decision = classify(workspace, text, self.registry.has_session(workspace_id))
        logger.debug("Routing input for %s via %s", workspace_id[:8], decision.kind)

        if decision.kind == RouteKind.SEND_INPUT:
            await self.registry.send_input(workspace_id, text)
            return CommandResult(route=decision.kind)

        if decision.kind == RouteKind.START_SESSION:
            started = await self.registry.start_session(workspace_id, decision.args)
            return CommandResult(route=decision.kind, workspace=started, args=decision.args)

        result = await self.executor.run(text, workspace.path)
        return CommandResult(route=decision.kind, shell=result)
