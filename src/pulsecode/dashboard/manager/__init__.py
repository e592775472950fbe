"""Workspace session supervisor.

This package manages assistant CLI sessions for many workspaces from a
single host process.

Public API:
    Workspace: Record for one project folder bound to a provider
    WorkspaceRegistry: Owner of workspaces and their sessions
    SessionProcess: One running assistant CLI
    CommandRouter: Routes input to a session, a session start, or the shell
    ShellRunner: One-shot shell commands
"""

from .command_router import CommandResult, CommandRouter, RouteDecision, RouteKind, classify
from .registry import WorkspaceRegistry
from .session_process import SessionProcess, SessionState
from .shell_runner import CommandExecutor, ShellResult, ShellRunner
from .workspace import Workspace, WorkspaceStatus

__all__ = [
    "CommandExecutor",
    "CommandResult",
    "CommandRouter",
    "RouteDecision",
    "RouteKind",
    "SessionProcess",
    "SessionState",
    "ShellResult",
    "ShellRunner",
    "Workspace",
    "WorkspaceRegistry",
    "WorkspaceStatus",
    "classify",
]
