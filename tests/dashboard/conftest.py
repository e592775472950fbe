"""Pytest fixtures for dashboard tests.

Provides shared fixtures for testing supervisor components:
- OutputBroadcaster with an event recorder
- WorkspaceRegistry backed by ScriptLauncher
- WorkspaceService with a mocked git reader
"""

import asyncio
from collections.abc import AsyncGenerator, Callable
from unittest.mock import AsyncMock, MagicMock

import pytest

from pulsecode.dashboard.manager.command_router import CommandRouter
from pulsecode.dashboard.manager.registry import WorkspaceRegistry
from pulsecode.dashboard.manager.shell_runner import ShellRunner
from pulsecode.dashboard.service import WorkspaceService
from pulsecode.dashboard.sse_channel.channel import (
    TERMINAL_OUTPUT,
    WORKSPACE_UPDATED,
    BroadcastEvent,
    OutputBroadcaster,
)
from pulsecode.providers.registry import ProviderLauncher
from pulsecode.vcs.git_reader import GitReader


class EventRecorder:
    """Collects broadcast events and waits for specific ones."""

    def __init__(self, broadcaster: OutputBroadcaster) -> None:
        self.events: list[BroadcastEvent] = []
        self._changed = asyncio.Event()
        broadcaster.add_listener(self._record)

    def _record(self, event: BroadcastEvent) -> None:
        self.events.append(event)
        self._changed.set()

    async def wait_for(
        self,
        predicate: Callable[[BroadcastEvent], bool],
        timeout: float = 10.0,
    ) -> BroadcastEvent:
        async def _wait() -> BroadcastEvent:
            while True:
                for event in self.events:
                    if predicate(event):
                        return event
                self._changed.clear()
                await self._changed.wait()

        return await asyncio.wait_for(_wait(), timeout=timeout)

    async def wait_for_status(self, workspace_id: str, status: str, timeout: float = 10.0) -> BroadcastEvent:
        return await self.wait_for(
            lambda e: e.event == WORKSPACE_UPDATED
            and e.data["workspace"]["id"] == workspace_id
            and e.data["workspace"]["status"] == status,
            timeout=timeout,
        )

    async def wait_for_text(self, workspace_id: str, fragment: str, timeout: float = 10.0) -> BroadcastEvent:
        return await self.wait_for(
            lambda e: e.event == TERMINAL_OUTPUT
            and e.data["workspace_id"] == workspace_id
            and fragment in e.data["text"],
            timeout=timeout,
        )

    def output_text(self, workspace_id: str) -> str:
        return "".join(
            e.data["text"]
            for e in self.events
            if e.event == TERMINAL_OUTPUT and e.data["workspace_id"] == workspace_id
        )

    def statuses(self, workspace_id: str) -> list[str]:
        return [
            e.data["workspace"]["status"]
            for e in self.events
            if e.event == WORKSPACE_UPDATED and e.data["workspace"]["id"] == workspace_id
        ]


@pytest.fixture
def broadcaster() -> OutputBroadcaster:
    """Create broadcaster with a long heartbeat."""
    return OutputBroadcaster(max_queue_size=100, heartbeat_interval=60)


@pytest.fixture
def recorder(broadcaster: OutputBroadcaster) -> EventRecorder:
    return EventRecorder(broadcaster)


@pytest.fixture
async def registry(broadcaster, script_launcher) -> AsyncGenerator[WorkspaceRegistry, None]:
    """Create registry without the initialization hint; stops sessions after the test."""
    registry = WorkspaceRegistry(broadcaster, script_launcher, init_grace_seconds=0)
    yield registry
    await registry.shutdown(timeout=5.0)


@pytest.fixture
def mock_git() -> MagicMock:
    """Create git reader mock reporting branch main and no changes."""
    git = MagicMock(spec=GitReader)
    git.current_branch = AsyncMock(return_value="main")
    git.status_lines = AsyncMock(return_value=[])
    return git


@pytest.fixture
async def service(broadcaster, script_launcher, mock_git) -> AsyncGenerator[WorkspaceService, None]:
    """Create service wired to the script launcher."""
    registry = WorkspaceRegistry(broadcaster, script_launcher, init_grace_seconds=0)
    router = CommandRouter(registry, ShellRunner(timeout=10))
    service = WorkspaceService(registry, router, mock_git, ProviderLauncher(), broadcaster)
    yield service
    await registry.shutdown(timeout=5.0)
