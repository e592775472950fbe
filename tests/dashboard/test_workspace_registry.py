"""Tests for WorkspaceRegistry lifecycle and invariants."""

import sys
from pathlib import Path
from unittest.mock import MagicMock

import pytest
from session_scripts import ECHO_SCRIPT, FAIL_SCRIPT, HELLO_SCRIPT, SILENT_SCRIPT, STOP_HANDLER_SCRIPT

from pulsecode.core.exceptions import (
    NoActiveSessionError,
    NotFoundError,
    SessionAlreadyActiveError,
    SpawnError,
    ValidationError,
)
from pulsecode.dashboard.manager.registry import WorkspaceRegistry
from pulsecode.dashboard.manager.session_process import SessionState
from pulsecode.dashboard.manager.workspace import WorkspaceStatus
from pulsecode.dashboard.sse_channel.channel import WORKSPACE_REMOVED, WORKSPACE_UPDATED
from pulsecode.providers import ProviderKind
from pulsecode.vcs import ChangeStatus, ChangeType, FileChange


class TestCrud:
    @pytest.mark.asyncio
    async def test_create(self, registry: WorkspaceRegistry, recorder, tmp_path: Path):
        workspace = await registry.create(tmp_path, "Demo", "gemini")

        assert workspace.status == WorkspaceStatus.IDLE
        assert workspace.provider == ProviderKind.GEMINI
        assert not registry.has_session(workspace.id)
        assert recorder.statuses(workspace.id) == ["idle"]

    @pytest.mark.asyncio
    async def test_create_unknown_provider(self, registry: WorkspaceRegistry, tmp_path: Path):
        with pytest.raises(ValidationError):
            await registry.create(tmp_path, "Demo", "copilot")

        assert len(registry) == 0

    @pytest.mark.asyncio
    async def test_create_blank_name(self, registry: WorkspaceRegistry, tmp_path: Path):
        with pytest.raises(ValidationError):
            await registry.create(tmp_path, "  ", "claude")

    @pytest.mark.asyncio
    async def test_list_in_insertion_order(self, registry: WorkspaceRegistry, tmp_path: Path):
        first = await registry.create(tmp_path, "one", "claude")
        second = await registry.create(tmp_path, "two", "codex")

        assert [ws.id for ws in await registry.list()] == [first.id, second.id]

    @pytest.mark.asyncio
    async def test_list_returns_snapshots(self, registry: WorkspaceRegistry, tmp_path: Path):
        workspace = await registry.create(tmp_path, "one", "claude")

        listed = (await registry.list())[0]
        listed.name = "mutated"

        assert (await registry.get(workspace.id)).name == "one"

    @pytest.mark.asyncio
    async def test_get_unknown(self, registry: WorkspaceRegistry):
        with pytest.raises(NotFoundError):
            await registry.get("missing")

    @pytest.mark.asyncio
    async def test_remove_twice(self, registry: WorkspaceRegistry, recorder, tmp_path: Path):
        workspace = await registry.create(tmp_path, "Demo", "claude")

        await registry.remove(workspace.id)
        with pytest.raises(NotFoundError):
            await registry.remove(workspace.id)

        removed = [e for e in recorder.events if e.event == WORKSPACE_REMOVED]
        assert [e.data["workspace_id"] for e in removed] == [workspace.id]

    @pytest.mark.asyncio
    async def test_update_git_info(self, registry: WorkspaceRegistry, recorder, tmp_path: Path):
        workspace = await registry.create(tmp_path, "Demo", "claude")
        changes = [FileChange("a.py", ChangeType.MODIFIED, ChangeStatus.STAGED)]

        updated = await registry.update_git_info(workspace.id, "main", changes)

        assert updated.git_branch == "main"
        assert updated.file_changes == changes
        assert recorder.events[-1].data["workspace"]["git_branch"] == "main"


class TestSessionLifecycle:
    @pytest.mark.asyncio
    async def test_end_to_end_exit_zero(self, registry: WorkspaceRegistry, recorder, tmp_path: Path):
        """create -> start -> launched -> exit 0 -> completed -> input fails."""
        workspace = await registry.create(tmp_path, "Demo", "claude")

        started = await registry.start_session(workspace.id)
        assert started.status == WorkspaceStatus.RUNNING

        await recorder.wait_for_status(workspace.id, "completed")
        await recorder.wait_for_text(workspace.id, "claude exited with code 0")

        output = recorder.output_text(workspace.id)
        assert "Started claude (PID" in output
        assert "hello" in output
        assert recorder.statuses(workspace.id) == ["idle", "running", "completed"]

        current = await registry.get(workspace.id)
        assert current.status == WorkspaceStatus.COMPLETED
        assert current.last_exit_code == 0
        assert not registry.has_session(workspace.id)

        with pytest.raises(NoActiveSessionError):
            await registry.send_input(workspace.id, "hello?")

    @pytest.mark.asyncio
    async def test_running_iff_attached(self, registry: WorkspaceRegistry, broadcaster, script_launcher, tmp_path):
        """Every published status agrees with session presence at that moment."""
        violations = []

        def check(event):
            if event.event != WORKSPACE_UPDATED:
                return
            summary = event.data["workspace"]
            if (summary["status"] == "running") != registry.has_session(summary["id"]):
                violations.append((summary["status"], registry.has_session(summary["id"])))

        broadcaster.add_listener(check)
        script_launcher.script = ECHO_SCRIPT
        workspace = await registry.create(tmp_path, "Demo", "claude")

        await registry.start_session(workspace.id)
        await registry.stop_session(workspace.id)
        await registry.start_session(workspace.id)
        session = registry.get_session(workspace.id)
        await registry.send_input(workspace.id, "exit")
        await session.wait_closed(timeout=10)
        script_launcher.error = SpawnError("claude CLI not found", executable="claude")
        with pytest.raises(SpawnError):
            await registry.start_session(workspace.id)

        assert violations == []

    @pytest.mark.asyncio
    async def test_nonzero_exit(self, registry: WorkspaceRegistry, recorder, script_launcher, tmp_path: Path):
        script_launcher.script = FAIL_SCRIPT
        workspace = await registry.create(tmp_path, "Demo", "codex")

        await registry.start_session(workspace.id)
        await recorder.wait_for_status(workspace.id, "error")
        notice = await recorder.wait_for_text(workspace.id, "codex exited with code 3")

        assert notice.data["is_error"] is True
        assert (await registry.get(workspace.id)).last_exit_code == 3
        stderr = [e for e in recorder.events if e.data.get("text", "").startswith("boom")]
        assert stderr and stderr[0].data["is_error"] is True

    @pytest.mark.asyncio
    async def test_start_while_running(self, registry: WorkspaceRegistry, script_launcher, tmp_path: Path):
        script_launcher.script = SILENT_SCRIPT
        workspace = await registry.create(tmp_path, "Demo", "claude")
        await registry.start_session(workspace.id)

        with pytest.raises(SessionAlreadyActiveError):
            await registry.start_session(workspace.id)

    @pytest.mark.asyncio
    async def test_session_arguments_passed(self, registry: WorkspaceRegistry, script_launcher, tmp_path: Path):
        workspace = await registry.create(tmp_path, "Demo", "gemini")

        await registry.start_session(workspace.id, ("-m", "pro"))

        assert script_launcher.calls == [(ProviderKind.GEMINI, workspace.path, ("-m", "pro"))]

    @pytest.mark.asyncio
    async def test_launch_resolution_failure(self, registry: WorkspaceRegistry, recorder, script_launcher, tmp_path):
        script_launcher.error = SpawnError("Git Bash missing", executable="bash.exe", reason="missing_interpreter")
        workspace = await registry.create(tmp_path, "Demo", "claude")

        with pytest.raises(SpawnError):
            await registry.start_session(workspace.id)

        assert (await registry.get(workspace.id)).status == WorkspaceStatus.ERROR
        assert not registry.has_session(workspace.id)
        notice = await recorder.wait_for_text(workspace.id, "Git Bash missing")
        assert notice.data["is_error"] is True

    @pytest.mark.asyncio
    async def test_spawn_failure(self, registry: WorkspaceRegistry, recorder, script_launcher, tmp_path: Path):
        script_launcher.executable = str(tmp_path / "no-such-cli")
        workspace = await registry.create(tmp_path, "Demo", "claude")

        with pytest.raises(SpawnError):
            await registry.start_session(workspace.id)

        assert (await registry.get(workspace.id)).status == WorkspaceStatus.ERROR
        assert not registry.has_session(workspace.id)
        assert recorder.statuses(workspace.id) == ["idle", "running", "error"]

    @pytest.mark.asyncio
    async def test_restart_after_completion(self, registry: WorkspaceRegistry, recorder, tmp_path: Path):
        workspace = await registry.create(tmp_path, "Demo", "claude")
        await registry.start_session(workspace.id)
        await recorder.wait_for_status(workspace.id, "completed")

        restarted = await registry.start_session(workspace.id)

        assert restarted.status == WorkspaceStatus.RUNNING


class TestInputAndOutput:
    @pytest.mark.asyncio
    async def test_send_input_without_session(self, registry: WorkspaceRegistry, tmp_path: Path):
        workspace = await registry.create(tmp_path, "Demo", "claude")

        with pytest.raises(NoActiveSessionError):
            await registry.send_input(workspace.id, "hi")

    @pytest.mark.asyncio
    async def test_send_input_unknown_workspace(self, registry: WorkspaceRegistry):
        with pytest.raises(NotFoundError):
            await registry.send_input("missing", "hi")

    @pytest.mark.asyncio
    async def test_send_input_echo(self, registry: WorkspaceRegistry, recorder, script_launcher, tmp_path: Path):
        script_launcher.script = ECHO_SCRIPT
        workspace = await registry.create(tmp_path, "Demo", "claude")
        await registry.start_session(workspace.id)
        await recorder.wait_for_text(workspace.id, "ready")

        await registry.send_input(workspace.id, "status")

        await recorder.wait_for_text(workspace.id, "echo: status")

    @pytest.mark.asyncio
    async def test_get_output_buffers_raw_chunks(self, registry, recorder, script_launcher, tmp_path: Path):
        script_launcher.script = ECHO_SCRIPT
        workspace = await registry.create(tmp_path, "Demo", "claude")
        assert await registry.get_output(workspace.id) == []

        await registry.start_session(workspace.id)
        await recorder.wait_for_text(workspace.id, "ready")

        assert "ready" in "".join(await registry.get_output(workspace.id))

    @pytest.mark.asyncio
    async def test_output_for_removed_workspace_dropped(self, registry: WorkspaceRegistry, recorder):
        session = MagicMock()
        session.workspace_id = "gone"

        await registry._handle_output(session, "late text", False)

        assert recorder.events == []


class TestStopAndRemove:
    @pytest.mark.asyncio
    async def test_double_stop(self, registry: WorkspaceRegistry, recorder, script_launcher, tmp_path: Path):
        """First stop succeeds, second reports no session, state unchanged."""
        script_launcher.script = SILENT_SCRIPT
        workspace = await registry.create(tmp_path, "Demo", "claude")
        await registry.start_session(workspace.id)
        session = registry.get_session(workspace.id)

        stopped = await registry.stop_session(workspace.id)
        assert stopped.status == WorkspaceStatus.IDLE

        with pytest.raises(NoActiveSessionError):
            await registry.stop_session(workspace.id)

        await session.wait_closed(timeout=10)
        assert session.state == SessionState.STOPPED
        assert (await registry.get(workspace.id)).status == WorkspaceStatus.IDLE
        assert recorder.statuses(workspace.id) == ["idle", "running", "idle"]
        assert "exited" not in recorder.output_text(workspace.id)

    @pytest.mark.asyncio
    async def test_stop_without_session(self, registry: WorkspaceRegistry, tmp_path: Path):
        workspace = await registry.create(tmp_path, "Demo", "claude")

        with pytest.raises(NoActiveSessionError):
            await registry.stop_session(workspace.id)

    @pytest.mark.asyncio
    async def test_remove_signals_before_delete(self, registry: WorkspaceRegistry, script_launcher, tmp_path: Path):
        script_launcher.script = SILENT_SCRIPT
        workspace = await registry.create(tmp_path, "Demo", "claude")
        await registry.start_session(workspace.id)
        session = registry.get_session(workspace.id)

        observed = []
        original_terminate = session.terminate

        def spy() -> None:
            observed.append(registry.find(workspace.id) is not None)
            original_terminate()

        session.terminate = spy

        await registry.remove(workspace.id)

        assert observed == [True]
        with pytest.raises(NotFoundError):
            await registry.get(workspace.id)
        await session.wait_closed(timeout=10)
        assert session.state == SessionState.STOPPED

    @pytest.mark.asyncio
    async def test_shutdown_stops_all(self, broadcaster, script_launcher, tmp_path: Path):
        script_launcher.script = SILENT_SCRIPT
        registry = WorkspaceRegistry(broadcaster, script_launcher, init_grace_seconds=0)
        first = await registry.create(tmp_path, "one", "claude")
        second = await registry.create(tmp_path, "two", "gemini")
        await registry.start_session(first.id)
        await registry.start_session(second.id)
        sessions = [registry.get_session(first.id), registry.get_session(second.id)]

        await registry.shutdown(timeout=5)

        assert all(s.state == SessionState.STOPPED for s in sessions)
        assert not registry.has_session(first.id)
        assert (await registry.get(second.id)).status == WorkspaceStatus.IDLE

    @pytest.mark.asyncio
    async def test_shutdown_publishes_idle(self, broadcaster, recorder, script_launcher, tmp_path: Path):
        script_launcher.script = SILENT_SCRIPT
        registry = WorkspaceRegistry(broadcaster, script_launcher, init_grace_seconds=0)
        running = await registry.create(tmp_path, "one", "claude")
        untouched = await registry.create(tmp_path, "two", "gemini")
        await registry.start_session(running.id)

        await registry.shutdown(timeout=5)

        assert recorder.statuses(running.id) == ["idle", "running", "idle"]
        assert recorder.statuses(untouched.id) == ["idle"]

    @pytest.mark.skipif(sys.platform == "win32", reason="SIGTERM handler requires POSIX")
    @pytest.mark.asyncio
    async def test_output_after_stop_delivered(self, registry: WorkspaceRegistry, recorder, script_launcher, tmp_path):
        script_launcher.script = STOP_HANDLER_SCRIPT
        workspace = await registry.create(tmp_path, "Demo", "claude")
        await registry.start_session(workspace.id)
        session = registry.get_session(workspace.id)
        await recorder.wait_for_text(workspace.id, "ready")

        await registry.stop_session(workspace.id)

        await recorder.wait_for_text(workspace.id, "late bye")
        await session.wait_closed(timeout=10)
        assert session.state == SessionState.STOPPED
