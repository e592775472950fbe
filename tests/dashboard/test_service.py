"""Tests for the workspace service facade."""

import sys
from pathlib import Path
from unittest.mock import patch

import pytest
from session_scripts import ECHO_SCRIPT

from pulsecode.core.config import PulseCodeConfig
from pulsecode.dashboard.service import WorkspaceService
from pulsecode.vcs.git_reader import ChangeStatus, ChangeType, FileChange


class TestFromConfig:
    def test_wires_components(self):
        config = PulseCodeConfig(shell_timeout=30, output_buffer_size=50, git_timeout=2)

        service = WorkspaceService.from_config(config)

        assert service.registry.output_buffer_size == 50
        assert service.router.executor.timeout == 30
        assert service.git.timeout == 2
        assert service.router.registry is service.registry


class TestWorkspaces:
    @pytest.mark.asyncio
    async def test_create_attaches_branch(self, service, mock_git, tmp_path: Path):
        result = await service.create_workspace(str(tmp_path), "Demo", "gemini")

        assert result["success"] is True
        assert result["workspace"]["provider"] == "gemini"
        assert result["workspace"]["git_branch"] == "main"
        mock_git.current_branch.assert_awaited_once_with(tmp_path)

    @pytest.mark.asyncio
    async def test_create_outside_repository(self, service, mock_git, tmp_path: Path):
        mock_git.current_branch.return_value = None

        result = await service.create_workspace(str(tmp_path), "Demo")

        assert result["success"] is True
        assert result["workspace"]["git_branch"] is None
        assert result["workspace"]["provider"] == "claude"

    @pytest.mark.asyncio
    async def test_create_invalid(self, service, tmp_path: Path):
        result = await service.create_workspace(str(tmp_path), "Demo", "copilot")

        assert result["success"] is False
        assert result["error_type"] == "ValidationError"
        assert "copilot" in result["error"]

    @pytest.mark.asyncio
    async def test_get_unknown(self, service):
        result = await service.get_workspace("missing")

        assert result == {
            "success": False,
            "error": "Workspace not found: missing",
            "error_type": "NotFoundError",
        }

    @pytest.mark.asyncio
    async def test_list_and_remove(self, service, tmp_path: Path):
        created = await service.create_workspace(str(tmp_path), "Demo")
        workspace_id = created["workspace"]["id"]

        assert [ws["id"] for ws in await service.list_workspaces()] == [workspace_id]
        assert await service.remove_workspace(workspace_id) == {"success": True}
        assert await service.list_workspaces() == []
        assert (await service.remove_workspace(workspace_id))["error_type"] == "NotFoundError"


class TestExecuteCommand:
    @pytest.mark.asyncio
    async def test_shell_route(self, service, tmp_path: Path):
        created = await service.create_workspace(str(tmp_path), "Demo")

        result = await service.execute_command(created["workspace"]["id"], "echo hi")

        assert result["route"] == "shell"
        if sys.platform != "win32":
            assert result["output"].strip() == "hi"
            assert result["exit_code"] == 0

    @pytest.mark.asyncio
    async def test_start_then_forward(self, service, script_launcher, recorder, tmp_path: Path):
        script_launcher.script = ECHO_SCRIPT
        created = await service.create_workspace(str(tmp_path), "Demo")
        workspace_id = created["workspace"]["id"]

        started = await service.execute_command(workspace_id, "claude")
        await recorder.wait_for_text(workspace_id, "ready")
        forwarded = await service.execute_command(workspace_id, "status")
        await recorder.wait_for_text(workspace_id, "echo: status")

        assert started["route"] == "start_session"
        assert started["workspace"]["status"] == "running"
        assert forwarded == {"success": True, "route": "send_input"}

    @pytest.mark.asyncio
    async def test_empty_input_rejected(self, service, tmp_path: Path):
        created = await service.create_workspace(str(tmp_path), "Demo")

        result = await service.execute_command(created["workspace"]["id"], "  ")

        assert result["success"] is False
        assert result["error_type"] == "ValidationError"
        assert result["route"] is None

    @pytest.mark.asyncio
    async def test_unknown_workspace(self, service):
        result = await service.execute_command("missing", "ls")

        assert result["error_type"] == "NotFoundError"
        assert result["route"] is None

    @pytest.mark.asyncio
    async def test_spawn_failure_reports_route(self, service, script_launcher, tmp_path: Path):
        script_launcher.executable = str(tmp_path / "no-such-tool")
        created = await service.create_workspace(str(tmp_path), "Demo")

        result = await service.execute_command(created["workspace"]["id"], "claude")

        assert result["success"] is False
        assert result["error_type"] == "SpawnError"
        assert result["route"] == "start_session"
        assert (await service.get_workspace(created["workspace"]["id"]))["workspace"]["status"] == "error"

    @pytest.mark.asyncio
    async def test_stop_without_session(self, service, tmp_path: Path):
        created = await service.create_workspace(str(tmp_path), "Demo")

        result = await service.stop_session(created["workspace"]["id"])

        assert result["error_type"] == "NoActiveSessionError"


class TestGit:
    @pytest.mark.asyncio
    async def test_branch(self, service, mock_git):
        assert await service.get_git_branch("/repo") == {"success": True, "branch": "main"}

    @pytest.mark.asyncio
    async def test_branch_outside_repository(self, service, mock_git):
        mock_git.current_branch.return_value = None

        assert await service.get_git_branch("/elsewhere") == {"success": False, "branch": None}

    @pytest.mark.asyncio
    async def test_changes(self, service, mock_git, tmp_path: Path):
        mock_git.status_lines.return_value = [FileChange("a.py", ChangeType.MODIFIED, ChangeStatus.STAGED)]

        result = await service.get_file_changes(str(tmp_path))

        assert result == {
            "success": True,
            "changes": [{"path": "a.py", "type": "modified", "status": "staged"}],
        }

    @pytest.mark.asyncio
    async def test_changes_not_a_directory(self, service, mock_git, tmp_path: Path):
        result = await service.get_file_changes(str(tmp_path / "absent"))

        assert result["success"] is False
        assert result["changes"] == []
        mock_git.status_lines.assert_not_called()

    @pytest.mark.asyncio
    async def test_refresh(self, service, mock_git, recorder, tmp_path: Path):
        created = await service.create_workspace(str(tmp_path), "Demo")
        workspace_id = created["workspace"]["id"]
        mock_git.current_branch.return_value = "feature"
        mock_git.status_lines.return_value = [FileChange("new.txt", ChangeType.ADDED, ChangeStatus.UNSTAGED)]

        result = await service.refresh_git_info(workspace_id)

        assert result["workspace"]["git_branch"] == "feature"
        assert result["workspace"]["file_changes"] == [{"path": "new.txt", "type": "added", "status": "unstaged"}]
        event = await recorder.wait_for(
            lambda e: e.event == "workspace_updated" and e.data["workspace"]["git_branch"] == "feature"
        )
        assert event.workspace_id == workspace_id


class TestTools:
    @pytest.mark.asyncio
    async def test_unknown_provider(self, service):
        result = await service.check_tool_availability("copilot")

        assert result["available"] is False
        assert "copilot" in result["message"]

    @pytest.mark.asyncio
    async def test_missing_binary(self, service, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setattr("shutil.which", lambda name: None)

        result = await service.check_tool_availability("codex")

        assert result["available"] is False
        assert "not found" in result["message"]

    @pytest.mark.asyncio
    async def test_open_empty_path(self, service):
        result = await service.open_path("  ")

        assert result["error_type"] == "ValidationError"

    @pytest.mark.asyncio
    async def test_open_missing_path(self, service, tmp_path: Path):
        result = await service.open_path(str(tmp_path / "absent"))

        assert result["error_type"] == "ValidationError"
        assert "does not exist" in result["error"]

    @pytest.mark.skipif(sys.platform == "win32", reason="uses POSIX true")
    @pytest.mark.asyncio
    async def test_open_existing_path(self, service, tmp_path: Path):
        with patch(
            "pulsecode.dashboard.service.platform_command.get_open_command",
            return_value=["true", str(tmp_path)],
        ):
            result = await service.open_path(str(tmp_path))

        assert result == {"success": True}

    @pytest.mark.asyncio
    async def test_open_missing_opener(self, service, tmp_path: Path):
        with patch(
            "pulsecode.dashboard.service.platform_command.get_open_command",
            return_value=[str(tmp_path / "no-opener"), str(tmp_path)],
        ):
            result = await service.open_path(str(tmp_path))

        assert result["success"] is False
        assert result["error_type"] == "SpawnError"
