"""Workspace record for the session supervisor.

Encapsulates state for one workspace:
- Identification (UUID, path, display name, provider)
- Status derived from the session lifecycle (IDLE, RUNNING, ERROR, COMPLETED)
- Last-known git branch and cached file changes
- Activity timestamps

The registry owns Workspace instances and hands out copies; observers never
see a live record.
"""

import dataclasses
import logging
import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from pathlib import Path
from typing import Any

from pulsecode.core.exceptions import ValidationError
from pulsecode.providers.base import ProviderKind
from pulsecode.vcs.git_reader import FileChange

logger = logging.getLogger(__name__)


class WorkspaceStatus(StrEnum):
    """Workspace status, a function of the session lifecycle.

    Valid transitions:
        IDLE → RUNNING (session start requested)
        RUNNING → COMPLETED (session exited with code 0)
        RUNNING → ERROR (spawn failure, non-zero exit or signal)
        RUNNING → IDLE (explicit stop)
        COMPLETED/ERROR → RUNNING (new session)
    """

    IDLE = "idle"
    RUNNING = "running"
    ERROR = "error"
    COMPLETED = "completed"


@dataclass
class Workspace:
    """One user-defined binding of a project folder to an assistant tool.

    Attributes:
        id: Stable UUID assigned at creation, never reused.
        name: Display name (trimmed, non-empty).
        path: Absolute path to the project directory.
        provider: Assistant tool used for sessions.
        status: Current status.
        created_at: Creation timestamp (UTC).
        last_activity: Last status change or output (UTC).
        git_branch: Last-known branch name.
        file_changes: Cached working-tree changes, None until first read.
        last_exit_code: Return code of the last finished session.

    """

    id: str
    name: str
    path: Path
    provider: ProviderKind
    status: WorkspaceStatus = WorkspaceStatus.IDLE
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    last_activity: datetime = field(default_factory=lambda: datetime.now(UTC))
    git_branch: str | None = None
    file_changes: list[FileChange] | None = None
    last_exit_code: int | None = None

    @classmethod
    def create(cls, path: str | Path, name: str, provider: ProviderKind) -> "Workspace":
        """Create a new Workspace with generated UUID.

        Args:
            path: Project directory. Made absolute; not required to exist.
            name: Display name; surrounding whitespace is trimmed.
            provider: Assistant tool.

        Returns:
            New idle Workspace.

        Raises:
            ValidationError: If path is empty or name is blank.

        """
        if not str(path).strip():
            raise ValidationError("Workspace path must not be empty")
        display_name = name.strip() if name else ""
        if not display_name:
            raise ValidationError("Workspace name must not be empty")

        absolute = Path(str(path).strip()).expanduser().absolute()

        return cls(
            id=str(uuid.uuid4()),
            name=display_name,
            path=absolute,
            provider=provider,
        )

    def set_running(self) -> None:
        """Transition to RUNNING (session start requested)."""
        self.status = WorkspaceStatus.RUNNING
        self.last_exit_code = None
        self.touch()
        logger.info("Workspace %s (%s) running", self.name, self.id[:8])

    def set_finished(self, returncode: int) -> None:
        """Transition to COMPLETED or ERROR from a session exit code.

        Args:
            returncode: Process return code (negative for signals).

        """
        self.last_exit_code = returncode
        self.status = WorkspaceStatus.COMPLETED if returncode == 0 else WorkspaceStatus.ERROR
        self.touch()
        logger.info(
            "Workspace %s (%s) session finished with code %d -> %s",
            self.name,
            self.id[:8],
            returncode,
            self.status.value,
        )

    def set_error(self, message: str) -> None:
        """Transition to ERROR without an exit code (spawn failure)."""
        self.status = WorkspaceStatus.ERROR
        self.touch()
        logger.error("Workspace %s (%s) error: %s", self.name, self.id[:8], message)

    def set_idle(self) -> None:
        """Transition to IDLE (explicit stop)."""
        self.status = WorkspaceStatus.IDLE
        self.touch()
        logger.info("Workspace %s (%s) now idle", self.name, self.id[:8])

    def touch(self) -> None:
        self.last_activity = datetime.now(UTC)

    def snapshot(self) -> "Workspace":
        """Return a detached copy safe to hand to observers."""
        changes = list(self.file_changes) if self.file_changes is not None else None
        return dataclasses.replace(self, file_changes=changes)

    def to_summary(self) -> dict[str, Any]:
        """Get summary dict for API responses and events.

        Returns:
            JSON-serializable dictionary.

        """
        return {
            "id": self.id,
            "name": self.name,
            "path": str(self.path),
            "provider": self.provider.value,
            "status": self.status.value,
            "created_at": self.created_at.isoformat(),
            "last_activity": self.last_activity.isoformat(),
            "git_branch": self.git_branch,
            "file_changes": (
                [change.to_dict() for change in self.file_changes]
                if self.file_changes is not None
                else None
            ),
            "last_exit_code": self.last_exit_code,
        }
