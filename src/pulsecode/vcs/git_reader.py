"""Best-effort git reads for workspace status.

Both reads shell out to the git binary and never raise: a missing binary,
a path that is not a repository, a timeout or a non-zero exit all yield an
absent/empty result.

Porcelain status line layout (``git status --porcelain``):
    XY PATH
    XY ORIG -> PATH     (renames/copies)

X is the index (staged) state, Y the working-tree state, PATH starts at
offset 3.
"""

import asyncio
import contextlib
import logging
from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

DEFAULT_GIT_TIMEOUT = 5.0  # seconds per read

# Offset of the path within a porcelain status line
STATUS_PATH_OFFSET = 3

RENAME_SEPARATOR = " -> "


class ChangeType(StrEnum):
    """Kind of change reported for a file."""

    ADDED = "added"
    MODIFIED = "modified"
    DELETED = "deleted"


class ChangeStatus(StrEnum):
    """Whether a change is in the index."""

    STAGED = "staged"
    UNSTAGED = "unstaged"


@dataclass(frozen=True)
class FileChange:
    """One entry of the working-tree status.

    Attributes:
        path: Repository-relative path.
        type: Change kind.
        status: Staged or unstaged.

    """

    path: str
    type: ChangeType
    status: ChangeStatus

    def to_dict(self) -> dict[str, Any]:
        return {"path": self.path, "type": self.type.value, "status": self.status.value}


def parse_status_line(line: str) -> FileChange | None:
    """Parse one porcelain status line.

    Rules:
        - staged iff the first code character is neither space nor ``?``
        - ``??`` (untracked) is reported as added
        - otherwise Added > Deleted > Modified, checked against both code
          characters, modified as the fallback

    Args:
        line: Raw status line.

    Returns:
        FileChange, or None for blank/short lines.

    Examples:
        >>> parse_status_line("M  src/app.ts")
        FileChange(path='src/app.ts', type=<ChangeType.MODIFIED: 'modified'>, status=<ChangeStatus.STAGED: 'staged'>)

    """
    line = line.rstrip("\r\n")
    if len(line) <= STATUS_PATH_OFFSET:
        return None

    code = line[:2]
    path = line[STATUS_PATH_OFFSET:]
    if RENAME_SEPARATOR in path:
        path = path.split(RENAME_SEPARATOR, 1)[1]
    path = _unquote(path)

    staged = code[0] not in (" ", "?")

    if code == "??" or "A" in code:
        change_type = ChangeType.ADDED
    elif "D" in code:
        change_type = ChangeType.DELETED
    else:
        change_type = ChangeType.MODIFIED

    return FileChange(
        path=path,
        type=change_type,
        status=ChangeStatus.STAGED if staged else ChangeStatus.UNSTAGED,
    )


def parse_status_output(output: str) -> list[FileChange]:
    """Parse full ``git status --porcelain`` output."""
    changes = []
    for line in output.splitlines():
        change = parse_status_line(line)
        if change is not None:
            changes.append(change)
    return changes


def _unquote(path: str) -> str:
    """Strip the C-style quoting git applies to unusual paths."""
    if len(path) >= 2 and path.startswith('"') and path.endswith('"'):
        inner = path[1:-1]
        # Octal escapes (\303\251) are UTF-8 bytes
        try:
            unescaped = inner.encode("latin-1", "backslashreplace").decode("unicode_escape")
            return unescaped.encode("latin-1").decode("utf-8")
        except (UnicodeDecodeError, UnicodeEncodeError):
            return inner
    return path


class GitReader:
    """Reads branch and working-tree status by shelling out to git.

    Attributes:
        executable: git binary name or path.
        timeout: Seconds allowed per read.

    """

    def __init__(self, executable: str = "git", timeout: float = DEFAULT_GIT_TIMEOUT) -> None:
        self.executable = executable
        self.timeout = timeout

    async def current_branch(self, path: Path | str) -> str | None:
        """Return the checked-out branch name, or None.

        Detached HEAD, a non-repository path, or a missing git binary all
        return None.
        """
        output = await self._run(path, "rev-parse", "--abbrev-ref", "HEAD")
        if output is None:
            return None
        branch = output.strip()
        if not branch or branch == "HEAD":
            return None
        return branch

    async def status_lines(self, path: Path | str) -> list[FileChange]:
        """Return working-tree changes, or an empty list on any failure."""
        output = await self._run(path, "status", "--porcelain")
        if output is None:
            return []
        return parse_status_output(output)

    async def _run(self, path: Path | str, *args: str) -> str | None:
        """Run git in path; return stdout on exit 0, else None."""
        try:
            process = await asyncio.create_subprocess_exec(
                self.executable,
                *args,
                cwd=str(path),
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            logger.debug("git %s unavailable in %s: %s", args[0], path, e)
            return None

        try:
            stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=self.timeout)
        except TimeoutError:
            logger.warning("git %s timed out after %.1fs in %s", args[0], self.timeout, path)
            with contextlib.suppress(ProcessLookupError):
                process.kill()
            await process.wait()
            return None

        if process.returncode != 0:
            logger.debug(
                "git %s exited %d in %s: %s",
                args[0],
                process.returncode,
                path,
                stderr.decode("utf-8", errors="replace").strip()[:200],
            )
            return None
        return stdout.decode("utf-8", errors="replace")
