"""Claude Code CLI provider.

On Windows the Claude Code CLI needs a POSIX shell (Git Bash). The launch
strategy probes well-known Git for Windows install locations, then falls
back to a PATH lookup of ``bash``, and passes the result to the CLI through
CLAUDE_CODE_GIT_BASH_PATH. On POSIX no helper is required.
"""

import logging
import os
import shutil
from pathlib import Path

from pulsecode.core import platform_command
from pulsecode.core.exceptions import SpawnError
from pulsecode.providers.base import ProviderKind, ToolProvider

logger = logging.getLogger(__name__)

GIT_BASH_ENV_VAR = "CLAUDE_CODE_GIT_BASH_PATH"

# Probed in order before falling back to PATH
GIT_BASH_CANDIDATES: tuple[str, ...] = (
    r"C:\Program Files\Git\bin\bash.exe",
    r"C:\Program Files (x86)\Git\bin\bash.exe",
    os.path.expandvars(r"%LOCALAPPDATA%\Programs\Git\bin\bash.exe"),
    os.path.expandvars(r"%USERPROFILE%\scoop\apps\git\current\bin\bash.exe"),
)


def find_git_bash(candidates: tuple[str, ...] = GIT_BASH_CANDIDATES) -> str | None:
    """Locate a Git Bash interpreter.

    Args:
        candidates: Fixed install paths to probe first.

    Returns:
        Path to bash, or None if neither a candidate nor PATH has one.

    """
    for candidate in candidates:
        if os.path.isfile(candidate):
            return candidate
    return shutil.which("bash")


class ClaudeProvider(ToolProvider):
    """Anthropic Claude Code CLI."""

    kind = ProviderKind.CLAUDE
    executable_name = "claude"
    trigger_words = ("claude", "claude-code")
    install_hint = "Install it with: npm install -g @anthropic-ai/claude-code"

    def _resolve_environment(self, workspace_path: Path) -> dict[str, str]:
        if not platform_command.IS_WINDOWS:
            return {}

        existing = os.environ.get(GIT_BASH_ENV_VAR)
        if existing and os.path.isfile(existing):
            return {GIT_BASH_ENV_VAR: existing}

        bash = find_git_bash()
        if bash is None:
            raise SpawnError(
                "Claude Code on Windows requires Git Bash. "
                "Install Git for Windows or set CLAUDE_CODE_GIT_BASH_PATH.",
                executable="bash.exe",
                reason="missing_interpreter",
            )
        logger.info("Using Git Bash for claude: %s", bash)
        return {GIT_BASH_ENV_VAR: bash}
