"""Tool provider abstraction.

A provider describes one external AI-assistant CLI: the words that start a
session for it, where its executable lives, and what environment it needs
at launch. The set of providers is closed (ProviderKind); each kind maps to
exactly one ToolProvider implementation.

Usage:
    from pulsecode.providers.base import ToolProvider

    class MyProvider(ToolProvider):
        kind = ProviderKind.CLAUDE
        executable_name = "claude"
        trigger_words = ("claude",)
        install_hint = "npm install -g ..."
"""

from __future__ import annotations

import logging
import os
import shlex
import shutil
from abc import ABC
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from pulsecode.core.exceptions import SpawnError

logger = logging.getLogger(__name__)

# Variables that leak the host's nested-session guard into child tools
_STRIPPED_ENV_VARS = ("CLAUDECODE",)


class ProviderKind(StrEnum):
    """Closed set of supported assistant tools."""

    CLAUDE = "claude"
    GEMINI = "gemini"
    CODEX = "codex"


class ProviderSettings(BaseModel):
    """Per-provider overrides from the configuration file.

    Attributes:
        cli_path: Explicit executable path (skips PATH lookup).
        extra_args: Arguments prepended to every launch.
        env: Extra environment variables for the session process.

    """

    model_config = ConfigDict(frozen=True)

    cli_path: str | None = Field(default=None, description="Explicit CLI executable path")
    extra_args: list[str] = Field(default_factory=list, description="Arguments added to every launch")
    env: dict[str, str] = Field(default_factory=dict, description="Extra session environment")

    @field_validator("extra_args", mode="before")
    @classmethod
    def coerce_none_to_empty_list(cls, v: Any) -> list[str]:
        """YAML parses empty keys as None."""
        if v is None:
            return []
        return [str(item) for item in v]

    @field_validator("env", mode="before")
    @classmethod
    def coerce_none_to_empty_dict(cls, v: Any) -> dict[str, str]:
        if v is None:
            return {}
        return {str(key): str(value) for key, value in dict(v).items()}


@dataclass(frozen=True)
class LaunchSpec:
    """Everything needed to spawn a session process.

    Attributes:
        executable: Absolute path (or name) of the program to run.
        args: Arguments after the executable.
        env: Full environment for the child process.

    """

    executable: str
    args: tuple[str, ...] = ()
    env: dict[str, str] = field(default_factory=dict)

    @property
    def argv(self) -> list[str]:
        """Return the full argument vector."""
        return [self.executable, *self.args]

    def display(self) -> str:
        """Return a shell-like rendering for logs and notices."""
        return shlex.join(self.argv)


@dataclass(frozen=True)
class AvailabilityResult:
    """Outcome of probing for a provider's executable.

    Attributes:
        available: True if the executable could be resolved.
        message: Resolved path, or guidance on how to install.

    """

    available: bool
    message: str

    def to_dict(self) -> dict[str, Any]:
        return {"available": self.available, "message": self.message}


class ToolProvider(ABC):
    """Base class for assistant CLI providers.

    Subclasses set the class attributes and may override
    _resolve_environment() to add launch-time requirements.

    Attributes:
        kind: Provider identifier.
        executable_name: Binary name looked up on PATH.
        trigger_words: Inputs that start a session (alone or followed by args).
        install_hint: Guidance shown when the binary is missing.

    """

    kind: ProviderKind
    executable_name: str
    trigger_words: tuple[str, ...]
    install_hint: str

    def __init__(self, settings: ProviderSettings | None = None) -> None:
        self.settings = settings or ProviderSettings()

    @property
    def display_name(self) -> str:
        return self.kind.value

    @property
    def cli_path_env_var(self) -> str:
        """Environment variable that overrides the executable location."""
        return f"PULSECODE_{self.kind.value.upper()}_CLI_PATH"

    def match_trigger(self, text: str) -> tuple[str, ...] | None:
        """Check whether input starts a session for this provider.

        Args:
            text: Raw user input.

        Returns:
            Tuple of tool arguments (possibly empty) if the trimmed input is
            a trigger word or a trigger word followed by arguments, else None.

        """
        trimmed = text.strip()
        for word in self.trigger_words:
            if trimmed == word:
                return ()
            if trimmed.startswith(word + " "):
                remainder = trimmed[len(word) + 1 :]
                try:
                    return tuple(shlex.split(remainder))
                except ValueError:
                    # Unbalanced quotes: pass the remainder through as one argument
                    return (remainder.strip(),)
        return None

    def resolve_executable(self) -> str:
        """Locate the provider CLI.

        Resolution order: PULSECODE_<TOOL>_CLI_PATH, settings.cli_path,
        then shutil.which(executable_name).

        Returns:
            Path to the executable.

        Raises:
            SpawnError: If no usable executable was found.

        """
        for source, candidate in (
            (self.cli_path_env_var, os.environ.get(self.cli_path_env_var)),
            ("config", self.settings.cli_path),
        ):
            if not candidate:
                continue
            if os.path.isfile(candidate) and os.access(candidate, os.X_OK):
                return candidate
            raise SpawnError(
                f"{source} points to invalid {self.display_name} executable: {candidate}",
                executable=candidate,
                reason="missing_executable",
            )

        binary = shutil.which(self.executable_name)
        if binary:
            return binary

        raise SpawnError(
            f"{self.display_name} CLI not found on PATH. {self.install_hint}",
            executable=self.executable_name,
            reason="missing_executable",
        )

    def resolve_launch(self, workspace_path: Path, args: tuple[str, ...] = ()) -> LaunchSpec:
        """Build the launch specification for a session.

        Args:
            workspace_path: Working directory of the session.
            args: Arguments typed after the trigger word.

        Returns:
            LaunchSpec with executable, arguments and environment.

        Raises:
            SpawnError: If the executable or a required helper is missing.

        """
        executable = self.resolve_executable()
        env = self._base_environment()
        env.update(self._resolve_environment(workspace_path))
        env.update(self.settings.env)
        launch = LaunchSpec(
            executable=executable,
            args=(*self.settings.extra_args, *args),
            env=env,
        )
        logger.debug("Resolved %s launch: %s (cwd=%s)", self.display_name, launch.display(), workspace_path)
        return launch

    def check_availability(self) -> AvailabilityResult:
        """Probe for the executable without raising."""
        try:
            path = self.resolve_executable()
        except SpawnError as e:
            return AvailabilityResult(available=False, message=str(e))
        return AvailabilityResult(available=True, message=f"{self.display_name} found at {path}")

    def _base_environment(self) -> dict[str, str]:
        env = dict(os.environ)
        for key in _STRIPPED_ENV_VARS:
            env.pop(key, None)
        return env

    def _resolve_environment(self, workspace_path: Path) -> dict[str, str]:
        """Return provider-specific environment additions."""
        return {}
