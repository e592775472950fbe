"""Exception hierarchy for PulseCode.

All errors raised by the supervisor derive from PulseCodeError so that the
service facade and route handlers can translate them into result shapes
with a single except clause. Every failure is scoped to one workspace.
"""

__all__ = [
    "ConfigError",
    "NoActiveSessionError",
    "NotFoundError",
    "ProcessExitError",
    "PulseCodeError",
    "SessionAlreadyActiveError",
    "SessionError",
    "SpawnError",
    "ValidationError",
]


class PulseCodeError(Exception):
    """Base exception for all PulseCode errors."""

    pass


class ConfigError(PulseCodeError):
    """Configuration file is missing, unparsable, or fails validation."""

    pass


class ValidationError(PulseCodeError):
    """Bad input to a registry or router operation."""

    pass


class NotFoundError(PulseCodeError):
    """Unknown workspace id.

    Attributes:
        workspace_id: The id that was looked up.

    """

    def __init__(self, message: str, workspace_id: str = "") -> None:
        super().__init__(message)
        self.workspace_id = workspace_id


class SessionError(PulseCodeError):
    """Session lifecycle misuse."""

    def __init__(self, message: str, workspace_id: str = "") -> None:
        super().__init__(message)
        self.workspace_id = workspace_id


class SessionAlreadyActiveError(SessionError):
    """A session start was requested while one is already attached."""

    pass


class NoActiveSessionError(SessionError):
    """Input or stop was requested but no session is attached."""

    pass


class SpawnError(PulseCodeError):
    """External process failed to launch.

    Covers missing executables, missing helper interpreters and OS-level
    spawn failures (bad cwd, permissions).

    Attributes:
        executable: Executable that was being launched, if known.
        reason: Short machine-friendly reason code.

    """

    def __init__(self, message: str, executable: str = "", reason: str = "spawn_failed") -> None:
        super().__init__(message)
        self.executable = executable
        self.reason = reason


class ProcessExitError(PulseCodeError):
    """Session process terminated with a non-zero code or a signal.

    Attributes:
        exit_code: Raw return code (negative for signals on POSIX).
        signal: Signal number if terminated by a signal, else None.

    """

    def __init__(self, message: str, exit_code: int | None = None, signal: int | None = None) -> None:
        super().__init__(message)
        self.exit_code = exit_code
        self.signal = signal

    @classmethod
    def from_returncode(cls, tool: str, returncode: int) -> "ProcessExitError":
        """Build an error describing a process return code.

        Args:
            tool: Tool name for the message.
            returncode: asyncio/subprocess returncode.

        Returns:
            ProcessExitError with exit_code and signal populated.

        """
        if returncode < 0:
            return cls(
                f"{tool} terminated by signal {-returncode}",
                exit_code=returncode,
                signal=-returncode,
            )
        return cls(f"{tool} exited with code {returncode}", exit_code=returncode)
