"""Cross-platform command utilities.

Resolves the host shell used for one-shot commands and the OS command that
opens a path in the file manager or default editor.

Key differences between platforms:
- POSIX (Linux/macOS): commands run through ``/bin/sh -c`` unless a shell
  is configured; paths open with ``open`` (macOS) or ``xdg-open``.
- Windows: commands run through ``cmd.exe /c``; paths open through the
  ``explorer`` shell association.
"""

from __future__ import annotations

import sys
from pathlib import PureWindowsPath

# Platform detection
IS_WINDOWS = sys.platform == "win32"
IS_MACOS = sys.platform == "darwin"

DEFAULT_POSIX_SHELL = "/bin/sh"
DEFAULT_WINDOWS_SHELL = "cmd.exe"


def get_shell_command(shell: str | None = None) -> list[str]:
    """Get the shell invocation prefix for a command string.

    Args:
        shell: Configured shell executable. None selects the platform default.

    Returns:
        Argument prefix; the command string is appended as the last element.

    Examples:
        >>> get_shell_command()
        ['/bin/sh', '-c']  # on POSIX
        >>> get_shell_command("/bin/bash")
        ['/bin/bash', '-c']
        >>> get_shell_command("cmd.exe")
        ['cmd.exe', '/c']

    """
    if shell is None:
        shell = DEFAULT_WINDOWS_SHELL if IS_WINDOWS else DEFAULT_POSIX_SHELL

    name = PureWindowsPath(shell).name.lower()
    if name in ("cmd", "cmd.exe"):
        return [shell, "/c"]
    if name in ("powershell", "powershell.exe", "pwsh", "pwsh.exe"):
        return [shell, "-NoProfile", "-Command"]
    return [shell, "-c"]


def get_open_command(path: str) -> list[str]:
    """Get the command that opens a path with the OS default handler.

    Args:
        path: File or directory to open.

    Returns:
        Argument vector for the opener.

    """
    if IS_WINDOWS:
        return ["explorer", path]
    if IS_MACOS:
        return ["open", path]
    return ["xdg-open", path]
