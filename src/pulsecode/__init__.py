"""PulseCode - workspace supervisor for interactive AI coding-assistant CLIs.

Manages several project workspaces, each optionally running one long-lived
assistant session (claude, gemini, codex), alongside one-shot shell commands
and git status reads.
"""

__version__ = "0.3.0"
