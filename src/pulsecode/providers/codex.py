"""OpenAI Codex CLI provider."""

from pulsecode.providers.base import ProviderKind, ToolProvider

# Interpreter variables that break the Node-based CLI when inherited from a venv
_SANITIZED_VARS = ("PYTHONHOME", "PYTHONPATH", "VIRTUAL_ENV")


class CodexProvider(ToolProvider):
    """OpenAI Codex CLI."""

    kind = ProviderKind.CODEX
    executable_name = "codex"
    trigger_words = ("codex",)
    install_hint = "Install it with: npm install -g @openai/codex"

    def _base_environment(self) -> dict[str, str]:
        env = super()._base_environment()
        for key in _SANITIZED_VARS:
            env.pop(key, None)
        return env
