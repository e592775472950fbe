"""Google Gemini CLI provider."""

from pulsecode.providers.base import ProviderKind, ToolProvider


class GeminiProvider(ToolProvider):
    """Google Gemini CLI."""

    kind = ProviderKind.GEMINI
    executable_name = "gemini"
    trigger_words = ("gemini",)
    install_hint = "Install it with: npm install -g @google/gemini-cli"
