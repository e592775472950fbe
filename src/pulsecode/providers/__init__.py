"""Assistant CLI providers.

Public API:
    ProviderKind: Closed set of supported tools
    ToolProvider: Base class with trigger matching and launch resolution
    LaunchSpec: Executable, arguments and environment for a session
    ProviderLauncher: Config-aware resolver used by the workspace registry
"""

from .base import AvailabilityResult, LaunchSpec, ProviderKind, ProviderSettings, ToolProvider
from .claude import ClaudeProvider
from .codex import CodexProvider
from .gemini import GeminiProvider
from .registry import DEFAULT_PROVIDER, ProviderLauncher, get_provider, parse_provider

__all__ = [
    "DEFAULT_PROVIDER",
    "AvailabilityResult",
    "ClaudeProvider",
    "CodexProvider",
    "GeminiProvider",
    "LaunchSpec",
    "ProviderKind",
    "ProviderLauncher",
    "ProviderSettings",
    "ToolProvider",
    "get_provider",
    "parse_provider",
]
