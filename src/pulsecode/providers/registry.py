"""Provider lookup and launch resolution.

ProviderLauncher binds the closed set of providers to their configured
settings. The workspace registry depends only on its resolve_launch()
method, so tests can substitute any object with the same signature.
"""

import logging
from collections.abc import Mapping
from pathlib import Path

from pulsecode.core.exceptions import ValidationError
from pulsecode.providers.base import (
    AvailabilityResult,
    LaunchSpec,
    ProviderKind,
    ProviderSettings,
    ToolProvider,
)
from pulsecode.providers.claude import ClaudeProvider
from pulsecode.providers.codex import CodexProvider
from pulsecode.providers.gemini import GeminiProvider

logger = logging.getLogger(__name__)

PROVIDER_CLASSES: dict[ProviderKind, type[ToolProvider]] = {
    ProviderKind.CLAUDE: ClaudeProvider,
    ProviderKind.GEMINI: GeminiProvider,
    ProviderKind.CODEX: CodexProvider,
}

DEFAULT_PROVIDER = ProviderKind.CLAUDE


def parse_provider(value: str | ProviderKind | None) -> ProviderKind:
    """Convert a provider identifier to ProviderKind.

    Args:
        value: Identifier such as "claude". None or "" selects the default.

    Returns:
        Matching ProviderKind.

    Raises:
        ValidationError: If the identifier is unknown.

    """
    if isinstance(value, ProviderKind):
        return value
    if value is None or not value.strip():
        return DEFAULT_PROVIDER
    try:
        return ProviderKind(value.strip().lower())
    except ValueError:
        valid = ", ".join(kind.value for kind in ProviderKind)
        raise ValidationError(f"Unknown provider '{value}' (expected one of: {valid})") from None


def get_provider(kind: ProviderKind, settings: ProviderSettings | None = None) -> ToolProvider:
    """Instantiate the provider for a kind."""
    return PROVIDER_CLASSES[kind](settings)


class ProviderLauncher:
    """Resolves launches and availability for all providers.

    Attributes:
        settings: Per-provider overrides from configuration.

    """

    def __init__(self, settings: Mapping[ProviderKind, ProviderSettings] | None = None) -> None:
        self.settings = dict(settings or {})

    def provider(self, kind: ProviderKind) -> ToolProvider:
        return get_provider(kind, self.settings.get(kind))

    def resolve_launch(self, kind: ProviderKind, workspace_path: Path, args: tuple[str, ...] = ()) -> LaunchSpec:
        """Resolve the launch specification for a session.

        Raises:
            SpawnError: If the executable or a helper interpreter is missing.

        """
        return self.provider(kind).resolve_launch(workspace_path, args)

    def check_availability(self, provider: str | ProviderKind) -> AvailabilityResult:
        """Probe a provider's executable. Never raises.

        Args:
            provider: Provider identifier; unknown values report unavailable.

        Returns:
            AvailabilityResult with guidance when unavailable.

        """
        try:
            kind = parse_provider(provider)
        except ValidationError as e:
            return AvailabilityResult(available=False, message=str(e))
        result = self.provider(kind).check_availability()
        logger.debug("Availability for %s: %s", kind.value, result.available)
        return result
