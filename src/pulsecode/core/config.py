"""Configuration for the PulseCode supervisor.

Loaded from YAML (``~/.config/pulsecode/config.yaml`` by default, or the
path in PULSECODE_CONFIG) and validated with pydantic. A missing file
yields defaults; a broken file is a ConfigError.

Example:
    shell: /bin/bash
    output_buffer_size: 1000
    providers:
      claude:
        extra_args: ["--verbose"]
"""

import logging
import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from pulsecode.core.exceptions import ConfigError
from pulsecode.providers.base import ProviderKind, ProviderSettings

logger = logging.getLogger(__name__)

# XDG-compliant config location
DEFAULT_CONFIG_DIR = Path.home() / ".config" / "pulsecode"
DEFAULT_CONFIG_FILE = "config.yaml"
CONFIG_ENV_VAR = "PULSECODE_CONFIG"

VALID_LOG_LEVELS = frozenset({"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"})


class PulseCodeConfig(BaseModel):
    """Supervisor configuration.

    Attributes:
        shell: Shell used for one-shot commands (None = platform default).
        shell_timeout: Seconds before a one-shot command is killed (None = no limit).
        output_buffer_size: Raw output chunks retained per session.
        init_grace_seconds: Silence before the "waiting for initialization" notice.
        git_executable: Version-control binary.
        git_timeout: Seconds allowed for each git read.
        event_queue_size: Per-subscriber event queue bound.
        heartbeat_interval: Seconds between SSE heartbeats.
        log_level: Root log level for the CLI.
        host: Bind address for ``pulsecode serve``.
        port: Bind port for ``pulsecode serve``.
        providers: Per-provider overrides.

    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    shell: str | None = None
    shell_timeout: float | None = Field(default=None, gt=0)
    output_buffer_size: int = Field(default=500, ge=1)
    init_grace_seconds: float = Field(default=2.0, ge=0)
    git_executable: str = "git"
    git_timeout: float = Field(default=5.0, gt=0)
    event_queue_size: int = Field(default=1000, ge=1)
    heartbeat_interval: int = Field(default=15, ge=1)
    log_level: str = "INFO"
    host: str = "127.0.0.1"
    port: int = Field(default=8765, ge=1, le=65535)
    providers: dict[ProviderKind, ProviderSettings] = Field(default_factory=dict)

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        normalized = v.strip().upper()
        if normalized not in VALID_LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(sorted(VALID_LOG_LEVELS))}")
        return normalized

    @field_validator("providers", mode="before")
    @classmethod
    def coerce_none_to_empty_dict(cls, v: Any) -> Any:
        """YAML parses an empty providers key as None."""
        if v is None:
            return {}
        return v


def default_config_path() -> Path:
    """Return the config path from PULSECODE_CONFIG or the XDG default."""
    override = os.environ.get(CONFIG_ENV_VAR)
    if override:
        return Path(override).expanduser()
    return DEFAULT_CONFIG_DIR / DEFAULT_CONFIG_FILE


def load_config(source: Path | dict[str, Any] | None = None) -> PulseCodeConfig:
    """Load and validate configuration.

    Args:
        source: YAML file path, an already-parsed mapping, or None to use
            default_config_path().

    Returns:
        Validated PulseCodeConfig. Defaults if the default file is absent.

    Raises:
        ConfigError: If an explicit file is missing, YAML is invalid, or
            validation fails.

    """
    if isinstance(source, dict):
        data: Any = source
        origin = "<dict>"
    else:
        explicit = source is not None
        path = source if source is not None else default_config_path()
        origin = str(path)
        if not path.exists():
            if explicit:
                raise ConfigError(f"Config file not found: {path}")
            logger.debug("No config file at %s, using defaults", path)
            return PulseCodeConfig()
        try:
            with path.open(encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {path}: {e}") from e
        except OSError as e:
            raise ConfigError(f"Cannot read config {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Config root must be a mapping in {origin}")

    try:
        config = PulseCodeConfig.model_validate(data)
    except PydanticValidationError as e:
        raise ConfigError(f"Invalid configuration in {origin}: {e}") from e

    logger.info(
        "Loaded config from %s: shell=%s, buffer=%d",
        origin,
        config.shell or "default",
        config.output_buffer_size,
    )
    return config
