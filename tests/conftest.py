"""Pytest configuration and fixtures for pulsecode tests."""

from pathlib import Path

import pytest
from session_scripts import ScriptLauncher

from pulsecode.providers.base import ProviderKind


@pytest.fixture
def script_launcher() -> ScriptLauncher:
    """Create launcher running the hello script."""
    return ScriptLauncher()


@pytest.fixture(autouse=True)
def isolated_environment(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep user config and CLI overrides out of tests."""
    monkeypatch.setenv("PULSECODE_CONFIG", str(tmp_path / "absent-config.yaml"))
    for kind in ProviderKind:
        monkeypatch.delenv(f"PULSECODE_{kind.value.upper()}_CLI_PATH", raising=False)
