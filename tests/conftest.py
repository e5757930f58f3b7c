from __future__ import annotations

from pathlib import Path

import pytest


@pytest.fixture(autouse=True)
def _isolate_home(tmp_path_factory, monkeypatch):
    """Force tests to use a temporary HOME/XDG dirs so real settings are untouched."""
    base = tmp_path_factory.mktemp("home")
    monkeypatch.setenv("HOME", str(base))
    monkeypatch.setenv("XDG_CONFIG_HOME", str(base / ".config"))
    monkeypatch.setenv("XDG_STATE_HOME", str(base / ".local" / "state"))
    monkeypatch.setenv("XDG_DATA_HOME", str(base / ".local" / "share"))
    monkeypatch.setenv("XDG_CACHE_HOME", str(base / ".cache"))
    monkeypatch.setattr(Path, "home", lambda: base)
    for name in (
        "NEXALINK_CONFIG_DIR",
        "NEXALINK_LOG_DIR",
        "NEXALINK_LOG_LEVEL",
        "NEXALINK_LOG_STDERR",
        "NEXALINK_LOG_JSON",
        "NEXALINK_LEGACY_URL",
        "NEXALINK_LEGACY_HOST",
        "NEXALINK_LEGACY_PORT",
    ):
        monkeypatch.delenv(name, raising=False)
