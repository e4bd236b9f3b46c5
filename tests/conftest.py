"""Shared pytest fixtures for the roku_remote tests."""
from __future__ import annotations

import pytest


@pytest.fixture(autouse=True)
def isolated_home(tmp_path, monkeypatch):
    """Keep the registry, settings and logs inside a per-test directory."""
    home = tmp_path / "roku_home"
    monkeypatch.setenv("ROKU_REMOTE_HOME", str(home))
    return home
