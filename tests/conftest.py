from __future__ import annotations

import pytest

from fibengine import runtime


@pytest.fixture(autouse=True)
def isolated_workspace(tmp_path, monkeypatch):
    """Every test gets its own workspace and a fresh runtime."""
    monkeypatch.setenv("FIBENGINE_HOME", str(tmp_path / "ws"))
    runtime.reset()
    yield tmp_path / "ws"
    runtime.reset()


@pytest.fixture
def apply_settings():
    """Install a settings dict into the runtime, e.g. {"ENGINE": {"MAX_INDEX": 50}}."""
    def _apply(data: dict) -> None:
        runtime.APPLY(data)
    return _apply
