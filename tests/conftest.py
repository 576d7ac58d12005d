"""Pytest fixtures for Pigeon native host tests."""

import io

import pytest

from tests.helpers.fakes import FakeTmuxBridge, encode_frame


@pytest.fixture
def fake_bridge():
    """A fake tmux with sessions 'proj' and 'work'."""
    return FakeTmuxBridge(sessions=["proj", "work"])


@pytest.fixture
def stdin_for():
    """Build a stdin stream containing the given frames."""

    def _build(*payloads) -> io.BytesIO:
        return io.BytesIO(b"".join(encode_frame(p) for p in payloads))

    return _build


@pytest.fixture
def isolated_config(tmp_path, monkeypatch):
    """Point config lookups at a temp dir and clear PIGEON_* env vars."""
    for var in ("PIGEON_CONFIG", "PIGEON_LOG_LEVEL", "PIGEON_LOG_FILE",
                "PIGEON_TMUX_BINARY", "PIGEON_TMUX_TIMEOUT", "PIGEON_TMUX_ENTER_DELAY_MS"):
        monkeypatch.delenv(var, raising=False)
    config_path = tmp_path / "config.yaml"
    monkeypatch.setenv("PIGEON_CONFIG", str(config_path))
    return config_path
