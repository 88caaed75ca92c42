"""
Pytest configuration and shared fixtures for all tests
"""

import os
import sys
import pytest

# Add project root to Python path
project_root = os.path.dirname(os.path.abspath(__file__))
sys.path.insert(0, os.path.dirname(project_root))

from session_watcher.models import TICKS_PER_SECOND, PlaybackStatus, SessionSample  # noqa: E402
from session_watcher.probe import SessionProbe  # noqa: E402


class ScriptedProbe(SessionProbe):
    """Probe returning queued results; the last one repeats once the queue drains."""

    name = "scripted"

    def __init__(self, *results):
        self.results = list(results)
        self.calls = 0
        self.opened = False
        self.closed = False

    def push(self, *results):
        self.results.extend(results)

    def open(self):
        self.opened = True

    def close(self):
        self.closed = True

    def sample(self):
        self.calls += 1
        if not self.results:
            return None
        if len(self.results) > 1:
            return self.results.pop(0)
        return self.results[0]


class FakeClock:
    """Settable wall clock in epoch seconds."""

    def __init__(self, now=1_700_000_000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def make_sample():
    """Factory for SessionSample with sensible defaults (seconds, not ticks)."""

    def _make(
        title="Test Song",
        artist="Test Artist",
        album="Test Album",
        playing=True,
        position=65,
        duration=130,
        artwork=None,
    ):
        status = PlaybackStatus.PLAYING if playing else PlaybackStatus.PAUSED
        read_artwork = None
        if artwork is not None:
            read_artwork = artwork if callable(artwork) else (lambda limit: artwork)

        return SessionSample(
            title=title,
            artist=artist,
            album=album,
            playback_status=status,
            position_ticks=None if position is None else position * TICKS_PER_SECOND,
            end_time_ticks=None if duration is None else duration * TICKS_PER_SECOND,
            read_artwork=read_artwork,
        )

    return _make


@pytest.fixture
def scripted_probe():
    """An empty ScriptedProbe (reports no session until results are pushed)."""
    return ScriptedProbe()


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture(scope="session")
def test_env_vars(tmp_path_factory):
    """Provide test environment variables."""
    config_dir = tmp_path_factory.mktemp("config")
    return {
        "LISTEN_ADDRESS": "127.0.0.1",
        "LISTEN_PORT": "3030",
        "ASSET_ROOT": "",
        "PROBE": "null",
        "LOG_LEVEL": "DEBUG",
        "LOG_PATH": "",
        "ENVIRONMENT": "testing",
        "DEBUG": "false",
        "CONFIG_FILE": str(config_dir / "missing.toml"),
        "CONFIG_REFRESH_INTERVAL": "0.05",
    }


@pytest.fixture
def mock_env(monkeypatch, test_env_vars):
    """Mock environment variables for testing."""
    for key, value in test_env_vars.items():
        monkeypatch.setenv(key, value)
