"""Integration tests for the session watcher service.

These tests run the real sampler thread behind the FastAPI app and observe
the feed the way a viewer page would, by polling /api/now.
"""

import time
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from session_watcher.models import TICKS_PER_SECOND, PlaybackStatus, SessionSample
from session_watcher.probe import NullSessionProbe


@pytest.fixture
def app_module():
    import session_watcher.app as app_module

    app_module.config_watcher = None
    yield app_module
    app_module.config_watcher = None


def poll_until(client, predicate, timeout=3.0):
    """Poll /api/now until predicate(data) holds or the timeout expires."""
    deadline = time.time() + timeout
    data = client.get("/api/now").json()
    while not predicate(data) and time.time() < deadline:
        time.sleep(0.02)
        data = client.get("/api/now").json()
    return data


class TestNothingPlaying:
    def test_empty_feed(self, mock_env, app_module):
        """Starting with nothing playing serves an empty, paused snapshot."""
        with TestClient(app_module.app) as client:
            assert isinstance(app_module.probe, NullSessionProbe)

            response = client.get("/api/now")

        assert response.status_code == 200
        data = response.json()
        assert data["is_playing"] is False
        assert data["title"] == ""
        assert data["artist"] == ""
        assert data["album"] == ""
        assert data["position_seconds"] is None
        assert data["duration_seconds"] is None
        assert data["progress_percent"] is None
        assert data["artwork_uri"] is None

    def test_published_at_is_recent(self, mock_env, app_module):
        with TestClient(app_module.app) as client:
            data = client.get("/api/now").json()

        assert abs(data["published_at_epoch_seconds"] - time.time()) < 10


class TestSessionLifecycle:
    def test_track_pause_and_close(self, mock_env, app_module, scripted_probe, make_sample):
        with patch("session_watcher.app.create_probe", return_value=scripted_probe):
            with TestClient(app_module.app) as client:
                scripted_probe.push(make_sample(artwork=b"\x89PNG"))
                playing = poll_until(client, lambda d: d["is_playing"])

                scripted_probe.results[:] = [make_sample(playing=False)]
                paused = poll_until(client, lambda d: not d["is_playing"])

                scripted_probe.results[:] = [None]
                cleared = poll_until(client, lambda d: d["title"] == "")

        assert playing["title"] == "Test Song"
        assert playing["position_seconds"] == 65
        assert playing["duration_seconds"] == 130
        assert playing["progress_percent"] == 50.0
        assert playing["artwork_uri"].startswith("data:image/jpeg;base64,")

        assert paused["title"] == "Test Song"
        assert paused["is_playing"] is False

        assert cleared["artist"] == ""
        assert cleared["album"] == ""
        assert cleared["position_seconds"] is None
        assert cleared["duration_seconds"] is None
        assert cleared["progress_percent"] is None
        assert cleared["is_playing"] is False

    def test_progress_follows_position(self, mock_env, app_module, scripted_probe):
        def sample(position):
            return SessionSample(
                title="Song",
                playback_status=PlaybackStatus.PLAYING,
                position_ticks=position * TICKS_PER_SECOND,
                end_time_ticks=200 * TICKS_PER_SECOND,
            )

        with patch("session_watcher.app.create_probe", return_value=scripted_probe):
            with TestClient(app_module.app) as client:
                scripted_probe.push(sample(10))
                poll_until(client, lambda d: d["position_seconds"] == 10)

                scripted_probe.results[:] = [sample(100)]
                data = poll_until(client, lambda d: d["position_seconds"] == 100)

        assert data["progress_percent"] == 50.0

    def test_timeline_without_duration(self, mock_env, app_module, scripted_probe, make_sample):
        with patch("session_watcher.app.create_probe", return_value=scripted_probe):
            with TestClient(app_module.app) as client:
                scripted_probe.push(make_sample(title="Live Stream", position=30, duration=0))
                data = poll_until(client, lambda d: d["title"] == "Live Stream")

        assert data["position_seconds"] is None
        assert data["duration_seconds"] is None
        assert data["progress_percent"] is None
