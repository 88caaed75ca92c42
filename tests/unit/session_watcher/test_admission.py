"""Unit tests for the update admission policy."""

from dataclasses import replace

import pytest

from session_watcher.admission import HEARTBEAT_SECONDS, admit, metadata_changed
from session_watcher.models import Snapshot

PUBLISHED_AT = 1_700_000_000


@pytest.fixture
def published():
    """A playing snapshot published at PUBLISHED_AT."""
    return Snapshot(
        title="Song",
        artist="Artist",
        album="Album",
        position_seconds=42,
        duration_seconds=200,
        progress_percent=21.0,
        is_playing=True,
        published_at_epoch_seconds=PUBLISHED_AT,
    )


class TestAdmit:
    """Test each publish rule in isolation."""

    def test_identical_candidate_within_heartbeat_rejected(self, published):
        candidate = replace(published, published_at_epoch_seconds=PUBLISHED_AT + 1)

        assert admit(candidate, published, 42, PUBLISHED_AT + 1.5) is False

    def test_play_state_change_admitted(self, published):
        candidate = replace(published, is_playing=False)

        assert admit(candidate, published, 42, PUBLISHED_AT) is True

    def test_play_state_change_admitted_even_with_same_position(self, published):
        paused = replace(published, is_playing=False)
        candidate = replace(paused, is_playing=True)

        assert admit(candidate, paused, paused.position_seconds, PUBLISHED_AT + 0.1) is True

    def test_position_change_admitted(self, published):
        candidate = replace(published, position_seconds=43)

        assert admit(candidate, published, 42, PUBLISHED_AT) is True

    def test_seek_backwards_admitted(self, published):
        candidate = replace(published, position_seconds=3)

        assert admit(candidate, published, 42, PUBLISHED_AT) is True

    def test_position_compared_against_given_reference(self, published):
        """The last published position is passed separately from the snapshot."""
        assert admit(published, published, 41, PUBLISHED_AT) is True

    def test_timeline_disappearing_admitted(self, published):
        candidate = replace(
            published, position_seconds=None, duration_seconds=None, progress_percent=None
        )

        assert admit(candidate, published, 42, PUBLISHED_AT) is True

    @pytest.mark.parametrize("field", ["title", "artist", "album"])
    def test_metadata_change_admitted(self, published, field):
        candidate = replace(published, **{field: "Something Else"})

        assert admit(candidate, published, 42, PUBLISHED_AT) is True

    def test_artwork_change_admitted(self, published):
        candidate = replace(published, artwork_uri="data:image/jpeg;base64,AAAA")

        assert admit(candidate, published, 42, PUBLISHED_AT) is True

    def test_heartbeat_not_due_at_exactly_five_seconds(self, published):
        assert admit(published, published, 42, PUBLISHED_AT + HEARTBEAT_SECONDS) is False

    def test_heartbeat_due_after_five_seconds(self, published):
        assert admit(published, published, 42, PUBLISHED_AT + HEARTBEAT_SECONDS + 0.1) is True

    def test_duration_change_alone_not_a_trigger(self, published):
        candidate = replace(published, duration_seconds=201, progress_percent=20.9)

        assert admit(candidate, published, 42, PUBLISHED_AT + 1) is False


class TestNoSessionClearing:
    """A vanished session is evaluated like any other candidate."""

    def test_empty_snapshot_replaces_track(self, published):
        candidate = Snapshot.empty(PUBLISHED_AT + 1)

        assert admit(candidate, published, 42, PUBLISHED_AT + 1) is True

    def test_empty_after_empty_only_on_heartbeat(self):
        last = Snapshot.empty(PUBLISHED_AT)

        assert admit(Snapshot.empty(PUBLISHED_AT + 3), last, None, PUBLISHED_AT + 3) is False
        assert admit(Snapshot.empty(PUBLISHED_AT + 6), last, None, PUBLISHED_AT + 6) is True


class TestMetadataChanged:
    def test_same_metadata(self, published):
        assert metadata_changed(replace(published, position_seconds=1), published) is False

    def test_artwork_removed(self, published):
        with_art = replace(published, artwork_uri="data:image/jpeg;base64,AAAA")

        assert metadata_changed(published, with_art) is True
