"""Update admission policy.

Decides whether a freshly sampled snapshot replaces the published one.
"""

from typing import Optional

from .models import Snapshot

# Published snapshots never get older than this while the feed is alive.
HEARTBEAT_SECONDS = 5


def metadata_changed(candidate: Snapshot, last_published: Snapshot) -> bool:
    """True when the track identity or artwork differs."""
    return (
        candidate.title != last_published.title
        or candidate.artist != last_published.artist
        or candidate.album != last_published.album
        or candidate.artwork_uri != last_published.artwork_uri
    )


def admit(
    candidate: Snapshot,
    last_published: Snapshot,
    last_published_position: Optional[int],
    now: float,
) -> bool:
    """Return True if the candidate should be published.

    Publish when any of these hold:

    1. Play state changed.
    2. Reported position changed (seeks and normal progress).
    3. Title, artist, album or artwork changed.
    4. The published snapshot is more than HEARTBEAT_SECONDS old.

    ``now`` is the current wall-clock time in seconds; fractional seconds are
    compared against the whole-second publish stamp so that a heartbeat fires
    as soon as the stamp is five seconds behind.

    Args:
        candidate: Snapshot built from the latest sample.
        last_published: Snapshot currently held by the store.
        last_published_position: Position of the last published snapshot.
        now: Current epoch time in seconds.

    Returns:
        bool: Whether to publish the candidate.
    """
    if candidate.is_playing != last_published.is_playing:
        return True

    if candidate.position_seconds != last_published_position:
        return True

    if metadata_changed(candidate, last_published):
        return True

    return now - last_published.published_at_epoch_seconds > HEARTBEAT_SECONDS
