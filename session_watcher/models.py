"""Value types shared by the probe, sampler, store and API."""

from dataclasses import asdict, dataclass
from enum import IntEnum
from typing import Any, Callable, Dict, Optional

# Provider timeline units are 100 ns ticks.
TICKS_PER_SECOND = 10_000_000


class PlaybackStatus(IntEnum):
    """Raw playback status values reported by the media session provider."""

    CLOSED = 0
    OPENED = 1
    CHANGING = 2
    STOPPED = 3
    PLAYING = 4
    PAUSED = 5


@dataclass(frozen=True)
class SessionSample:
    """One point-in-time read of the current media session.

    Attributes:
        title: Raw title string.
        artist: Raw artist string.
        album: Raw album title string.
        playback_status: Raw status code from the provider.
        position_ticks: Playback position in provider ticks, None without a timeline.
        end_time_ticks: Timeline end in provider ticks, None without a timeline.
        read_artwork: Reads the thumbnail bytes given a byte limit, None when
            the session offers no artwork.
    """

    title: str = ""
    artist: str = ""
    album: str = ""
    playback_status: int = PlaybackStatus.CLOSED
    position_ticks: Optional[int] = None
    end_time_ticks: Optional[int] = None
    read_artwork: Optional[Callable[[int], bytes]] = None


@dataclass(frozen=True)
class Snapshot:
    """What a reader should currently see.

    Never mutated after construction; the store swaps whole values.
    """

    title: str = ""
    artist: str = ""
    album: str = ""
    artwork_uri: Optional[str] = None
    position_seconds: Optional[int] = None
    duration_seconds: Optional[int] = None
    progress_percent: Optional[float] = None
    is_playing: bool = False
    published_at_epoch_seconds: int = 0

    @classmethod
    def empty(cls, published_at: int = 0) -> "Snapshot":
        """Snapshot for "no session": every field unknown, not playing."""
        return cls(published_at_epoch_seconds=published_at)

    @property
    def has_timeline(self) -> bool:
        return self.duration_seconds is not None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
