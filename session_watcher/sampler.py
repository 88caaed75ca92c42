"""Background sampler loop.

Polls the media session probe, normalizes each sample into a Snapshot and
publishes it to the store when the admission policy says so.
"""

import base64
import logging
import threading
import time
from typing import Callable, Optional, Tuple

from .admission import admit
from .models import TICKS_PER_SECOND, PlaybackStatus, SessionSample, Snapshot
from .probe import SessionProbe
from .store import SnapshotStore

logger = logging.getLogger(__name__)

PLAYING_INTERVAL = 0.1  # seconds between ticks while playing
IDLE_INTERVAL = 0.2  # seconds between ticks otherwise
MAX_ARTWORK_BYTES = 10 * 1024 * 1024  # 10 MiB
ARTWORK_MIME_TYPE = "image/jpeg"


def normalize_timeline(
    position_ticks: Optional[int], end_time_ticks: Optional[int]
) -> Tuple[Optional[int], Optional[int], Optional[float]]:
    """Convert raw timeline ticks to (position, duration, progress).

    Seconds are truncated, progress is rounded to one decimal and capped at
    100. A zero duration means the timeline is unknown and all three values
    are None.
    """
    if position_ticks is None or end_time_ticks is None:
        return None, None, None

    position = max(position_ticks, 0) // TICKS_PER_SECOND
    duration = max(end_time_ticks, 0) // TICKS_PER_SECOND
    if duration == 0:
        return None, None, None

    progress = min(round(position / duration * 100, 1), 100.0)
    return position, duration, progress


def artwork_data_uri(data: bytes) -> str:
    encoded = base64.b64encode(data).decode("ascii")
    return f"data:{ARTWORK_MIME_TYPE};base64,{encoded}"


class Sampler:
    """Single worker that keeps the snapshot store in sync with the media session."""

    def __init__(
        self,
        probe: SessionProbe,
        store: SnapshotStore,
        clock: Callable[[], float] = time.time,
        playing_interval: float = PLAYING_INTERVAL,
        idle_interval: float = IDLE_INTERVAL,
        max_artwork_bytes: int = MAX_ARTWORK_BYTES,
    ):
        """Initialize the sampler.

        Args:
            probe: Opened media session probe.
            store: Store receiving published snapshots.
            clock: Wall-clock source in epoch seconds.
            playing_interval: Tick interval while the published snapshot is playing.
            idle_interval: Tick interval otherwise.
            max_artwork_bytes: Artwork payloads above this size are dropped.
        """
        self.probe = probe
        self.store = store
        self.clock = clock
        self.playing_interval = playing_interval
        self.idle_interval = idle_interval
        self.max_artwork_bytes = max_artwork_bytes

        self._last_position = store.read().position_seconds
        self._had_session: Optional[bool] = None
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Run the loop on a daemon thread."""
        if self.is_running:
            return

        self._stop_event.clear()
        self._thread = threading.Thread(target=self.run, name="session-sampler", daemon=True)
        self._thread.start()

    def stop(self, timeout: float = 2.0) -> None:
        """Ask the loop to exit and wait for the thread."""
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    def run(self) -> None:
        logger.info(f"Sampler started (probe={self.probe.name})")

        while not self._stop_event.is_set():
            try:
                self.tick()
            except Exception as e:
                logger.error(f"Error in sampler tick: {e}", exc_info=True)

            self._stop_event.wait(self.next_interval())

        logger.info("Sampler stopped")

    def next_interval(self) -> float:
        """Tick faster only while the published snapshot reports playback."""
        if self.store.read().is_playing:
            return self.playing_interval
        return self.idle_interval

    def tick(self) -> bool:
        """Sample once and publish if admitted.

        Returns:
            bool: True if a new snapshot was published.
        """
        sample = self.probe.sample()
        now = self.clock()
        self._log_session_transition(sample)

        candidate = self.normalize(sample, int(now))
        last_published = self.store.read()

        if not admit(candidate, last_published, self._last_position, now):
            return False

        self.store.write(candidate)
        self._last_position = candidate.position_seconds
        return True

    def normalize(self, sample: Optional[SessionSample], published_at: int) -> Snapshot:
        """Build the candidate Snapshot for one probe result."""
        if sample is None:
            return Snapshot.empty(published_at)

        position, duration, progress = normalize_timeline(
            sample.position_ticks, sample.end_time_ticks
        )

        return Snapshot(
            title=sample.title or "",
            artist=sample.artist or "",
            album=sample.album or "",
            artwork_uri=self._read_artwork(sample),
            position_seconds=position,
            duration_seconds=duration,
            progress_percent=progress,
            is_playing=sample.playback_status == PlaybackStatus.PLAYING,
            published_at_epoch_seconds=published_at,
        )

    def _read_artwork(self, sample: SessionSample) -> Optional[str]:
        if sample.read_artwork is None:
            return None

        try:
            data = sample.read_artwork(self.max_artwork_bytes)
        except Exception as e:
            logger.debug(f"Artwork skipped: {e}")
            return None

        if not data:
            return None

        if len(data) > self.max_artwork_bytes:
            logger.debug(f"Artwork skipped: {len(data)} bytes exceeds {self.max_artwork_bytes}")
            return None

        return artwork_data_uri(data)

    def _log_session_transition(self, sample: Optional[SessionSample]) -> None:
        has_session = sample is not None
        if has_session == self._had_session:
            return

        if has_session:
            logger.info(f"Media session found: {sample.artist} - {sample.title}")
        elif self._had_session:
            logger.info("Media session closed")
        self._had_session = has_session
