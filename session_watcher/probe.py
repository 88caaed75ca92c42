"""Adapters around the OS media session provider.

A probe answers one question per call: what does the current media session
look like right now? It never raises from ``sample()``; any provider failure
is reported as "no session" so the sampler keeps running when an app closes
between two lookups.
"""

import asyncio
import logging
import sys
from abc import ABC, abstractmethod
from datetime import timedelta
from functools import partial
from typing import Optional

from .exceptions import ArtworkTooLargeError, ArtworkUnreadableError, ProbeUnavailableError
from .models import TICKS_PER_SECOND, SessionSample

try:
    from winsdk.windows.media.control import (
        GlobalSystemMediaTransportControlsSessionManager as MediaManager,
    )
    from winsdk.windows.storage.streams import DataReader
except ImportError:  # winsdk not installed or not on Windows
    MediaManager = None
    DataReader = None

logger = logging.getLogger(__name__)

PROBE_NAMES = ("auto", "windows", "null")


def timespan_ticks(value) -> Optional[int]:
    """Convert a provider TimeSpan to 100 ns ticks."""
    if value is None:
        return None
    if isinstance(value, timedelta):
        return (value // timedelta(microseconds=1)) * (TICKS_PER_SECOND // 1_000_000)
    # Some WinRT bindings expose the raw tick count as "duration".
    return int(value.duration)


class SessionProbe(ABC):
    """Base class for media session probes."""

    name = "base"

    def open(self) -> None:
        """Acquire the provider. Raises ProbeUnavailableError on failure."""

    @abstractmethod
    def sample(self) -> Optional[SessionSample]:
        """Return the current session, or None when nothing is playing."""

    def close(self) -> None:
        """Release the provider."""


class NullSessionProbe(SessionProbe):
    """Probe for hosts without a media session provider: nothing is ever playing."""

    name = "null"

    def sample(self) -> Optional[SessionSample]:
        return None


class WindowsSessionProbe(SessionProbe):
    """Reads the current session from Windows Global System Media Transport Controls.

    The WinRT calls are awaitables; the probe owns a private event loop and
    drives them synchronously from the sampler thread.
    """

    name = "windows"

    def __init__(self):
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._manager = None

    def open(self) -> None:
        if MediaManager is None:
            raise ProbeUnavailableError("winsdk media control bindings are not available")

        self._loop = asyncio.new_event_loop()
        try:
            self._manager = self._loop.run_until_complete(MediaManager.request_async())
        except Exception as e:
            self.close()
            raise ProbeUnavailableError(f"Failed to get session manager: {e}") from e

        logger.info("Windows media session manager acquired")

    def close(self) -> None:
        self._manager = None
        if self._loop is not None:
            self._loop.close()
            self._loop = None

    def sample(self) -> Optional[SessionSample]:
        if self._manager is None or self._loop is None:
            return None

        try:
            return self._loop.run_until_complete(self._sample_async())
        except Exception as e:
            logger.debug(f"Session probe failed: {e}")
            return None

    async def _sample_async(self) -> Optional[SessionSample]:
        session = self._manager.get_current_session()
        if session is None:
            return None

        info = await session.try_get_media_properties_async()
        playback = session.get_playback_info()
        timeline = session.get_timeline_properties()

        thumbnail = getattr(info, "thumbnail", None)
        read_artwork = partial(self._read_thumbnail, thumbnail) if thumbnail else None

        return SessionSample(
            title=info.title or "",
            artist=info.artist or "",
            album=info.album_title or "",
            playback_status=int(playback.playback_status),
            position_ticks=timespan_ticks(timeline.position),
            end_time_ticks=timespan_ticks(timeline.end_time),
            read_artwork=read_artwork,
        )

    def _read_thumbnail(self, thumbnail, limit: int) -> bytes:
        if self._loop is None:
            raise ArtworkUnreadableError("Probe is closed")
        return self._loop.run_until_complete(self._read_thumbnail_async(thumbnail, limit))

    async def _read_thumbnail_async(self, thumbnail, limit: int) -> bytes:
        try:
            stream = await thumbnail.open_read_async()
        except Exception as e:
            raise ArtworkUnreadableError(f"Failed to open thumbnail: {e}") from e

        try:
            size = int(stream.size)
            if size > limit:
                raise ArtworkTooLargeError(size, limit)

            reader = DataReader(stream)
            try:
                loaded = await reader.load_async(size)
                data = bytearray(loaded)
                reader.read_bytes(data)
            finally:
                reader.close()
            return bytes(data)
        except ArtworkTooLargeError:
            raise
        except Exception as e:
            raise ArtworkUnreadableError(f"Failed to read thumbnail: {e}") from e
        finally:
            stream.close()


def create_probe(name: str = "auto") -> SessionProbe:
    """Build the probe selected by configuration.

    Args:
        name: One of "auto", "windows" or "null".

    Raises:
        ProbeUnavailableError: If no provider exists for this platform.
    """
    if name == "null":
        return NullSessionProbe()

    if name == "windows" or (name == "auto" and sys.platform == "win32"):
        return WindowsSessionProbe()

    if name == "auto":
        raise ProbeUnavailableError(
            f"No media session provider for platform '{sys.platform}' (set PROBE=null to serve an empty feed)"
        )

    raise ProbeUnavailableError(f"Unknown probe '{name}'. Must be one of: {', '.join(PROBE_NAMES)}")
