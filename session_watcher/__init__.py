"""Session Watcher: the OS media session as a local JSON feed.

A background sampler polls the current media session (title, artist, album,
artwork, timeline, play state), an admission policy decides which samples
replace the published snapshot, and a FastAPI app serves that snapshot at
``/api/now`` together with the bundled viewer pages.
"""

__version__ = "1.0.0"

from .admission import admit
from .config import Config
from .models import PlaybackStatus, SessionSample, Snapshot
from .sampler import Sampler
from .store import SnapshotStore

__all__ = ["Config", "PlaybackStatus", "Sampler", "SessionSample", "Snapshot", "SnapshotStore", "admit"]
