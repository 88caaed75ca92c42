"""Shared snapshot store bridging the sampler thread and API readers."""

import threading
from typing import Optional, Tuple

from .models import Snapshot


class SnapshotStore:
    """Holds exactly one published Snapshot.

    One writer (the sampler) and any number of concurrent readers. The held
    value is immutable and replaced by a single reference assignment, so
    readers take no lock and always see either the previous or the next
    snapshot in full. The write lock only serializes writers.
    """

    def __init__(self, initial: Optional[Snapshot] = None):
        self._write_lock = threading.Lock()
        self._slot: Tuple[int, Snapshot] = (0, initial or Snapshot.empty())

    def read(self) -> Snapshot:
        """Return the currently published snapshot."""
        return self._slot[1]

    def read_versioned(self) -> Tuple[int, Snapshot]:
        """Return (version, snapshot) taken from the same write."""
        return self._slot

    @property
    def version(self) -> int:
        """Number of writes since construction."""
        return self._slot[0]

    def write(self, snapshot: Snapshot) -> int:
        """Replace the published snapshot.

        Args:
            snapshot: New value to publish.

        Returns:
            int: Version number of the new value.
        """
        if not isinstance(snapshot, Snapshot):
            raise TypeError(f"Expected Snapshot, got {type(snapshot).__name__}")

        with self._write_lock:
            version = self._slot[0] + 1
            self._slot = (version, snapshot)
        return version
