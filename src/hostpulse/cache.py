"""Single-slot latest-value cache shared by the sampler and aggregator."""

import threading

from hostpulse.models import Snapshot


class LatestValueCache:
    """
    Thread-safe cell holding only the most recently set Snapshot.

    Writes overwrite the slot. If the reader is slower than the writer,
    intermediate snapshots are dropped.
    """

    def __init__(self) -> None:
        """Initialize an empty cache."""
        self._lock = threading.Lock()
        self._value: Snapshot | None = None

    def set(self, snapshot: Snapshot) -> None:
        """Overwrite the stored snapshot."""
        with self._lock:
            self._value = snapshot

    def get(self) -> Snapshot | None:
        """Return the latest snapshot without clearing it, or None if empty."""
        with self._lock:
            return self._value

    def clear(self) -> None:
        """Empty the slot."""
        with self._lock:
            self._value = None
