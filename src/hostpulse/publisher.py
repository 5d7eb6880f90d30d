"""Fire-and-forget delivery of aggregated snapshots to listeners."""

import logging
import threading
from collections.abc import Callable

from hostpulse.models import Snapshot

logger = logging.getLogger(__name__)

Listener = Callable[[Snapshot], None]


class Publisher:
    """
    Fans snapshots out to zero or more listeners.

    A listener that raises is logged and skipped; delivery to the others
    continues and nothing propagates back to the caller.
    """

    def __init__(self) -> None:
        """Initialize a publisher with no listeners."""
        self._lock = threading.Lock()
        self._listeners: list[Listener] = []

    def __len__(self) -> int:
        with self._lock:
            return len(self._listeners)

    def subscribe(self, listener: Listener) -> None:
        """Register a listener; it is called from the aggregator thread."""
        if not callable(listener):
            raise TypeError("listener must be callable")
        with self._lock:
            self._listeners.append(listener)

    def unsubscribe(self, listener: Listener) -> bool:
        """Remove a listener. Returns False if it was not registered."""
        with self._lock:
            try:
                self._listeners.remove(listener)
            except ValueError:
                return False
            return True

    def publish(self, snapshot: Snapshot) -> None:
        """Deliver a snapshot to every registered listener."""
        with self._lock:
            listeners = list(self._listeners)

        for listener in listeners:
            try:
                listener(snapshot)
            except Exception:
                logger.exception("Snapshot listener %r failed", listener)
