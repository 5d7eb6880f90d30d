"""High-frequency sampling loop for hostpulse."""

import logging
import threading

from hostpulse.builder import SnapshotBuilder
from hostpulse.cache import LatestValueCache
from hostpulse.rates import PreviousSample

logger = logging.getLogger(__name__)


class Sampler:
    """
    Builds snapshots at a fixed fast tick and stores them in the cache.

    Runs in a separate daemon thread. Retains each result's counters as the
    previous sample for the next rate computation. If a build takes longer
    than the tick, the next one starts right after the wait.
    """

    def __init__(
        self,
        builder: SnapshotBuilder,
        cache: LatestValueCache,
        tick: float = 0.03,
    ) -> None:
        """
        Initialize the Sampler.

        Args:
            builder: Snapshot builder to call each tick.
            cache: Cache receiving every new snapshot.
            tick: Seconds to wait between samples. Default 0.03s.
        """
        self._builder = builder
        self._cache = cache
        self._tick = tick
        self._previous: PreviousSample | None = None
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def tick(self) -> float:
        """Get the sampling tick."""
        return self._tick

    @property
    def previous(self) -> PreviousSample | None:
        """Get the counters retained from the last sample."""
        return self._previous

    @property
    def is_running(self) -> bool:
        """Check if the sampler thread is running."""
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start the sampling thread."""
        if self.is_running:
            return

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._run,
            daemon=True,
            name="Sampler",
        )
        self._thread.start()

    def stop(self, timeout: float | None = 5.0) -> None:
        """
        Stop the sampling thread.

        Args:
            timeout: How long to wait for thread to stop (seconds).
        """
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            self._thread = None

    def sample_once(self) -> None:
        """Build one snapshot against the previous sample and publish it to the cache."""
        snapshot = self._builder.build(self._previous)
        self._cache.set(snapshot)
        self._previous = PreviousSample.from_snapshot(snapshot)

    def _run(self) -> None:
        """Main sampling loop running in the background thread."""
        while not self._stop_event.is_set():
            try:
                self.sample_once()
            except Exception:
                logger.exception("Sampling failed; retrying next tick")

            self._stop_event.wait(timeout=self._tick)
