"""Wiring of the sampler, cache, aggregator and publisher."""

import logging

from hostpulse.aggregator import Aggregator
from hostpulse.builder import SnapshotBuilder
from hostpulse.cache import LatestValueCache
from hostpulse.config import DEFAULT_CONFIG, PipelineConfig
from hostpulse.models import Snapshot
from hostpulse.providers import PlatformProvider, PsutilProvider
from hostpulse.publisher import Listener, Publisher
from hostpulse.sampler import Sampler

logger = logging.getLogger(__name__)


class TelemetryPipeline:
    """
    Telemetry pipeline: provider -> builder -> cache -> aggregator -> listeners.

    The sampler and aggregator run as two daemon threads that share only
    the cache. Use as a context manager to start and stop both.
    """

    def __init__(
        self,
        config: PipelineConfig | None = None,
        provider: PlatformProvider | None = None,
    ) -> None:
        """
        Initialize the TelemetryPipeline.

        Args:
            config: Cadence and smoothing settings. Defaults to DEFAULT_CONFIG.
            provider: Platform readings source. Defaults to PsutilProvider,
                with a second instance for on-demand snapshots so a manual
                refresh never moves the sampler's CPU baselines. A provider
                passed in is shared by both paths.
        """
        self.config = config or DEFAULT_CONFIG
        if provider is None:
            self.builder = SnapshotBuilder(PsutilProvider())
            self.on_demand_builder = SnapshotBuilder(PsutilProvider())
        else:
            self.builder = SnapshotBuilder(provider)
            self.on_demand_builder = self.builder
        self.cache = LatestValueCache()
        self.publisher = Publisher()
        self.sampler = Sampler(self.builder, self.cache, tick=self.config.sample_interval)
        self.aggregator = Aggregator(
            self.cache,
            self.publisher.publish,
            tick=self.config.sample_interval,
            emit_interval=self.config.emit_interval,
            alpha=self.config.ema_alpha,
            top_n=self.config.top_n,
        )

    @property
    def is_running(self) -> bool:
        """Check if both background threads are running."""
        return self.sampler.is_running and self.aggregator.is_running

    def subscribe(self, listener: Listener) -> None:
        """Register a listener for aggregated snapshots."""
        self.publisher.subscribe(listener)

    def unsubscribe(self, listener: Listener) -> bool:
        """Remove a listener. Returns False if it was not registered."""
        return self.publisher.unsubscribe(listener)

    def on_demand_snapshot(self) -> Snapshot:
        """
        Build a single snapshot outside the background pipeline.

        No previous sample is used, so disk rates are absent and every
        interface rate is zero. CPU usage is measured since the previous
        on-demand call (or since the pipeline was created).
        """
        return self.on_demand_builder.build(None)

    def start(self) -> None:
        """Start the sampler and aggregator threads."""
        logger.debug(
            "Starting pipeline (sample every %.3fs, emit every %.3fs)",
            self.config.sample_interval,
            self.config.emit_interval,
        )
        self.sampler.start()
        self.aggregator.start()

    def stop(self, timeout: float | None = 5.0) -> None:
        """
        Stop both threads and drop any cached sample.

        Args:
            timeout: How long to wait for each thread to stop (seconds).
        """
        self.sampler.stop(timeout=timeout)
        self.aggregator.stop(timeout=timeout)
        self.cache.clear()
        logger.debug("Pipeline stopped")

    def __enter__(self) -> "TelemetryPipeline":
        self.start()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.stop()
