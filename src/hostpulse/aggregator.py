"""Windowed aggregation and smoothing of sampled snapshots."""

import logging
import threading
import time
from collections.abc import Callable, Iterable
from dataclasses import replace

from hostpulse.cache import LatestValueCache
from hostpulse.models import CpuStats, MemoryStats, ProcessUsage, Snapshot

logger = logging.getLogger(__name__)


class ProcessSmoother:
    """
    Exponential moving average of per-process CPU usage.

    Entries are keyed by process name, so processes sharing a name share
    history and entries are never evicted.
    """

    def __init__(self, alpha: float = 0.3) -> None:
        """
        Initialize the ProcessSmoother.

        Args:
            alpha: Weight of the newest reading, in (0, 1]. Lower is smoother.
        """
        self._alpha = alpha
        self._ema: dict[str, float] = {}

    @property
    def alpha(self) -> float:
        """Get the smoothing factor."""
        return self._alpha

    def __len__(self) -> int:
        return len(self._ema)

    def update(self, processes: Iterable[ProcessUsage]) -> None:
        """Fold one reading per process into its average, seeding new entries."""
        for proc in processes:
            previous = self._ema.get(proc.name, proc.cpu_percent)
            self._ema[proc.name] = self._alpha * proc.cpu_percent + (1.0 - self._alpha) * previous

    def get(self, name: str, default: float) -> float:
        """Get the smoothed usage for a process name, or default if never seen."""
        return self._ema.get(name, default)


class WindowAccumulator:
    """
    Running sums for one emission window.

    Per-core sums keep a count per slot so a core that appears mid-window
    is averaged only over the samples that reported it. CPU, memory, disk
    rates and interface rates are each averaged over the samples that
    carried them, so a sample missing a reading contributes nothing to it.
    """

    def __init__(self) -> None:
        """Initialize an empty accumulator."""
        self.reset()

    def reset(self) -> None:
        """Clear all sums and the structural bases."""
        self.count = 0
        self._cpu_count = 0
        self._cpu_global_sum = 0.0
        self._per_core_sums: list[float] = []
        self._per_core_counts: list[int] = []
        self._mem_count = 0
        self._mem_used_sum = 0
        self._mem_available_sum = 0
        self._disk_read_sum = 0.0
        self._disk_write_sum = 0.0
        self._disk_count = 0
        self._net_sums: dict[str, list[float]] = {}  # name -> [rx_sum, tx_sum, count]
        self._last: Snapshot | None = None
        # Last readings that were actually present, for structural fields
        self._last_cpu: CpuStats | None = None
        self._last_mem: MemoryStats | None = None

    @property
    def has_disk_io(self) -> bool:
        """Whether any sample this window carried disk rates."""
        return self._disk_count > 0

    def fold(self, snapshot: Snapshot) -> None:
        """Add one sample to the running sums."""
        self.count += 1

        cpu = snapshot.cpu
        if cpu is not None:
            self._cpu_count += 1
            self._cpu_global_sum += cpu.global_percent
            self._fold_per_core(cpu.per_core)
            self._last_cpu = cpu

        mem = snapshot.mem
        if mem is not None:
            self._mem_count += 1
            self._mem_used_sum += mem.used
            self._mem_available_sum += mem.available
            self._last_mem = mem

        disk = snapshot.disk
        if disk.read_bps is not None and disk.write_bps is not None:
            self._disk_read_sum += disk.read_bps
            self._disk_write_sum += disk.write_bps
            self._disk_count += 1

        for nic in snapshot.net:
            sums = self._net_sums.setdefault(nic.name, [0.0, 0.0, 0])
            sums[0] += nic.rx_bps
            sums[1] += nic.tx_bps
            sums[2] += 1

        self._last = snapshot

    def _fold_per_core(self, per_core: tuple[float, ...]) -> None:
        """Add one per-core vector, resizing the sums if the core count changed."""
        cores = len(per_core)
        if cores == 0:
            return
        if cores > len(self._per_core_sums):
            grow = cores - len(self._per_core_sums)
            self._per_core_sums.extend([0.0] * grow)
            self._per_core_counts.extend([0] * grow)
        elif cores < len(self._per_core_sums):
            del self._per_core_sums[cores:]
            del self._per_core_counts[cores:]
        for i, value in enumerate(per_core):
            self._per_core_sums[i] += value
            self._per_core_counts[i] += 1

    def reduce(self, smoother: ProcessSmoother, top_n: int) -> Snapshot | None:
        """
        Build the averaged snapshot for this window.

        The last folded sample supplies the structure (partitions, interface
        list); the last CPU and memory readings that were present supply
        theirs (core count, totals, process candidates). Scalar fields are
        replaced with the window averages and the top list with EMA-smoothed
        values. CPU or memory stays None only if no sample carried it.

        Returns:
            The aggregated snapshot, or None if nothing was folded.
        """
        base = self._last
        if self.count == 0 or base is None:
            return None

        cpu = None
        if self._last_cpu is not None:
            per_core = tuple(
                total / seen for total, seen in zip(self._per_core_sums, self._per_core_counts)
            )
            top = [
                replace(proc, cpu_percent=smoother.get(proc.name, proc.cpu_percent))
                for proc in self._last_cpu.top
            ]
            top.sort(key=lambda p: p.cpu_percent, reverse=True)
            cpu = replace(
                self._last_cpu,
                global_percent=self._cpu_global_sum / self._cpu_count,
                per_core=per_core,
                top=tuple(top[:top_n]),
            )

        mem = None
        if self._last_mem is not None:
            mem = replace(
                self._last_mem,
                used=self._mem_used_sum // self._mem_count,
                available=self._mem_available_sum // self._mem_count,
            )

        disk = base.disk
        if self.has_disk_io:
            disk = replace(
                disk,
                read_bps=self._disk_read_sum / self._disk_count,
                write_bps=self._disk_write_sum / self._disk_count,
            )

        net = []
        for nic in base.net:
            sums = self._net_sums.get(nic.name)
            if sums is not None:
                rx_sum, tx_sum, seen = sums
                nic = replace(nic, rx_bps=rx_sum / seen, tx_bps=tx_sum / seen)
            net.append(nic)

        return replace(base, cpu=cpu, mem=mem, disk=disk, net=tuple(net))


class Aggregator:
    """
    Folds the cache's latest snapshot every tick and emits window averages.

    Runs in a separate daemon thread. The process EMA persists across
    windows; every other sum is reset on each emission. A window in which
    nothing was folded publishes nothing, and the emit timer still restarts.
    """

    def __init__(
        self,
        cache: LatestValueCache,
        publish: Callable[[Snapshot], None],
        tick: float = 0.03,
        emit_interval: float = 1.5,
        alpha: float = 0.3,
        top_n: int = 10,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """
        Initialize the Aggregator.

        Args:
            cache: Cache to read the latest sample from.
            publish: Receives each aggregated snapshot. Errors are logged, not raised.
            tick: Seconds between cache polls. Default 0.03s.
            emit_interval: Seconds between emissions. Default 1.5s.
            alpha: EMA weight for per-process CPU smoothing.
            top_n: Length cap of the emitted top-process list.
            clock: Monotonic time source in seconds.
        """
        self._cache = cache
        self._publish = publish
        self._tick = tick
        self._emit_interval = emit_interval
        self._top_n = top_n
        self._clock = clock
        self._accumulator = WindowAccumulator()
        self._smoother = ProcessSmoother(alpha)
        self._last_emit = clock()
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def accumulator(self) -> WindowAccumulator:
        """Get the current window's accumulator."""
        return self._accumulator

    @property
    def smoother(self) -> ProcessSmoother:
        """Get the per-process EMA."""
        return self._smoother

    @property
    def is_running(self) -> bool:
        """Check if the aggregator thread is running."""
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start the aggregation thread with a fresh emit timer."""
        if self.is_running:
            return

        self._stop_event.clear()
        self._accumulator.reset()
        self._last_emit = self._clock()
        self._thread = threading.Thread(
            target=self._run,
            daemon=True,
            name="Aggregator",
        )
        self._thread.start()

    def stop(self, timeout: float | None = 5.0) -> None:
        """
        Stop the aggregation thread.

        Args:
            timeout: How long to wait for thread to stop (seconds).
        """
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            self._thread = None

    def poll(self, now: float | None = None) -> Snapshot | None:
        """
        Run one tick: fold the cached sample, then emit if the window elapsed.

        Args:
            now: Current time; read from the clock if omitted.

        Returns:
            The snapshot published this tick, if any.
        """
        snapshot = self._cache.get()
        if snapshot is not None:
            self._accumulator.fold(snapshot)
            if snapshot.cpu is not None:
                self._smoother.update(snapshot.cpu.top)

        if now is None:
            now = self._clock()
        if now - self._last_emit < self._emit_interval:
            return None

        result = self._accumulator.reduce(self._smoother, self._top_n)
        if result is not None:
            try:
                self._publish(result)
            except Exception:
                logger.exception("Publishing aggregated snapshot failed")

        self._accumulator.reset()
        self._last_emit = now
        return result

    def _run(self) -> None:
        """Main aggregation loop running in the background thread."""
        while not self._stop_event.wait(timeout=self._tick):
            try:
                self.poll()
            except Exception:
                logger.exception("Aggregation tick failed")
