"""Platform capability providers for hostpulse."""

import logging
import socket
import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass

import psutil

from hostpulse.models import DiskPartition, MemoryStats, ProcessUsage

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class CpuReading:
    """Raw CPU usage and frequency as reported by the platform."""

    global_percent: float
    per_core: tuple[float, ...]
    frequencies_mhz: tuple[float, ...] = ()


@dataclass(slots=True, frozen=True)
class InterfaceReading:
    """Raw cumulative counters and addresses for one network interface."""

    name: str
    rx_bytes: int
    tx_bytes: int
    rx_packets: int
    tx_packets: int
    ipv4: tuple[str, ...] = ()
    mac: tuple[str, ...] = ()
    speed_mbps: int | None = None


class PlatformProvider(ABC):
    """
    Capability interface over the operating system's metric sources.

    Implementations return empty or absent values for capabilities the
    platform does not support instead of raising.
    """

    @abstractmethod
    def cpu(self) -> CpuReading:
        """Return global and per-core usage plus per-core frequencies."""

    @abstractmethod
    def temperatures(self) -> list[float]:
        """Return every available sensor reading in Celsius."""

    @abstractmethod
    def processes(self) -> list[ProcessUsage]:
        """Return CPU and resident memory for each running process."""

    @abstractmethod
    def memory(self) -> MemoryStats:
        """Return physical and swap memory totals."""

    @abstractmethod
    def disks(self) -> list[DiskPartition]:
        """Return mounted partitions with their usage."""

    @abstractmethod
    def disk_io(self) -> tuple[int, int] | None:
        """Return aggregate cumulative (read, write) bytes, or None if unsupported."""

    @abstractmethod
    def network(self) -> list[InterfaceReading]:
        """Return cumulative counters and addresses for each interface."""


def _normalize_mac(address: str) -> str:
    """Normalize a hardware address to upper-case, colon-separated form."""
    return address.upper().replace("-", ":")


def _busy_and_total(times) -> tuple[float, float]:
    """Split a cpu_times() reading into busy and total seconds."""
    total = sum(times)
    # Guest time is already counted in user and nice on Linux
    total -= getattr(times, "guest", 0.0) + getattr(times, "guest_nice", 0.0)
    idle = times.idle + getattr(times, "iowait", 0.0)
    return total - idle, total


def _busy_percent(before, after) -> float:
    """Percentage of time spent busy between two cpu_times() readings."""
    busy_before, total_before = _busy_and_total(before)
    busy_after, total_after = _busy_and_total(after)
    total_delta = total_after - total_before
    if total_delta <= 0:
        return 0.0
    busy_delta = max(busy_after - busy_before, 0.0)
    return min(busy_delta / total_delta * 100.0, 100.0)


class PsutilProvider(PlatformProvider):
    """
    Platform provider backed by psutil.

    CPU percentages are computed from cpu_times() deltas against baselines
    held by this instance, not psutil's module-level cpu_percent() state,
    so two providers polled at different cadences never shorten each
    other's measurement interval.

    Handles NoSuchProcess, AccessDenied and ZombieProcess errors gracefully
    by skipping the affected process.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        """
        Initialize the provider and take the first CPU time baselines.

        Args:
            clock: Monotonic time source used for per-process CPU rates.
        """
        self._clock = clock
        self._cpu_times = psutil.cpu_times()
        self._per_cpu_times = psutil.cpu_times(percpu=True)
        self._process_times: dict[int, tuple[float, float]] = {}  # pid -> (cpu seconds, taken at)

    def cpu(self) -> CpuReading:
        """Return global and per-core usage plus per-core frequencies."""
        times = psutil.cpu_times()
        per_cpu_times = psutil.cpu_times(percpu=True)

        global_percent = _busy_percent(self._cpu_times, times)
        if len(per_cpu_times) == len(self._per_cpu_times):
            per_core = [
                _busy_percent(before, after)
                for before, after in zip(self._per_cpu_times, per_cpu_times)
            ]
        else:
            # Core hotplug; restart the per-core baselines
            per_core = [0.0] * len(per_cpu_times)
        self._cpu_times = times
        self._per_cpu_times = per_cpu_times

        frequencies: tuple[float, ...] = ()
        try:
            freqs = psutil.cpu_freq(percpu=True)
        except (AttributeError, NotImplementedError, OSError):
            freqs = None
        if freqs:
            frequencies = tuple(float(freq.current) for freq in freqs)

        return CpuReading(
            global_percent=float(global_percent),
            per_core=tuple(float(value) for value in per_core),
            frequencies_mhz=frequencies,
        )

    def temperatures(self) -> list[float]:
        """Return every available sensor reading in Celsius."""
        if not hasattr(psutil, "sensors_temperatures"):
            return []

        try:
            sensors = psutil.sensors_temperatures(fahrenheit=False)
        except (NotImplementedError, OSError):
            return []

        return [
            float(entry.current)
            for entries in sensors.values()
            for entry in entries
            if entry.current is not None
        ]

    def processes(self) -> list[ProcessUsage]:
        """
        Return CPU and resident memory for each running process.

        cpu_percent is user plus system time since this provider's previous
        call, over wall time, so it can exceed 100 on multi-core hosts. A
        process seen for the first time reports 0.0.
        """
        processes: list[ProcessUsage] = []
        seen: dict[int, tuple[float, float]] = {}
        now = self._clock()

        for proc in psutil.process_iter(attrs=["name", "cpu_times", "memory_info"]):
            try:
                info = proc.info
                cpu_percent = 0.0
                cpu_times = info.get("cpu_times")
                if cpu_times is not None:
                    cpu_seconds = cpu_times.user + cpu_times.system
                    seen[proc.pid] = (cpu_seconds, now)
                    prev = self._process_times.get(proc.pid)
                    if prev is not None and now > prev[1]:
                        cpu_percent = max(cpu_seconds - prev[0], 0.0) / (now - prev[1]) * 100.0
                mem_info = info.get("memory_info")
                processes.append(
                    ProcessUsage(
                        name=info.get("name") or "N/A",
                        cpu_percent=cpu_percent,
                        memory_rss=mem_info.rss if mem_info else 0,
                    )
                )
            except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess):
                # Process died mid-poll or is not readable
                continue

        # Exited processes drop out of the baselines
        self._process_times = seen
        return processes

    def memory(self) -> MemoryStats:
        """Return physical and swap memory totals."""
        mem = psutil.virtual_memory()
        swap = psutil.swap_memory()
        cached = getattr(mem, "cached", None)
        buffers = getattr(mem, "buffers", None)

        return MemoryStats(
            total=int(mem.total),
            used=int(mem.used),
            available=int(mem.available),
            swap_total=int(swap.total),
            swap_used=int(swap.used),
            cached=int(cached) if cached is not None else None,
            buffers=int(buffers) if buffers is not None else None,
        )

    def disks(self) -> list[DiskPartition]:
        """Return mounted partitions with their usage."""
        partitions: list[DiskPartition] = []

        for part in psutil.disk_partitions(all=False):
            try:
                usage = psutil.disk_usage(part.mountpoint)
            except OSError:
                # Mount point vanished or is not readable
                logger.debug("Skipping unreadable mount point %s", part.mountpoint)
                continue
            partitions.append(
                DiskPartition(
                    name=part.device,
                    mount_point=part.mountpoint,
                    filesystem=part.fstype or "N/A",
                    total=int(usage.total),
                    used=int(usage.used),
                )
            )

        return partitions

    def disk_io(self) -> tuple[int, int] | None:
        """Return aggregate cumulative (read, write) bytes, or None if unsupported."""
        try:
            counters = psutil.disk_io_counters(perdisk=False)
        except (NotImplementedError, OSError, RuntimeError):
            return None
        if counters is None:
            return None
        return int(counters.read_bytes), int(counters.write_bytes)

    def network(self) -> list[InterfaceReading]:
        """Return cumulative counters and addresses for each interface."""
        counters = psutil.net_io_counters(pernic=True)
        addrs = psutil.net_if_addrs()
        try:
            stats = psutil.net_if_stats()
        except OSError:
            stats = {}

        interfaces: list[InterfaceReading] = []
        for name, nic in counters.items():
            ipv4: list[str] = []
            mac: list[str] = []
            for addr in addrs.get(name, []):
                if addr.family == socket.AF_INET:
                    ipv4.append(addr.address)
                elif addr.family == psutil.AF_LINK and addr.address:
                    mac.append(_normalize_mac(addr.address))

            nic_stats = stats.get(name)
            speed = nic_stats.speed if nic_stats is not None else 0

            interfaces.append(
                InterfaceReading(
                    name=name,
                    rx_bytes=int(nic.bytes_recv),
                    tx_bytes=int(nic.bytes_sent),
                    rx_packets=int(nic.packets_recv),
                    tx_packets=int(nic.packets_sent),
                    ipv4=tuple(ipv4),
                    mac=tuple(mac),
                    speed_mbps=int(speed) if speed and speed > 0 else None,
                )
            )

        return interfaces
