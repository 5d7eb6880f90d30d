"""Snapshot construction from platform readings."""

import logging
import time
from collections.abc import Callable
from typing import TypeVar

from hostpulse.models import CpuStats, DiskStats, InterfaceStats, Snapshot
from hostpulse.providers import PlatformProvider
from hostpulse.rates import PreviousSample, rate_per_second

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SnapshotBuilder:
    """
    Builds one fully-populated Snapshot per call.

    Holds no aggregation state: rates are computed only against the
    PreviousSample passed in. A provider call that fails degrades to an
    empty or absent field for that cycle; failed CPU or memory queries
    leave Snapshot.cpu or Snapshot.mem as None rather than zero.
    """

    def __init__(
        self,
        provider: PlatformProvider,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """
        Initialize the SnapshotBuilder.

        Args:
            provider: Source of platform readings.
            clock: Monotonic time source in seconds, shared with PreviousSample.
        """
        self._provider = provider
        self._clock = clock

    def build(self, previous: PreviousSample | None = None) -> Snapshot:
        """
        Query the provider once and return a snapshot.

        Args:
            previous: Counters from the prior sample. Without it, or when no
                time has passed since it, every rate field is absent (disk)
                or zero (network).
        """
        reading = self._query("cpu", self._provider.cpu, None)
        temps = self._query("temperatures", self._provider.temperatures, [])
        processes = self._query("processes", self._provider.processes, [])
        mem = self._query("memory", self._provider.memory, None)
        partitions = self._query("disks", self._provider.disks, [])
        disk_io = self._query("disk_io", self._provider.disk_io, None)
        nics = self._query("network", self._provider.network, [])

        now = self._clock()
        if previous is not None and now <= previous.timestamp:
            previous = None
        elapsed = now - previous.timestamp if previous is not None else 0.0

        cpu = None
        if reading is not None:
            core_count = len(reading.per_core)
            # Generous over-sample; the aggregator makes the final top-N cut
            top = sorted(processes, key=lambda p: p.cpu_percent, reverse=True)[:core_count]
            cpu = CpuStats(
                global_percent=reading.global_percent,
                per_core=reading.per_core,
                frequency_ghz=_average_ghz(reading.frequencies_mhz),
                core_count=core_count,
                temperature_c=max(temps) if temps else None,
                top=tuple(top),
            )

        read_bps = write_bps = None
        read_bytes = write_bytes = None
        if disk_io is not None:
            read_bytes, write_bytes = disk_io
            if previous is not None and previous.disk_bytes is not None:
                prev_read, prev_write = previous.disk_bytes
                read_bps = rate_per_second(read_bytes, prev_read, elapsed)
                write_bps = rate_per_second(write_bytes, prev_write, elapsed)

        disk = DiskStats(
            partitions=tuple(partitions),
            read_bps=read_bps,
            write_bps=write_bps,
            read_bytes=read_bytes,
            write_bytes=write_bytes,
        )

        net: list[InterfaceStats] = []
        for nic in nics:
            rx_bps = tx_bps = 0.0
            prev_bytes = previous.interface_bytes.get(nic.name) if previous is not None else None
            if prev_bytes is not None:
                rx_bps = rate_per_second(nic.rx_bytes, prev_bytes[0], elapsed)
                tx_bps = rate_per_second(nic.tx_bytes, prev_bytes[1], elapsed)
            net.append(
                InterfaceStats(
                    name=nic.name,
                    ipv4=nic.ipv4,
                    mac=nic.mac,
                    speed_mbps=nic.speed_mbps,
                    rx_bps=rx_bps,
                    tx_bps=tx_bps,
                    rx_packets=nic.rx_packets,
                    tx_packets=nic.tx_packets,
                    rx_bytes=nic.rx_bytes,
                    tx_bytes=nic.tx_bytes,
                )
            )

        return Snapshot(timestamp=now, cpu=cpu, mem=mem, disk=disk, net=tuple(net))

    def _query(self, capability: str, fn: Callable[[], T], default: T) -> T:
        """Call a provider method, degrading to default if it fails."""
        try:
            return fn()
        except Exception:
            logger.debug("Capability %r unavailable this cycle", capability, exc_info=True)
            return default


def _average_ghz(frequencies_mhz: tuple[float, ...]) -> float:
    """Average per-core frequencies and convert MHz to GHz."""
    if not frequencies_mhz:
        return 0.0
    return sum(frequencies_mhz) / len(frequencies_mhz) / 1000.0
