"""Shared fixtures for hostpulse tests."""

import pytest

from hostpulse.models import (
    CpuStats,
    DiskPartition,
    DiskStats,
    InterfaceStats,
    MemoryStats,
    ProcessUsage,
    Snapshot,
)
from hostpulse.providers import CpuReading, InterfaceReading, PlatformProvider


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 100.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeProvider(PlatformProvider):
    """Deterministic provider whose readings tests mutate between builds."""

    def __init__(self) -> None:
        self.cpu_reading = CpuReading(
            global_percent=25.0,
            per_core=(20.0, 30.0),
            frequencies_mhz=(2000.0, 3000.0),
        )
        self.temps: list[float] = [41.0, 55.5, 48.0]
        self.procs = [
            ProcessUsage(name="idle", cpu_percent=0.5, memory_rss=1024),
            ProcessUsage(name="python", cpu_percent=40.0, memory_rss=50 * 1024**2),
            ProcessUsage(name="firefox", cpu_percent=12.0, memory_rss=300 * 1024**2),
        ]
        self.mem = MemoryStats(
            total=16 * 1024**3,
            used=8 * 1024**3,
            available=8 * 1024**3,
            swap_total=2 * 1024**3,
            swap_used=0,
            cached=1024**3,
            buffers=1024**2,
        )
        self.partitions = [
            DiskPartition(name="/dev/sda1", mount_point="/", filesystem="ext4", total=100, used=40),
        ]
        self.disk_counters: tuple[int, int] | None = (1_000, 2_000)
        self.nics = [
            InterfaceReading(
                name="eth0",
                rx_bytes=10_000,
                tx_bytes=5_000,
                rx_packets=100,
                tx_packets=50,
                ipv4=("192.168.1.10",),
                mac=("AA:BB:CC:DD:EE:FF",),
                speed_mbps=1000,
            ),
            InterfaceReading(name="lo", rx_bytes=500, tx_bytes=500, rx_packets=5, tx_packets=5),
        ]
        self.failing: set[str] = set()

    def _check(self, capability: str) -> None:
        if capability in self.failing:
            raise RuntimeError(f"{capability} unavailable")

    def cpu(self) -> CpuReading:
        self._check("cpu")
        return self.cpu_reading

    def temperatures(self) -> list[float]:
        self._check("temperatures")
        return list(self.temps)

    def processes(self) -> list[ProcessUsage]:
        self._check("processes")
        return list(self.procs)

    def memory(self) -> MemoryStats:
        self._check("memory")
        return self.mem

    def disks(self) -> list[DiskPartition]:
        self._check("disks")
        return list(self.partitions)

    def disk_io(self) -> tuple[int, int] | None:
        self._check("disk_io")
        return self.disk_counters

    def network(self) -> list[InterfaceReading]:
        self._check("network")
        return list(self.nics)


def make_snapshot(
    global_percent: float = 10.0,
    per_core: tuple[float, ...] = (10.0, 10.0),
    used: int = 1000,
    available: int = 3000,
    read_bps: float | None = None,
    write_bps: float | None = None,
    net: tuple[InterfaceStats, ...] = (),
    top: tuple[ProcessUsage, ...] = (),
    timestamp: float = 0.0,
) -> Snapshot:
    """Build a snapshot with only the fields a test cares about."""
    return Snapshot(
        timestamp=timestamp,
        cpu=CpuStats(
            global_percent=global_percent,
            per_core=per_core,
            frequency_ghz=2.5,
            core_count=len(per_core),
            top=top,
        ),
        mem=MemoryStats(total=4000, used=used, available=available, swap_total=0, swap_used=0),
        disk=DiskStats(
            partitions=(DiskPartition(name="sda1", mount_point="/", filesystem="ext4", total=10, used=5),),
            read_bps=read_bps,
            write_bps=write_bps,
        ),
        net=net,
    )


@pytest.fixture
def provider() -> FakeProvider:
    """A fresh deterministic provider."""
    return FakeProvider()


@pytest.fixture
def clock() -> FakeClock:
    """A manually advanced clock starting at t=100s."""
    return FakeClock()
