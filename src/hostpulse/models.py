"""Data models for hostpulse."""

from dataclasses import asdict, dataclass, field
from typing import Any


@dataclass(slots=True, frozen=True)
class ProcessUsage:
    """Immutable CPU/memory reading for one process."""

    name: str
    cpu_percent: float  # 0.0 - 100.0 * core_count
    memory_rss: int  # Bytes


@dataclass(slots=True, frozen=True)
class CpuStats:
    """CPU usage, frequency, temperature and top processes."""

    global_percent: float
    per_core: tuple[float, ...]
    frequency_ghz: float
    core_count: int
    temperature_c: float | None = None
    top: tuple[ProcessUsage, ...] = ()


@dataclass(slots=True, frozen=True)
class MemoryStats:
    """Physical and swap memory, in bytes."""

    total: int
    used: int
    available: int
    swap_total: int
    swap_used: int
    cached: int | None = None  # Linux only
    buffers: int | None = None  # Linux only


@dataclass(slots=True, frozen=True)
class DiskPartition:
    """A mounted partition and its capacity."""

    name: str
    mount_point: str
    filesystem: str
    total: int
    used: int


@dataclass(slots=True, frozen=True)
class DiskStats:
    """
    Partitions plus aggregate block-device throughput.

    read_bps/write_bps are only set when the platform exposes block I/O
    counters and a previous sample exists. read_bytes/write_bytes carry the
    raw cumulative counters they were derived from.
    """

    partitions: tuple[DiskPartition, ...] = ()
    read_bps: float | None = None
    write_bps: float | None = None
    read_bytes: int | None = None
    write_bytes: int | None = None


@dataclass(slots=True, frozen=True)
class InterfaceStats:
    """A network interface with its addresses and throughput."""

    name: str
    ipv4: tuple[str, ...] = ()
    mac: tuple[str, ...] = ()
    speed_mbps: int | None = None
    rx_bps: float = 0.0
    tx_bps: float = 0.0
    rx_packets: int = 0
    tx_packets: int = 0
    rx_bytes: int = 0  # Cumulative
    tx_bytes: int = 0  # Cumulative


@dataclass(slots=True, frozen=True)
class Snapshot:
    """
    One self-consistent reading of all tracked metrics.

    cpu and mem are None when the platform query for them failed this
    cycle, so consumers never mistake a missing reading for zero usage.
    """

    timestamp: float  # Monotonic capture time in seconds
    cpu: CpuStats | None
    mem: MemoryStats | None
    disk: DiskStats = field(default_factory=DiskStats)
    net: tuple[InterfaceStats, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        """Convert to nested plain dictionaries."""
        return asdict(self)
