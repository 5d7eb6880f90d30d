"""Cumulative counter to per-second rate conversion."""

from dataclasses import dataclass, field

from hostpulse.models import Snapshot

# Floor for the elapsed time used as a divisor (1 ms)
MIN_ELAPSED = 0.001


def saturating_sub(current: int, previous: int) -> int:
    """
    Subtract two counter readings, clamping at zero.

    A counter that went backwards (reset, wraparound, device replaced)
    yields a delta of zero rather than a negative value.
    """
    return current - previous if current > previous else 0


def rate_per_second(current: int, previous: int, elapsed: float) -> float:
    """
    Convert two cumulative counter readings into a per-second rate.

    Args:
        current: Counter value at the later sample.
        previous: Counter value at the earlier sample.
        elapsed: Seconds between the samples; floored to MIN_ELAPSED.
    """
    return saturating_sub(current, previous) / max(elapsed, MIN_ELAPSED)


@dataclass(slots=True)
class PreviousSample:
    """Cumulative counters retained by the sampler for the next rate computation."""

    timestamp: float
    interface_bytes: dict[str, tuple[int, int]] = field(default_factory=dict)  # name -> (rx, tx)
    disk_bytes: tuple[int, int] | None = None  # (read, write)

    @classmethod
    def from_snapshot(cls, snapshot: Snapshot) -> "PreviousSample":
        """Extract the cumulative byte counters from a snapshot."""
        disk_bytes = None
        if snapshot.disk.read_bytes is not None and snapshot.disk.write_bytes is not None:
            disk_bytes = (snapshot.disk.read_bytes, snapshot.disk.write_bytes)

        return cls(
            timestamp=snapshot.timestamp,
            interface_bytes={nic.name: (nic.rx_bytes, nic.tx_bytes) for nic in snapshot.net},
            disk_bytes=disk_bytes,
        )
