"""Tests for hostpulse data models."""

import pytest

from hostpulse.models import (
    CpuStats,
    DiskStats,
    InterfaceStats,
    MemoryStats,
    ProcessUsage,
    Snapshot,
)


def test_process_usage_creation():
    """Test ProcessUsage dataclass creation."""
    proc = ProcessUsage(name="python", cpu_percent=150.0, memory_rss=1024000)

    assert proc.name == "python"
    assert proc.cpu_percent == 150.0
    assert proc.memory_rss == 1024000


def test_process_usage_is_frozen():
    """Test that ProcessUsage is immutable (frozen)."""
    proc = ProcessUsage(name="init", cpu_percent=0.1, memory_rss=10000)

    with pytest.raises(AttributeError):
        proc.cpu_percent = 99.0


def test_models_use_slots():
    """Test that snapshot models use __slots__ for memory efficiency."""
    proc = ProcessUsage(name="init", cpu_percent=0.1, memory_rss=10000)
    nic = InterfaceStats(name="eth0")

    # Slots-based dataclasses don't have __dict__
    assert not hasattr(proc, "__dict__")
    assert not hasattr(nic, "__dict__")


def test_disk_stats_defaults_have_no_rates():
    """Test DiskStats rate fields are absent by default."""
    disk = DiskStats()

    assert disk.partitions == ()
    assert disk.read_bps is None
    assert disk.write_bps is None


def test_interface_stats_defaults():
    """Test InterfaceStats defaults to zero rates and no link speed."""
    nic = InterfaceStats(name="wlan0")

    assert nic.rx_bps == 0.0
    assert nic.tx_bps == 0.0
    assert nic.speed_mbps is None
    assert nic.ipv4 == ()


def test_snapshot_to_dict():
    """Test Snapshot converts to nested dictionaries."""
    snapshot = Snapshot(
        timestamp=1.0,
        cpu=CpuStats(
            global_percent=12.5,
            per_core=(10.0, 15.0),
            frequency_ghz=3.1,
            core_count=2,
            top=(ProcessUsage(name="sh", cpu_percent=1.0, memory_rss=4096),),
        ),
        mem=MemoryStats(total=100, used=40, available=60, swap_total=0, swap_used=0),
        net=(InterfaceStats(name="eth0", rx_bps=10.0),),
    )

    data = snapshot.to_dict()

    assert data["cpu"]["global_percent"] == 12.5
    assert data["cpu"]["top"][0]["name"] == "sh"
    assert data["mem"]["cached"] is None
    assert data["disk"]["read_bps"] is None
    assert data["net"][0]["rx_bps"] == 10.0
