"""hostpulse - Textual dashboard for aggregated telemetry."""

from queue import Empty, Queue

from textual.app import App, ComposeResult
from textual.containers import Container, Horizontal
from textual.widgets import DataTable, Footer, Static

from hostpulse.models import DiskPartition, InterfaceStats, ProcessUsage, Snapshot
from hostpulse.pipeline import TelemetryPipeline


def format_bytes(size: float) -> str:
    """Format bytes as human-readable string."""
    for unit in ["B", "K", "M", "G", "T"]:
        if size < 1024:
            return f"{size:5.1f}{unit}" if unit != "B" else f"{int(size):5d}{unit}"
        size = size / 1024
    return f"{size:.1f}P"


def format_rate(bytes_per_second: float | None) -> str:
    """Format a bytes-per-second rate, or a dash if unknown."""
    if bytes_per_second is None:
        return "    -"
    return f"{format_bytes(bytes_per_second)}/s"


def _bar(percent: float, color: str) -> str:
    """Render a 20-cell usage bar."""
    bar_len = min(max(int(percent / 5), 0), 20)
    return f"[{color}]█[/{color}]" * bar_len + "[dim]░[/dim]" * (20 - bar_len)


class HeaderStats(Static):
    """Header widget showing CPU, memory and disk throughput."""

    DEFAULT_CSS = """
    HeaderStats {
        height: auto;
        min-height: 5;
        padding: 1;
        background: $surface;
    }
    """

    def __init__(self, *args, **kwargs) -> None:
        """Initialize HeaderStats."""
        super().__init__(*args, **kwargs)
        self._snapshot: Snapshot | None = None

    def compose(self) -> ComposeResult:
        """Compose the header stats layout."""
        yield Horizontal(
            Static(self._get_cpu_info(), id="cpu-info"),
            Static(self._get_mem_info(), id="mem-info"),
        )

    def update_stats(self, snapshot: Snapshot) -> None:
        """Update the statistics from a snapshot."""
        self._snapshot = snapshot
        self.query_one("#cpu-info", Static).update(self._get_cpu_info())
        self.query_one("#mem-info", Static).update(self._get_mem_info())

    def _get_cpu_info(self) -> str:
        """Get CPU info display."""
        if self._snapshot is None:
            return "Loading CPU info..."
        cpu = self._snapshot.cpu
        if cpu is None:
            return "CPU info unavailable"
        lines = [
            # Escaped brackets for the bar container
            f"CPU  \\[{_bar(cpu.global_percent, 'green')}] {cpu.global_percent:5.1f}%"
        ]
        for i, usage in enumerate(cpu.per_core):
            lines.append(f"CPU{i:<2}\\[{_bar(usage, 'green')}] {usage:5.1f}%")

        temp = f"{cpu.temperature_c:.0f}°C" if cpu.temperature_c is not None else "N/A"
        lines.append(f"{cpu.core_count} cores @ {cpu.frequency_ghz:.2f} GHz, temp {temp}")
        return "\n".join(lines)

    def _get_mem_info(self) -> str:
        """Get memory and disk throughput display."""
        if self._snapshot is None:
            return "Loading memory info..."
        mem = self._snapshot.mem
        if mem is None or mem.total == 0:
            return "Memory info unavailable"
        disk = self._snapshot.disk

        mem_percent = mem.used / mem.total * 100
        swap_percent = mem.swap_used / mem.swap_total * 100 if mem.swap_total > 0 else 0.0
        lines = [
            f"Mem\\[{_bar(mem_percent, 'cyan')}] {mem.used / 1024**3:.1f}G/{mem.total / 1024**3:.1f}G",
            f"Swp\\[{_bar(swap_percent, 'yellow')}] "
            f"{mem.swap_used / 1024**3:.1f}G/{mem.swap_total / 1024**3:.1f}G",
            f"Available: {format_bytes(mem.available)}",
        ]
        if mem.cached is not None:
            lines.append(f"Cached: {format_bytes(mem.cached)}  Buffers: {format_bytes(mem.buffers or 0)}")
        lines.append(f"Disk read {format_rate(disk.read_bps)}  write {format_rate(disk.write_bps)}")
        return "\n".join(lines)


class ProcessTable(Container):
    """Container for the top-process table."""

    DEFAULT_CSS = """
    ProcessTable {
        height: 1fr;
        border: solid $primary;
    }
    """

    def __init__(self, *args, **kwargs) -> None:
        """Initialize ProcessTable."""
        super().__init__(*args, **kwargs)
        self._row_count = 0

    def compose(self) -> ComposeResult:
        """Compose the process table."""
        yield DataTable(id="process-table")

    def on_mount(self) -> None:
        """Initialize the data table when mounted."""
        table = self.query_one("#process-table", DataTable)
        table.cursor_type = "row"
        table.add_column("#", key="rank", width=3)
        table.add_column("CPU%", key="cpu", width=8)
        table.add_column("RES", key="rss", width=8)
        table.add_column("Command", key="name")

    def update_processes(self, processes: tuple[ProcessUsage, ...]) -> None:
        """
        Update the table with the top processes.

        Rows are keyed by rank, so existing rows are updated in place with
        update_cell and only surplus rows are added or removed.
        """
        table = self.query_one("#process-table", DataTable)

        for rank in range(len(processes), self._row_count):
            table.remove_row(str(rank))

        for rank, proc in enumerate(processes):
            row_key = str(rank)
            if rank < self._row_count:
                table.update_cell(row_key, "cpu", f"{proc.cpu_percent:5.1f}")
                table.update_cell(row_key, "rss", format_bytes(proc.memory_rss))
                table.update_cell(row_key, "name", proc.name[:50])
            else:
                table.add_row(
                    str(rank + 1),
                    f"{proc.cpu_percent:5.1f}",
                    format_bytes(proc.memory_rss),
                    proc.name[:50],
                    key=row_key,
                )

        self._row_count = len(processes)


class NetworkTable(Container):
    """Container for the per-interface network table."""

    DEFAULT_CSS = """
    NetworkTable {
        height: auto;
        max-height: 12;
        border: solid $secondary;
    }
    """

    def __init__(self, *args, **kwargs) -> None:
        """Initialize NetworkTable."""
        super().__init__(*args, **kwargs)
        self._current_names: set[str] = set()

    def compose(self) -> ComposeResult:
        """Compose the network table."""
        yield DataTable(id="network-table")

    def on_mount(self) -> None:
        """Initialize the data table when mounted."""
        table = self.query_one("#network-table", DataTable)
        table.add_column("Interface", key="name", width=14)
        table.add_column("RX", key="rx", width=11)
        table.add_column("TX", key="tx", width=11)
        table.add_column("Link", key="speed", width=10)
        table.add_column("IPv4", key="ipv4", width=16)
        table.add_column("MAC", key="mac")

    def update_interfaces(self, interfaces: tuple[InterfaceStats, ...]) -> None:
        """Update the table, removing rows for interfaces that disappeared."""
        table = self.query_one("#network-table", DataTable)
        new_names = {nic.name for nic in interfaces}

        for name in self._current_names - new_names:
            table.remove_row(name)

        for nic in interfaces:
            speed = f"{nic.speed_mbps} Mb/s" if nic.speed_mbps is not None else "N/A"
            ipv4 = ", ".join(nic.ipv4) or "-"
            mac = ", ".join(nic.mac) or "N/A"
            if nic.name in self._current_names:
                table.update_cell(nic.name, "rx", format_rate(nic.rx_bps))
                table.update_cell(nic.name, "tx", format_rate(nic.tx_bps))
                table.update_cell(nic.name, "speed", speed)
                table.update_cell(nic.name, "ipv4", ipv4)
                table.update_cell(nic.name, "mac", mac)
            else:
                table.add_row(
                    nic.name,
                    format_rate(nic.rx_bps),
                    format_rate(nic.tx_bps),
                    speed,
                    ipv4,
                    mac,
                    key=nic.name,
                )

        self._current_names = new_names


class DiskTable(Container):
    """Container for the partition table."""

    DEFAULT_CSS = """
    DiskTable {
        height: auto;
        max-height: 10;
        border: solid $secondary;
    }
    """

    def compose(self) -> ComposeResult:
        """Compose the disk table."""
        yield DataTable(id="disk-table")

    def on_mount(self) -> None:
        """Initialize the data table when mounted."""
        table = self.query_one("#disk-table", DataTable)
        table.add_column("Mount", key="mount", width=20)
        table.add_column("Device", key="name", width=16)
        table.add_column("FS", key="fs", width=8)
        table.add_column("Used", key="used", width=8)
        table.add_column("Size", key="total", width=8)

    def update_partitions(self, partitions: tuple[DiskPartition, ...]) -> None:
        """Replace the table contents with the current partitions."""
        table = self.query_one("#disk-table", DataTable)
        table.clear()
        for part in partitions:
            table.add_row(
                part.mount_point,
                part.name,
                part.filesystem,
                format_bytes(part.used),
                format_bytes(part.total),
            )


class HostPulseApp(App):
    """Main hostpulse application."""

    TITLE = "hostpulse"
    SUB_TITLE = "Smoothed Host Telemetry"

    CSS = """
    Screen {
        layout: vertical;
    }

    #header-stats {
        dock: top;
        height: auto;
        min-height: 6;
    }

    Horizontal {
        height: auto;
    }

    #cpu-info {
        width: 1fr;
        padding-right: 2;
    }

    #mem-info {
        width: 1fr;
        padding-left: 2;
    }
    """

    BINDINGS = [
        ("q", "quit", "Quit"),
        ("r", "refresh", "Refresh"),
    ]

    def __init__(self, pipeline: TelemetryPipeline | None = None) -> None:
        """
        Initialize the HostPulseApp.

        Args:
            pipeline: Telemetry source. A psutil-backed pipeline is created if omitted.
        """
        super().__init__()
        self._update_queue: Queue[Snapshot] = Queue()
        self._pipeline = pipeline if pipeline is not None else TelemetryPipeline()

    def compose(self) -> ComposeResult:
        """Compose the application layout."""
        yield HeaderStats(id="header-stats")
        yield ProcessTable()
        yield NetworkTable()
        yield DiskTable()
        yield Footer()

    def on_mount(self) -> None:
        """Subscribe to the pipeline and start it when the app is mounted."""
        # Listeners run on the aggregator thread; hand snapshots over a queue
        self._pipeline.subscribe(self._update_queue.put)
        self._pipeline.start()
        self.set_interval(0.5, self._check_for_updates)

    def on_unmount(self) -> None:
        """Stop the pipeline when the app shuts down."""
        self._pipeline.unsubscribe(self._update_queue.put)
        self._pipeline.stop()

    def _check_for_updates(self) -> None:
        """Drain the queue and render the most recent snapshot."""
        snapshot = None
        while True:
            try:
                snapshot = self._update_queue.get_nowait()
            except Empty:
                break

        if snapshot is not None:
            self._update_ui(snapshot)

    def _update_ui(self, snapshot: Snapshot) -> None:
        """Update every panel with the snapshot."""
        self.query_one("#header-stats", HeaderStats).update_stats(snapshot)
        if snapshot.cpu is not None:
            self.query_one(ProcessTable).update_processes(snapshot.cpu.top)
        self.query_one(NetworkTable).update_interfaces(snapshot.net)
        self.query_one(DiskTable).update_partitions(snapshot.disk.partitions)

    def action_refresh(self) -> None:
        """Render a one-shot snapshot immediately, outside the aggregation window."""
        self._update_ui(self._pipeline.on_demand_snapshot())
        self.notify("Refreshed")

    def action_quit(self) -> None:
        """Handle quit action with graceful cleanup."""
        self._pipeline.stop()
        self.exit()


def main() -> None:
    """Entry point for hostpulse application."""
    app = HostPulseApp()
    app.run()


if __name__ == "__main__":
    main()
