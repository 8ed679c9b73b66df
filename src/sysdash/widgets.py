"""Widgets that paint a StoreView. They hold no state of their own beyond what was last painted."""

from collections.abc import Iterable, Sequence

from rich.text import Text
from textual.app import ComposeResult
from textual.containers import Container
from textual.widgets import DataTable, Sparkline, Static

from sysdash.dashboard import Tab
from sysdash.history import Sample
from sysdash.models import DiskInfo, NetworkInterfaceInfo, ProcessInfo, SystemInfo

BAR_WIDTH = 20

# (warning, critical) percentages for gauge colours
CPU_THRESHOLDS = (60.0, 80.0)
MEMORY_THRESHOLDS = (75.0, 90.0)
DISK_THRESHOLDS = (75.0, 90.0)

STATUS_HINTS: dict[Tab, str] = {
    Tab.OVERVIEW: "Tab: Switch tabs | 1-4: Jump | r: Refresh | q: Quit",
    Tab.PROCESSES: "↑↓: Scroll | Tab: Switch tabs | 1-4: Jump | r: Refresh | q: Quit",
    Tab.NETWORK: "Tab: Switch tabs | 1-4: Jump | r: Refresh | q: Quit",
    Tab.HELP: "Tab: Switch tabs | 1-4: Jump | q: Quit",
}


def format_bytes(size: int) -> str:
    """Format bytes as human-readable string."""
    for unit in ["B", "K", "M", "G", "T"]:
        if size < 1024:
            return f"{size:5.1f}{unit}" if unit != "B" else f"{size:5d}{unit}"
        size = size / 1024
    return f"{size:.1f}P"


def format_uptime(seconds: float) -> str:
    """Format an uptime as '3d 4h 5m', '4h 5m' or '5m'."""
    total = int(seconds)
    days = total // 86400
    hours = (total % 86400) // 3600
    minutes = (total % 3600) // 60
    if days > 0:
        return f"{days}d {hours}h {minutes}m"
    if hours > 0:
        return f"{hours}h {minutes}m"
    return f"{minutes}m"


def usage_color(percent: float, thresholds: tuple[float, float]) -> str:
    """Colour class for a usage percentage: green, yellow or red."""
    warning, critical = thresholds
    if percent > critical:
        return "red"
    if percent > warning:
        return "yellow"
    return "green"


def fit_to_width(values: Sequence[float], width: int) -> list[float]:
    """Keep the most recent values that fit in width columns."""
    if width <= 0 or len(values) <= width:
        return list(values)
    return list(values[-width:])


class UsageGauge(Static):
    """Horizontal bar gauge with a colour-classified fill."""

    DEFAULT_CSS = """
    UsageGauge {
        height: 3;
        border: solid $primary;
        padding: 0 1;
    }
    """

    def __init__(self, title: str, thresholds: tuple[float, float], **kwargs) -> None:
        super().__init__("Loading...", **kwargs)
        self.border_title = title
        self._thresholds = thresholds
        self.percent = 0.0

    def update_usage(self, percent: float, detail: str = "", title: str | None = None) -> None:
        """Repaint the gauge for a new percentage."""
        self.percent = percent
        if title is not None:
            self.border_title = title
        filled = min(BAR_WIDTH, max(0, int(percent / 100 * BAR_WIDTH)))
        color = usage_color(percent, self._thresholds)
        bar = f"[{color}]█[/{color}]" * filled + "[dim]░[/dim]" * (BAR_WIDTH - filled)
        suffix = f" {detail}" if detail else ""
        # Use escaped brackets for the bar container
        self.update(f"\\[{bar}] [bold]{percent:5.1f}%[/bold]{suffix}")


class HistoryChart(Sparkline):
    """Time-series chart of one history buffer."""

    DEFAULT_CSS = """
    HistoryChart {
        height: 1fr;
        min-height: 4;
        border: solid $primary;
    }
    """

    def __init__(self, title: str, **kwargs) -> None:
        super().__init__([], summary_function=max, **kwargs)
        self.border_title = title

    def update_history(self, samples: Iterable[Sample]) -> None:
        values = [sample.value for sample in samples]
        self.data = fit_to_width(values, self.content_size.width)


class SystemInfoPanel(Static):
    """Uptime, process count and load averages."""

    DEFAULT_CSS = """
    SystemInfoPanel {
        height: auto;
        min-height: 5;
        border: solid $primary;
        padding: 0 1;
    }
    """

    def __init__(self, **kwargs) -> None:
        super().__init__("Loading system info...", **kwargs)
        self.border_title = "System Info"

    def update_info(self, info: SystemInfo | None) -> None:
        if info is None:
            self.update("Loading system info...")
            return
        one, five, fifteen = info.load_averages
        self.update(
            f"[cyan]Uptime:[/cyan] {format_uptime(info.uptime_seconds)}\n"
            f"[green]Processes:[/green] {info.process_count}\n"
            f"[yellow]Load Avg:[/yellow] {one:.2f} {five:.2f} {fifteen:.2f}"
        )


class SnapshotTable(Container):
    """
    Bordered DataTable that is repopulated from scratch on every paint.

    Rows are never patched in place, so entries that disappeared from the
    latest reading disappear from the table.
    """

    DEFAULT_CSS = """
    SnapshotTable {
        height: 1fr;
        border: solid $primary;
    }
    """

    COLUMNS: tuple[tuple[str, str, int | None], ...] = ()
    TITLE = ""
    EMPTY_MESSAGE = "No data available"

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.border_title = self.TITLE
        self.row_count = 0

    def compose(self) -> ComposeResult:
        yield DataTable(show_cursor=False, zebra_stripes=True)

    def on_mount(self) -> None:
        table = self.query_one(DataTable)
        for label, key, width in self.COLUMNS:
            table.add_column(label, key=key, width=width)

    def set_rows(self, rows: Iterable[Sequence[str | Text]]) -> None:
        table = self.query_one(DataTable)
        table.clear()
        count = 0
        for row in rows:
            table.add_row(*row)
            count += 1
        self.row_count = count
        if count == 0:
            self.border_subtitle = self.EMPTY_MESSAGE
        else:
            self.border_subtitle = ""


class DiskTable(SnapshotTable):
    """Mounted filesystems and their usage."""

    TITLE = "Disk Usage"
    EMPTY_MESSAGE = "No disk information available"
    COLUMNS = (
        ("Mount", "mount", 15),
        ("FS", "fs", 10),
        ("Total", "total", 9),
        ("Used", "used", 9),
        ("Usage", "usage", 7),
    )

    def update_disks(self, disks: Sequence[DiskInfo]) -> None:
        rows = []
        for disk in disks:
            color = usage_color(disk.usage_percent, DISK_THRESHOLDS)
            rows.append(
                (
                    Text(disk.mount_point),
                    Text(disk.file_system),
                    format_bytes(disk.total_bytes),
                    format_bytes(disk.used_bytes),
                    Text(f"{disk.usage_percent:5.1f}%", style=color),
                )
            )
        self.set_rows(rows)


class ProcessTable(SnapshotTable):
    """Process list showing the window [offset, offset + viewport_height)."""

    TITLE = "Processes"
    EMPTY_MESSAGE = "No process information available"
    COLUMNS = (
        ("PID", "pid", 8),
        ("CPU%", "cpu", 7),
        ("RES", "rss", 8),
        ("Name", "name", None),
    )

    @property
    def viewport_height(self) -> int:
        """Rows visible below the header."""
        # Border (2) + header row (1)
        return max(1, self.size.height - 3)

    def update_processes(self, processes: Sequence[ProcessInfo], offset: int) -> None:
        self.border_title = f"Processes ({len(processes)})"
        visible = processes[offset : offset + self.viewport_height]
        self.set_rows(
            (
                Text(f"{proc.pid:>7}", style="cyan"),
                Text(f"{proc.cpu_percent:5.1f}%", style="green"),
                Text(format_bytes(proc.memory_bytes), style="yellow"),
                Text(proc.name),
            )
            for proc in visible
        )


class NetworkTable(SnapshotTable):
    """Per-interface traffic counters."""

    TITLE = "Network Info"
    EMPTY_MESSAGE = "No network information available"
    COLUMNS = (
        ("Interface", "iface", 14),
        ("RX Bytes", "rx", 10),
        ("TX Bytes", "tx", 10),
        ("RX Pkts", "rx_pkts", 10),
        ("TX Pkts", "tx_pkts", 10),
    )

    def update_networks(self, networks: Sequence[NetworkInterfaceInfo]) -> None:
        self.set_rows(
            (
                Text(net.name),
                format_bytes(net.bytes_received),
                format_bytes(net.bytes_sent),
                str(net.packets_received),
                str(net.packets_sent),
            )
            for net in networks
        )


HELP_TEXT = """\
[bold cyan]System Monitor Dashboard[/bold cyan]

[bold yellow]Navigation:[/bold yellow]
  [green]Tab / Shift+Tab[/green]   Switch between tabs
  [green]1 2 3 4[/green]           Jump to Overview, Processes, Network, Help
  [green]h[/green]                 Show this help
  [green]↑ / ↓[/green]             Scroll process list
  [green]r[/green]                 Force refresh

[bold yellow]Tabs:[/bold yellow]
  [green]Overview[/green]          CPU, memory and disk usage with charts
  [green]Processes[/green]         Running processes sorted by CPU
  [green]Network[/green]           Network interface statistics

[bold yellow]Exit:[/bold yellow]
  [red]q / Esc / Ctrl+C[/red]  Quit application
"""


class HelpPanel(Static):
    """Static key reference."""

    DEFAULT_CSS = """
    HelpPanel {
        height: 1fr;
        border: solid $primary;
        padding: 1 2;
    }
    """

    def __init__(self, **kwargs) -> None:
        super().__init__(HELP_TEXT, **kwargs)
        self.border_title = "Help"


class StatusBar(Static):
    """One-line key hints for the active tab."""

    DEFAULT_CSS = """
    StatusBar {
        dock: bottom;
        height: 1;
        color: $text-muted;
    }
    """

    def show_hints(self, tab: Tab) -> None:
        self.update(STATUS_HINTS[tab])
