"""sysdash - Main Textual application.

The app is the render driver: it feeds key presses to the dashboard state
machine and, on a fixed frame timer, paints the active tab from one
consistent read of the snapshot store. Sampling runs on its own thread.
"""

import structlog
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Container, Horizontal, Vertical
from textual.css.query import NoMatches
from textual.widgets import ContentSwitcher, Tab as TabWidget, Tabs

from sysdash.config import Settings
from sysdash.dashboard import KEYMAP, Action, DashboardState, DashboardStateMachine, Tab
from sysdash.errors import TerminalError
from sysdash.sampler import Sampler
from sysdash.source import MetricsSource, PsutilMetricsSource
from sysdash.store import SnapshotStore, StoreView
from sysdash.widgets import (
    CPU_THRESHOLDS,
    MEMORY_THRESHOLDS,
    DiskTable,
    HelpPanel,
    HistoryChart,
    NetworkTable,
    ProcessTable,
    StatusBar,
    SystemInfoPanel,
    UsageGauge,
)

log = structlog.get_logger()


def _bindings() -> list[Binding]:
    """Priority bindings so tables and tabs never swallow dashboard keys."""
    return [
        Binding(key, f"dispatch('{action.value}')", action.value, show=False, priority=True)
        for key, action in KEYMAP.items()
    ]


class SysdashApp(App):
    """Main sysdash application."""

    TITLE = "sysdash"
    SUB_TITLE = "System Monitor Dashboard"

    CSS = """
    Screen {
        layout: vertical;
    }

    Horizontal {
        height: auto;
    }

    .gauges UsageGauge {
        width: 1fr;
    }

    #overview-charts {
        height: 1fr;
    }

    #overview-charts HistoryChart {
        width: 1fr;
    }

    #overview-bottom {
        height: 9;
    }

    #overview-bottom SystemInfoPanel {
        width: 2fr;
    }

    #overview-bottom DiskTable {
        width: 3fr;
    }

    ContentSwitcher {
        height: 1fr;
    }
    """

    BINDINGS = _bindings()

    def __init__(self, settings: Settings | None = None, source: MetricsSource | None = None) -> None:
        """Initialize the SysdashApp.

        Args:
            settings: Loaded configuration. Defaults are used when omitted.
            source: Metrics source for the sampler. psutil is used when omitted.
        """
        super().__init__()
        self._settings = settings or Settings()
        self.sub_title = self._settings.dashboard.title
        if source is None:
            source = PsutilMetricsSource(
                collect_processes=self._settings.system.enable_process_monitoring
            )
        self._store = SnapshotStore(
            cpu_history_length=self._settings.cpu_history_capacity,
            memory_history_length=self._settings.memory_history_capacity,
        )
        self._sampler = Sampler(
            source,
            self._store,
            refresh_interval=self._settings.refresh_interval,
            max_processes=self._settings.process_limit,
        )
        self._machine = DashboardStateMachine(
            DashboardState(), tab_debounce=self._settings.tab_debounce
        )
        self._painted_tab: Tab | None = None
        self._last_view: StoreView | None = None

    @property
    def dashboard_state(self) -> DashboardState:
        return self._machine.state

    @property
    def store(self) -> SnapshotStore:
        return self._store

    @property
    def sampler(self) -> Sampler:
        return self._sampler

    def compose(self) -> ComposeResult:
        """Compose the application layout."""
        display = self._settings.display
        yield Tabs(*(TabWidget(tab.title, id=f"tab-{tab.value}") for tab in Tab), id="tabs")
        with ContentSwitcher(initial=Tab.OVERVIEW.value):
            with Vertical(id=Tab.OVERVIEW.value):
                with Horizontal(classes="gauges"):
                    yield UsageGauge("CPU Usage", CPU_THRESHOLDS, id="overview-cpu")
                    yield UsageGauge("Memory Usage", MEMORY_THRESHOLDS, id="overview-mem")
                with Horizontal(id="overview-charts"):
                    cpu_chart = HistoryChart("CPU History", id="cpu-chart")
                    cpu_chart.display = display.show_cpu_graph
                    yield cpu_chart
                    mem_chart = HistoryChart("Memory History", id="mem-chart")
                    mem_chart.display = display.show_memory_graph
                    yield mem_chart
                with Horizontal(id="overview-bottom"):
                    yield SystemInfoPanel(id="overview-info")
                    disks = DiskTable(id="disk-table")
                    disks.display = display.show_disk_info
                    yield disks
            with Vertical(id=Tab.PROCESSES.value):
                with Horizontal(classes="gauges"):
                    yield UsageGauge("CPU Usage", CPU_THRESHOLDS, id="processes-cpu")
                    yield UsageGauge("Memory Usage", MEMORY_THRESHOLDS, id="processes-mem")
                processes = ProcessTable(id="process-table")
                processes.display = display.show_process_list
                yield processes
            with Vertical(id=Tab.NETWORK.value):
                with Horizontal(classes="gauges"):
                    yield UsageGauge("CPU Usage", CPU_THRESHOLDS, id="network-cpu")
                    yield UsageGauge("Memory Usage", MEMORY_THRESHOLDS, id="network-mem")
                networks = NetworkTable(id="network-table")
                networks.display = display.show_network_info
                yield networks
            with Container(id=Tab.HELP.value):
                yield HelpPanel()
        yield StatusBar(id="status-bar")

    def on_mount(self) -> None:
        """Start the sampler and the frame timer."""
        log.info("dashboard_starting", refresh_interval=self._sampler.refresh_interval)
        self._sampler.start()
        self.set_interval(self._settings.frame_interval, self._paint_frame)
        self._paint_frame()

    def on_unmount(self) -> None:
        """Stop sampling on every exit path."""
        self._sampler.stop()
        log.info("dashboard_stopped")

    def on_tabs_tab_activated(self, event: Tabs.TabActivated) -> None:
        """Treat a click on a tab as a direct jump."""
        if event.tab is None or event.tab.id is None:
            return
        tab = Tab(event.tab.id.removeprefix("tab-"))
        if tab is not self.dashboard_state.active_tab:
            self._apply(Action(f"show_{tab.value}"))

    def action_dispatch(self, name: str) -> None:
        """Handle a bound key by feeding its action to the state machine."""
        self._apply(Action(name))

    def _apply(self, action: Action) -> None:
        process_count, viewport_height = self._scroll_bounds(self._last_view)
        self._machine.handle(
            action, process_count=process_count, viewport_height=viewport_height
        )
        if self._machine.take_refresh_request():
            log.debug("refresh_requested")
            self._sampler.request_refresh()
        if self.dashboard_state.shutting_down:
            self.action_quit()

    def _scroll_bounds(self, view: StoreView | None) -> tuple[int, int]:
        """Process count and visible rows; (0, 0) while the list is not shown."""
        if view is None:
            return 0, 0
        try:
            table = self.query_one(ProcessTable)
        except NoMatches:
            return 0, 0
        if not table.display:
            return 0, 0
        return len(view.processes), table.viewport_height

    def _paint_frame(self) -> None:
        """Paint one frame for the active tab from a single store read."""
        if self.dashboard_state.shutting_down:
            return
        view = self._store.read()
        self._last_view = view
        try:
            self._machine.clamp_scroll(*self._scroll_bounds(view))
            self._render_tab(view, self.dashboard_state)
        except Exception:
            # Resize races and the like; the next tick repaints
            log.warning("render_failed", exc_info=True)

    def _render_tab(self, view: StoreView, state: DashboardState) -> None:
        tab = state.active_tab
        if tab is not self._painted_tab:
            self.query_one(ContentSwitcher).current = tab.value
            # Syncing the tab strip must not read back as a click on the old tab
            with self.prevent(Tabs.TabActivated):
                self.query_one(Tabs).active = f"tab-{tab.value}"
            self.query_one(StatusBar).show_hints(tab)
            self._painted_tab = tab

        if tab is Tab.HELP:
            return
        self._paint_gauges(view, tab.value)
        if tab is Tab.OVERVIEW:
            self.query_one("#cpu-chart", HistoryChart).update_history(view.cpu_history)
            self.query_one("#mem-chart", HistoryChart).update_history(view.memory_history)
            self.query_one(SystemInfoPanel).update_info(view.system)
            self.query_one(DiskTable).update_disks(view.disks)
        elif tab is Tab.PROCESSES:
            self.query_one(ProcessTable).update_processes(
                view.processes, state.process_scroll_offset
            )
        elif tab is Tab.NETWORK:
            self.query_one(NetworkTable).update_networks(view.networks)

    def _paint_gauges(self, view: StoreView, prefix: str) -> None:
        cpu_title = "CPU Usage"
        if view.system is not None:
            cpu_title = f"CPU Usage ({view.system.cpu_count} cores)"
        self.query_one(f"#{prefix}-cpu", UsageGauge).update_usage(view.cpu_percent, title=cpu_title)

        mem_detail = ""
        if view.memory is not None:
            used_gb = view.memory.used_bytes / (1024**3)
            total_gb = view.memory.total_bytes / (1024**3)
            mem_detail = f"({used_gb:.1f}/{total_gb:.1f} GB)"
        self.query_one(f"#{prefix}-mem", UsageGauge).update_usage(view.memory_percent, mem_detail)

    def action_quit(self) -> None:
        """Handle quit action with graceful cleanup."""
        self._sampler.stop()
        self.exit()


def run(settings: Settings) -> int:
    """Run the dashboard until the user quits and return its exit code.

    Textual enters raw mode and the alternate screen on start and restores the
    terminal on every exit path, including unhandled exceptions.

    Raises:
        TerminalError: The terminal could not be driven at all.
    """
    app = SysdashApp(settings)
    try:
        app.run()
    except OSError as e:
        raise TerminalError(f"Could not drive the terminal: {e}") from e
    finally:
        app.sampler.stop()
    return app.return_code or 0
