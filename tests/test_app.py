"""Tests for the sysdash application (render driver)."""

import pytest
from conftest import ScriptedSource, make_process, make_reading
from structlog.testing import capture_logs
from textual.widgets import ContentSwitcher, Tabs

from sysdash.app import SysdashApp
from sysdash.config import DashboardConfig, DisplayConfig, Settings, SystemConfig
from sysdash.dashboard import Action, Tab
from sysdash.widgets import (
    DiskTable,
    HistoryChart,
    NetworkTable,
    ProcessTable,
    StatusBar,
    SystemInfoPanel,
    UsageGauge,
    fit_to_width,
    format_bytes,
    format_uptime,
    usage_color,
)


def make_app(processes=None, **dashboard) -> SysdashApp:
    """App with a scripted source and a fast frame timer."""
    settings = Settings(
        dashboard=DashboardConfig(frame_rate_ms=20, **dashboard),
        system=SystemConfig(max_processes_displayed=0),
    )
    reading = make_reading(processes=processes)
    return SysdashApp(settings, source=ScriptedSource(default=reading))


def many_processes(count: int = 100):
    return tuple(make_process(pid, cpu=float(count - pid)) for pid in range(1, count + 1))


def test_format_bytes_bytes():
    """Test format_bytes with byte values."""
    assert "B" in format_bytes(500)


def test_format_bytes_kilobytes():
    """Test format_bytes with kilobyte values."""
    assert "K" in format_bytes(2048)


def test_format_bytes_gigabytes():
    """Test format_bytes with gigabyte values."""
    assert "G" in format_bytes(1073741824)


@pytest.mark.parametrize(
    ("seconds", "expected"),
    [(59, "0m"), (3 * 60, "3m"), (2 * 3600 + 5 * 60, "2h 5m"), (3 * 86400 + 4 * 3600 + 60, "3d 4h 1m")],
)
def test_format_uptime(seconds, expected):
    assert format_uptime(seconds) == expected


@pytest.mark.parametrize(
    ("percent", "color"),
    [(10.0, "green"), (60.0, "green"), (60.1, "yellow"), (80.0, "yellow"), (80.5, "red")],
)
def test_usage_color(percent, color):
    assert usage_color(percent, (60.0, 80.0)) == color


def test_fit_to_width_keeps_most_recent():
    assert fit_to_width([1.0, 2.0, 3.0, 4.0], 2) == [3.0, 4.0]
    assert fit_to_width([1.0, 2.0], 10) == [1.0, 2.0]
    assert fit_to_width([1.0, 2.0], 0) == [1.0, 2.0]


@pytest.mark.asyncio
async def test_app_creation():
    """Test SysdashApp can be instantiated."""
    app = make_app(title="Lab box")
    assert app.title == "sysdash"
    assert app.sub_title == "Lab box"
    assert app.dashboard_state.active_tab is Tab.OVERVIEW
    assert not app.sampler.is_running


@pytest.mark.asyncio
async def test_app_compose():
    """Test SysdashApp composes correctly."""
    app = make_app()
    async with app.run_test() as pilot:
        assert pilot.app.query_one(Tabs) is not None
        assert pilot.app.query_one(ProcessTable) is not None
        assert pilot.app.query_one(NetworkTable) is not None
        assert pilot.app.query_one(StatusBar) is not None
        assert pilot.app.sampler.is_running


@pytest.mark.asyncio
async def test_overview_paints_store_contents():
    app = make_app()
    async with app.run_test() as pilot:
        await pilot.pause(0.2)

        gauge = pilot.app.query_one("#overview-cpu", UsageGauge)
        assert gauge.percent == 10.0
        assert gauge.border_title == "CPU Usage (4 cores)"
        assert pilot.app.query_one("#overview-mem", UsageGauge).percent == 50.0
        assert pilot.app.query_one("#cpu-chart", HistoryChart).data[-1] == 10.0
        assert pilot.app.query_one(DiskTable).row_count == 1
        assert pilot.app.query_one(SystemInfoPanel) is not None


@pytest.mark.asyncio
async def test_direct_jump_switches_immediately():
    app = make_app()
    async with app.run_test() as pilot:
        await pilot.press("2")
        assert app.dashboard_state.active_tab is Tab.PROCESSES

        await pilot.pause(0.1)
        assert pilot.app.query_one(ContentSwitcher).current == "processes"
        assert pilot.app.query_one(Tabs).active == "tab-processes"


@pytest.mark.asyncio
async def test_tab_cycle_is_debounced():
    app = make_app(tab_debounce_ms=10_000)
    async with app.run_test() as pilot:
        await pilot.press("tab", "tab", "tab")
        assert app.dashboard_state.active_tab is Tab.PROCESSES


@pytest.mark.asyncio
async def test_tab_cycle_without_debounce():
    app = make_app(tab_debounce_ms=0)
    async with app.run_test() as pilot:
        await pilot.press("tab", "tab")
        assert app.dashboard_state.active_tab is Tab.NETWORK

        await pilot.press("shift+tab")
        assert app.dashboard_state.active_tab is Tab.PROCESSES


@pytest.mark.asyncio
async def test_help_key():
    app = make_app()
    async with app.run_test() as pilot:
        await pilot.press("h")
        assert app.dashboard_state.active_tab is Tab.HELP


@pytest.mark.asyncio
async def test_unbound_keys_do_nothing():
    app = make_app()
    async with app.run_test() as pilot:
        await pilot.press("x", "z", "5", "left")
        state = app.dashboard_state
        assert state.active_tab is Tab.OVERVIEW
        assert not state.shutting_down


@pytest.mark.asyncio
async def test_process_scrolling_is_clamped():
    app = make_app(processes=many_processes(100))
    async with app.run_test() as pilot:
        await pilot.pause(0.2)
        await pilot.press("2")
        await pilot.pause(0.1)

        await pilot.press("up")
        assert app.dashboard_state.process_scroll_offset == 0

        await pilot.press("down", "down", "down")
        assert app.dashboard_state.process_scroll_offset == 3

        table = pilot.app.query_one(ProcessTable)
        for _ in range(150):
            await pilot.press("down")
        assert app.dashboard_state.process_scroll_offset == 100 - table.viewport_height

        await pilot.pause(0.1)
        assert table.row_count == table.viewport_height


@pytest.mark.asyncio
async def test_scroll_ignored_on_overview():
    app = make_app(processes=many_processes(100))
    async with app.run_test() as pilot:
        await pilot.pause(0.2)
        await pilot.press("down", "down")
        assert app.dashboard_state.process_scroll_offset == 0


@pytest.mark.asyncio
async def test_refresh_key_forces_a_sample():
    app = make_app(refresh_rate_ms=60_000)
    async with app.run_test() as pilot:
        await pilot.pause(0.2)
        before = app.store.generation

        await pilot.press("r")
        await pilot.pause(0.3)

        assert app.store.generation == before + 1
        assert not app.dashboard_state.refresh_requested


@pytest.mark.asyncio
async def test_quit_binding_stops_app_and_sampler():
    """Test that 'q' binding triggers quit."""
    app = make_app()
    async with app.run_test() as pilot:
        await pilot.press("q")
        assert app.dashboard_state.shutting_down
        assert pilot.app._exit

    assert not app.sampler.is_running


@pytest.mark.asyncio
async def test_escape_quits():
    app = make_app()
    async with app.run_test() as pilot:
        await pilot.press("escape")
        assert app.dashboard_state.shutting_down


@pytest.mark.asyncio
async def test_display_toggles_hide_widgets():
    settings = Settings(display=DisplayConfig(show_cpu_graph=False, show_disk_info=False))
    app = SysdashApp(settings, source=ScriptedSource())
    async with app.run_test() as pilot:
        assert pilot.app.query_one("#cpu-chart").display is False
        assert pilot.app.query_one(DiskTable).display is False
        assert pilot.app.query_one("#mem-chart").display is True


@pytest.mark.asyncio
async def test_jump_right_after_a_paint_is_kept():
    app = make_app()
    async with app.run_test() as pilot:
        app._apply(Action.SHOW_NETWORK)
        app._paint_frame()
        app._apply(Action.SHOW_HELP)
        await pilot.pause(0.2)

        assert app.dashboard_state.active_tab is Tab.HELP
        assert pilot.app.query_one(Tabs).active == "tab-help"


@pytest.mark.asyncio
async def test_held_key_sequence_lands_on_last_tab():
    app = make_app()
    async with app.run_test() as pilot:
        for key in ("2", "3", "4", "1", "3"):
            await pilot.press(key)
            app._paint_frame()
        await pilot.pause(0.2)

        assert app.dashboard_state.active_tab is Tab.NETWORK


@pytest.mark.asyncio
async def test_clicking_a_tab_jumps_to_it():
    app = make_app()
    async with app.run_test() as pilot:
        await pilot.click("#tab-network")
        await pilot.pause(0.1)

        assert app.dashboard_state.active_tab is Tab.NETWORK


@pytest.mark.asyncio
async def test_render_error_is_logged_and_next_frame_repaints(monkeypatch):
    calls = []
    original = ProcessTable.update_processes

    def fail_once(self, processes, offset):
        calls.append(offset)
        if len(calls) == 1:
            raise RuntimeError("widget exploded")
        original(self, processes, offset)

    monkeypatch.setattr(ProcessTable, "update_processes", fail_once)

    app = make_app()
    with capture_logs() as logs:
        async with app.run_test() as pilot:
            await pilot.pause(0.2)
            await pilot.press("2")
            await pilot.pause(0.3)

            assert len(calls) >= 2
            assert pilot.app.query_one(ProcessTable).row_count == 2
            assert not app.dashboard_state.shutting_down
            assert pilot.app.is_running

    failures = [entry for entry in logs if entry["event"] == "render_failed"]
    assert len(failures) == 1
    assert failures[0]["log_level"] == "warning"


@pytest.mark.asyncio
async def test_hidden_process_list_does_not_scroll():
    settings = Settings(
        dashboard=DashboardConfig(frame_rate_ms=20),
        system=SystemConfig(max_processes_displayed=0),
        display=DisplayConfig(show_process_list=False),
    )
    reading = make_reading(processes=many_processes(100))
    app = SysdashApp(settings, source=ScriptedSource(default=reading))
    async with app.run_test() as pilot:
        await pilot.pause(0.2)
        await pilot.press("2")
        await pilot.pause(0.1)

        await pilot.press("down", "down", "down")
        assert app.dashboard_state.process_scroll_offset == 0
