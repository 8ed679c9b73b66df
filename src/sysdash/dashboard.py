"""Dashboard view state and the keyboard-driven state machine."""

import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum


class Tab(Enum):
    """Dashboard tabs, in cycling order."""

    OVERVIEW = "overview"
    PROCESSES = "processes"
    NETWORK = "network"
    HELP = "help"

    @property
    def title(self) -> str:
        return self.value.capitalize()


class Action(Enum):
    """Everything a key press can ask the dashboard to do."""

    QUIT = "quit"
    NEXT_TAB = "next_tab"
    PREV_TAB = "prev_tab"
    SCROLL_UP = "scroll_up"
    SCROLL_DOWN = "scroll_down"
    REFRESH = "refresh"
    SHOW_OVERVIEW = "show_overview"
    SHOW_PROCESSES = "show_processes"
    SHOW_NETWORK = "show_network"
    SHOW_HELP = "show_help"


JUMPS: dict[Action, Tab] = {
    Action.SHOW_OVERVIEW: Tab.OVERVIEW,
    Action.SHOW_PROCESSES: Tab.PROCESSES,
    Action.SHOW_NETWORK: Tab.NETWORK,
    Action.SHOW_HELP: Tab.HELP,
}

# Key names as reported by Textual
KEYMAP: dict[str, Action] = {
    "1": Action.SHOW_OVERVIEW,
    "2": Action.SHOW_PROCESSES,
    "3": Action.SHOW_NETWORK,
    "4": Action.SHOW_HELP,
    "h": Action.SHOW_HELP,
    "tab": Action.NEXT_TAB,
    "shift+tab": Action.PREV_TAB,
    "up": Action.SCROLL_UP,
    "down": Action.SCROLL_DOWN,
    "r": Action.REFRESH,
    "q": Action.QUIT,
    "escape": Action.QUIT,
    "ctrl+c": Action.QUIT,
}


def action_for_key(key: str) -> Action | None:
    """Translate a key name into an Action, or None if the key is unbound."""
    return KEYMAP.get(key)


@dataclass(slots=True)
class DashboardState:
    """What the next frame should show. Only the UI thread touches this."""

    active_tab: Tab = Tab.OVERVIEW
    process_scroll_offset: int = 0
    last_tab_switch_time: float | None = None
    refresh_requested: bool = False
    shutting_down: bool = False


def max_scroll(process_count: int, viewport_height: int) -> int:
    """Largest valid scroll offset for a list of process_count rows."""
    return max(0, process_count - max(0, viewport_height))


class DashboardStateMachine:
    """
    Applies Actions to a DashboardState.

    Direct jumps always switch tabs. Cycling is debounced: a cycle that comes
    less than tab_debounce seconds after the previous switch is dropped.
    Scrolling only applies on the Processes tab. Once QUIT has been handled
    every further action is ignored.
    """

    def __init__(
        self,
        state: DashboardState | None = None,
        tab_debounce: float = 0.15,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._state = state if state is not None else DashboardState()
        self._tab_debounce = max(0.0, tab_debounce)
        self._clock = clock

    @property
    def state(self) -> DashboardState:
        return self._state

    @property
    def tab_debounce(self) -> float:
        return self._tab_debounce

    def handle(
        self,
        action: Action | None,
        process_count: int = 0,
        viewport_height: int = 0,
        now: float | None = None,
    ) -> bool:
        """
        Apply one action.

        Args:
            action: The action to apply. None is accepted and ignored.
            process_count: Rows currently in the process list, for scroll clamping.
            viewport_height: Rows the process list can show at once.
            now: Monotonic time of the event; defaults to the clock.

        Returns:
            True if the state changed.
        """
        state = self._state
        if action is None or state.shutting_down:
            return False
        if now is None:
            now = self._clock()

        if action is Action.QUIT:
            state.shutting_down = True
            return True
        if action is Action.REFRESH:
            state.refresh_requested = True
            return True
        if action in JUMPS:
            return self._switch_to(JUMPS[action], now)
        if action in (Action.NEXT_TAB, Action.PREV_TAB):
            if not self._debounce_elapsed(now):
                return False
            tabs = list(Tab)
            step = 1 if action is Action.NEXT_TAB else -1
            index = (tabs.index(state.active_tab) + step) % len(tabs)
            return self._switch_to(tabs[index], now)
        if action in (Action.SCROLL_UP, Action.SCROLL_DOWN):
            if state.active_tab is not Tab.PROCESSES:
                return False
            step = -1 if action is Action.SCROLL_UP else 1
            return self._scroll_to(state.process_scroll_offset + step, process_count, viewport_height)
        return False

    def clamp_scroll(self, process_count: int, viewport_height: int) -> bool:
        """Pull the scroll offset back into range after the list changed size."""
        return self._scroll_to(self._state.process_scroll_offset, process_count, viewport_height)

    def take_refresh_request(self) -> bool:
        """Return whether a refresh was requested, clearing the flag."""
        requested = self._state.refresh_requested
        self._state.refresh_requested = False
        return requested

    def _debounce_elapsed(self, now: float) -> bool:
        last = self._state.last_tab_switch_time
        return last is None or now - last >= self._tab_debounce

    def _switch_to(self, tab: Tab, now: float) -> bool:
        state = self._state
        state.last_tab_switch_time = now
        if state.active_tab is tab:
            return False
        state.active_tab = tab
        state.process_scroll_offset = 0
        return True

    def _scroll_to(self, offset: int, process_count: int, viewport_height: int) -> bool:
        clamped = min(max(0, offset), max_scroll(process_count, viewport_height))
        if clamped == self._state.process_scroll_offset:
            return False
        self._state.process_scroll_offset = clamped
        return True
