"""Background sampling engine for sysdash."""

import math
import threading
import time
from collections.abc import Callable, Iterable

import structlog

from sysdash.models import ProcessInfo
from sysdash.source import CPU, MEMORY, MetricsReading, MetricsSource
from sysdash.store import SnapshotStore

log = structlog.get_logger()

MIN_REFRESH_INTERVAL = 0.1  # seconds


def sort_processes(
    processes: Iterable[ProcessInfo], limit: int | None = None
) -> tuple[ProcessInfo, ...]:
    """Order processes by CPU usage descending, ties by ascending PID, then cap."""
    ordered = sorted(processes, key=lambda p: (-p.cpu_percent, p.pid))
    if limit is not None and limit > 0:
        ordered = ordered[:limit]
    return tuple(ordered)


class Sampler:
    """
    Periodically pulls a MetricsSource and commits each reading to a SnapshotStore.

    Runs in a daemon thread. A failing category keeps its previous value and
    is logged; the loop itself never dies on a bad reading. request_refresh()
    runs the next cycle immediately and restarts the interval from there.
    """

    def __init__(
        self,
        source: MetricsSource,
        store: SnapshotStore,
        refresh_interval: float = 1.0,
        max_processes: int | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """
        Initialize the Sampler.

        Args:
            source: Where readings come from.
            store: Where readings are committed.
            refresh_interval: Seconds between cycles, floored at MIN_REFRESH_INTERVAL.
            max_processes: Keep only the top N processes by CPU. None or 0 keeps all.
            clock: Monotonic time source used for sample timestamps.
        """
        self._source = source
        self._store = store
        self._refresh_interval = max(MIN_REFRESH_INTERVAL, refresh_interval)
        self._max_processes = max_processes
        self._clock = clock
        self._stop_event = threading.Event()
        self._wake_event = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def refresh_interval(self) -> float:
        """Get the current refresh interval."""
        return self._refresh_interval

    @refresh_interval.setter
    def refresh_interval(self, value: float) -> None:
        """Set the refresh interval."""
        self._refresh_interval = max(MIN_REFRESH_INTERVAL, value)

    @property
    def is_running(self) -> bool:
        """Check if the sampler thread is running."""
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start the sampling thread."""
        if self.is_running:
            return

        self._stop_event.clear()
        self._wake_event.clear()
        self._thread = threading.Thread(
            target=self._poll_loop,
            daemon=True,
            name="Sampler",
        )
        self._thread.start()
        log.debug("sampler_started", interval=self._refresh_interval)

    def stop(self, timeout: float | None = 5.0) -> None:
        """
        Stop the sampling thread. The next scheduled cycle is abandoned.

        Args:
            timeout: How long to wait for thread to stop (seconds).
        """
        self._stop_event.set()
        self._wake_event.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            self._thread = None
            log.debug("sampler_stopped")

    def request_refresh(self) -> None:
        """Run the next cycle now instead of waiting for the timer."""
        self._wake_event.set()

    def _poll_loop(self) -> None:
        """Main polling loop running in the background thread."""
        while not self._stop_event.is_set():
            # Requests arriving during the cycle below trigger another one right away
            self._wake_event.clear()
            try:
                self.sample_once()
            except Exception:
                log.exception("sample_cycle_failed")

            forced = self._wake_event.wait(timeout=self._refresh_interval)
            if forced and not self._stop_event.is_set():
                log.debug("refresh_forced")

    def sample_once(self) -> MetricsReading | None:
        """
        Run a single sampling cycle and commit it.

        Returns the reading that was committed, or None if the source raised.
        """
        timestamp = self._clock()
        try:
            reading = self._source.read()
        except Exception:
            log.exception("metrics_source_failed")
            return None

        if reading.cpu_percent is not None and not math.isfinite(reading.cpu_percent):
            reading.errors[CPU] = f"non-finite value {reading.cpu_percent!r}"
            reading.cpu_percent = None
        if reading.memory is not None and not math.isfinite(reading.memory.percent):
            reading.errors[MEMORY] = f"non-finite value {reading.memory.percent!r}"
            reading.memory = None

        for category, message in reading.errors.items():
            log.warning("metrics_unavailable", category=category, error=message)

        if reading.processes is not None:
            reading.processes = sort_processes(reading.processes, self._max_processes)

        self._store.commit(reading, timestamp)
        return reading
