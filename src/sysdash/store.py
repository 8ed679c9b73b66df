"""Shared snapshot of the latest metrics, written by the sampler and read by the UI."""

import math
import threading
from dataclasses import dataclass

from sysdash.history import HistoryBuffer, Sample
from sysdash.models import (
    DiskInfo,
    MemoryInfo,
    NetworkInterfaceInfo,
    ProcessInfo,
    SystemInfo,
)
from sysdash.source import MetricsReading


@dataclass(slots=True, frozen=True)
class StoreView:
    """Consistent copy of the store, taken in a single critical section."""

    generation: int
    updated_at: float | None
    cpu_percent: float
    memory_percent: float
    memory: MemoryInfo | None
    cpu_history: tuple[Sample, ...]
    memory_history: tuple[Sample, ...]
    processes: tuple[ProcessInfo, ...]
    disks: tuple[DiskInfo, ...]
    networks: tuple[NetworkInterfaceInfo, ...]
    system: SystemInfo | None


def _usable(value: float | None) -> bool:
    return value is not None and math.isfinite(value)


class SnapshotStore:
    """
    Latest-known state of every metric category plus the CPU and memory histories.

    All writes go through commit() and all reads through read(); both take the
    same lock, so a reader sees either the whole of a cycle or none of it.
    """

    def __init__(self, cpu_history_length: int = 60, memory_history_length: int = 60) -> None:
        self._lock = threading.Lock()
        self._cpu_history = HistoryBuffer(cpu_history_length)
        self._memory_history = HistoryBuffer(memory_history_length)
        self._generation = 0
        self._updated_at: float | None = None
        self._cpu_percent = 0.0
        self._memory_percent = 0.0
        self._memory: MemoryInfo | None = None
        self._processes: tuple[ProcessInfo, ...] = ()
        self._disks: tuple[DiskInfo, ...] = ()
        self._networks: tuple[NetworkInterfaceInfo, ...] = ()
        self._system: SystemInfo | None = None

    @property
    def generation(self) -> int:
        """Number of commits applied so far."""
        with self._lock:
            return self._generation

    def commit(self, reading: MetricsReading, timestamp: float) -> None:
        """
        Apply one sampling cycle.

        Categories missing from the reading keep their previous value.
        Non-finite CPU or memory values are not pushed into the histories.
        Collections are replaced, never merged.
        """
        with self._lock:
            if _usable(reading.cpu_percent):
                self._cpu_percent = reading.cpu_percent
                self._cpu_history.push(reading.cpu_percent, timestamp)
            if reading.memory is not None and _usable(reading.memory.percent):
                self._memory = reading.memory
                self._memory_percent = reading.memory.percent
                self._memory_history.push(reading.memory.percent, timestamp)
            if reading.processes is not None:
                self._processes = tuple(reading.processes)
            if reading.disks is not None:
                self._disks = tuple(reading.disks)
            if reading.networks is not None:
                self._networks = tuple(reading.networks)
            if reading.system is not None:
                self._system = reading.system
            self._generation += 1
            self._updated_at = timestamp

    def read(self) -> StoreView:
        """Copy out the current state."""
        with self._lock:
            return StoreView(
                generation=self._generation,
                updated_at=self._updated_at,
                cpu_percent=self._cpu_percent,
                memory_percent=self._memory_percent,
                memory=self._memory,
                cpu_history=tuple(self._cpu_history),
                memory_history=tuple(self._memory_history),
                processes=self._processes,
                disks=self._disks,
                networks=self._networks,
                system=self._system,
            )
