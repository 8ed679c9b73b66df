"""Shared test fixtures for sysdash."""

import pytest

from sysdash.models import (
    DiskInfo,
    MemoryInfo,
    NetworkInterfaceInfo,
    ProcessInfo,
    SystemInfo,
)
from sysdash.source import MetricsReading


def make_process(pid: int, cpu: float = 0.0, name: str | None = None, rss: int = 1024) -> ProcessInfo:
    """Create a ProcessInfo for testing."""
    return ProcessInfo(pid=pid, name=name or f"proc{pid}", cpu_percent=cpu, memory_bytes=rss)


def make_system(process_count: int = 3) -> SystemInfo:
    return SystemInfo(
        uptime_seconds=3600.0,
        load_averages=(1.0, 0.5, 0.25),
        process_count=process_count,
        boot_time=1_700_000_000.0,
        cpu_count=4,
    )


def make_reading(
    cpu: float | None = 10.0,
    mem: float | None = 50.0,
    processes: tuple[ProcessInfo, ...] | None = None,
    disks: tuple[DiskInfo, ...] | None = None,
    networks: tuple[NetworkInterfaceInfo, ...] | None = None,
    system: SystemInfo | None = None,
    errors: dict[str, str] | None = None,
) -> MetricsReading:
    """Create a MetricsReading with sensible defaults for every category."""
    return MetricsReading(
        cpu_percent=cpu,
        memory=None if mem is None else MemoryInfo(percent=mem, used_bytes=8 * 1024**3, total_bytes=16 * 1024**3),
        processes=(make_process(1, 5.0), make_process(2, 1.0)) if processes is None else processes,
        disks=(DiskInfo("/dev/sda1", "/", "ext4", 100 * 1024**3, 40 * 1024**3),) if disks is None else disks,
        networks=(NetworkInterfaceInfo("eth0", 1000, 2000, 10, 20),) if networks is None else networks,
        system=make_system() if system is None else system,
        errors=dict(errors or {}),
    )


class ScriptedSource:
    """MetricsSource that replays queued readings, then repeats a default one."""

    def __init__(self, *readings: MetricsReading, default: MetricsReading | None = None) -> None:
        self._queue = list(readings)
        self._default = default
        self.calls = 0

    def push(self, reading: MetricsReading) -> None:
        self._queue.append(reading)

    def read(self) -> MetricsReading:
        self.calls += 1
        if self._queue:
            return self._queue.pop(0)
        return self._default if self._default is not None else make_reading()


class FailingSource:
    """MetricsSource whose read() always raises."""

    def __init__(self) -> None:
        self.calls = 0

    def read(self) -> MetricsReading:
        self.calls += 1
        raise RuntimeError("source exploded")


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def scripted_source() -> ScriptedSource:
    return ScriptedSource()
