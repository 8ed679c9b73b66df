"""Data models for sysdash."""

from dataclasses import dataclass


@dataclass(slots=True, frozen=True)
class ProcessInfo:
    """Immutable reading of a single process."""

    pid: int
    name: str
    cpu_percent: float  # 0.0 - 100.0 * core_count
    memory_bytes: int  # RSS


@dataclass(slots=True, frozen=True)
class DiskInfo:
    """Usage of one mounted filesystem."""

    name: str
    mount_point: str
    file_system: str
    total_bytes: int
    used_bytes: int

    @property
    def usage_percent(self) -> float:
        if self.total_bytes <= 0:
            return 0.0
        return self.used_bytes / self.total_bytes * 100.0


@dataclass(slots=True, frozen=True)
class NetworkInterfaceInfo:
    """Cumulative traffic counters for one network interface."""

    name: str
    bytes_received: int
    bytes_sent: int
    packets_received: int
    packets_sent: int


@dataclass(slots=True, frozen=True)
class MemoryInfo:
    """Virtual memory reading."""

    percent: float
    used_bytes: int
    total_bytes: int


@dataclass(slots=True, frozen=True)
class SystemInfo:
    """Host-wide information, replaced wholesale every cycle."""

    uptime_seconds: float
    load_averages: tuple[float, float, float]
    process_count: int
    boot_time: float  # Epoch seconds
    cpu_count: int
