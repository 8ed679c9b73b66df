"""Host metrics collection for sysdash."""

import time
from dataclasses import dataclass, field
from typing import Protocol

import psutil

from sysdash.models import (
    DiskInfo,
    MemoryInfo,
    NetworkInterfaceInfo,
    ProcessInfo,
    SystemInfo,
)

CPU = "cpu"
MEMORY = "memory"
PROCESSES = "processes"
DISKS = "disks"
NETWORKS = "networks"
SYSTEM = "system"

CATEGORIES = (CPU, MEMORY, PROCESSES, DISKS, NETWORKS, SYSTEM)


@dataclass(slots=True)
class MetricsReading:
    """
    One pull from a metrics source.

    A category left as None was not collected this cycle. A category that
    failed is also None and has a message in ``errors`` keyed by its name.
    """

    cpu_percent: float | None = None
    memory: MemoryInfo | None = None
    processes: tuple[ProcessInfo, ...] | None = None
    disks: tuple[DiskInfo, ...] | None = None
    networks: tuple[NetworkInterfaceInfo, ...] | None = None
    system: SystemInfo | None = None
    errors: dict[str, str] = field(default_factory=dict)


class MetricsSource(Protocol):
    """Anything that can produce a point-in-time MetricsReading."""

    def read(self) -> MetricsReading: ...


class PsutilMetricsSource:
    """
    Metrics source backed by psutil.

    Every category is collected independently, so a failure reading disks
    does not cost the CPU sample. Processes that vanish or deny access
    mid-iteration are skipped.
    """

    def __init__(
        self,
        collect_processes: bool = True,
        collect_disks: bool = True,
        collect_networks: bool = True,
    ) -> None:
        self.collect_processes = collect_processes
        self.collect_disks = collect_disks
        self.collect_networks = collect_networks
        # Prime CPU percent (first call returns 0.0)
        psutil.cpu_percent(interval=None)

    def read(self) -> MetricsReading:
        reading = MetricsReading()
        collectors = [
            (CPU, "cpu_percent", self._collect_cpu),
            (MEMORY, "memory", self._collect_memory),
            (SYSTEM, "system", self._collect_system),
        ]
        if self.collect_processes:
            collectors.append((PROCESSES, "processes", self._collect_processes))
        if self.collect_disks:
            collectors.append((DISKS, "disks", self._collect_disks))
        if self.collect_networks:
            collectors.append((NETWORKS, "networks", self._collect_networks))

        for category, attr, collect in collectors:
            try:
                setattr(reading, attr, collect())
            except (psutil.Error, OSError, RuntimeError) as e:
                reading.errors[category] = f"{type(e).__name__}: {e}"
        return reading

    def _collect_cpu(self) -> float:
        return float(psutil.cpu_percent(interval=None))

    def _collect_memory(self) -> MemoryInfo:
        mem = psutil.virtual_memory()
        return MemoryInfo(percent=float(mem.percent), used_bytes=mem.used, total_bytes=mem.total)

    def _collect_system(self) -> SystemInfo:
        boot_time = psutil.boot_time()
        load_avg = psutil.getloadavg()
        return SystemInfo(
            uptime_seconds=max(0.0, time.time() - boot_time),
            load_averages=(load_avg[0], load_avg[1], load_avg[2]),
            process_count=len(psutil.pids()),
            boot_time=boot_time,
            cpu_count=psutil.cpu_count() or 1,
        )

    def _collect_processes(self) -> tuple[ProcessInfo, ...]:
        """
        Collect readings for all running processes.

        Handles NoSuchProcess, AccessDenied and ZombieProcess per process.
        """
        processes: list[ProcessInfo] = []

        for proc in psutil.process_iter(attrs=["pid", "name", "cpu_percent", "memory_info"]):
            try:
                info = proc.info
                mem_info = info.get("memory_info")
                processes.append(
                    ProcessInfo(
                        pid=info.get("pid", 0),
                        name=info.get("name") or "",
                        cpu_percent=info.get("cpu_percent") or 0.0,
                        memory_bytes=mem_info.rss if mem_info else 0,
                    )
                )
            except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess):
                continue

        return tuple(processes)

    def _collect_disks(self) -> tuple[DiskInfo, ...]:
        disks: list[DiskInfo] = []
        for part in psutil.disk_partitions(all=False):
            try:
                usage = psutil.disk_usage(part.mountpoint)
            except OSError:
                # Unready removable media, permission-restricted mounts
                continue
            disks.append(
                DiskInfo(
                    name=part.device,
                    mount_point=part.mountpoint,
                    file_system=part.fstype,
                    total_bytes=usage.total,
                    used_bytes=usage.used,
                )
            )
        return tuple(disks)

    def _collect_networks(self) -> tuple[NetworkInterfaceInfo, ...]:
        counters = psutil.net_io_counters(pernic=True)
        return tuple(
            NetworkInterfaceInfo(
                name=name,
                bytes_received=io.bytes_recv,
                bytes_sent=io.bytes_sent,
                packets_received=io.packets_recv,
                packets_sent=io.packets_sent,
            )
            for name, io in sorted(counters.items())
        )
