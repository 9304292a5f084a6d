"""
CPU, memory and disk figures for the machine running the API.
"""

import psutil

from pgmonitor.formatting import format_bytes
from pgmonitor.models import CpuUsage, DiskUsage, HostMetrics, MemoryUsage


def prime_cpu_percent() -> None:
    """psutil.cpu_percent(interval=None) reports 0.0 on its first call;
    calling it once at startup makes later readings meaningful."""
    psutil.cpu_percent(interval=None)


def collect_host_metrics(disk_path: str = "/") -> HostMetrics:
    memory = psutil.virtual_memory()
    disk = psutil.disk_usage(disk_path)
    return HostMetrics(
        cpu=CpuUsage(
            usage=round(psutil.cpu_percent(interval=None), 1),
            cores=psutil.cpu_count() or 0,
        ),
        memory=MemoryUsage(
            used=format_bytes(memory.used),
            total=format_bytes(memory.total),
            usage_percent=round(memory.percent, 1),
        ),
        disk=DiskUsage(
            used=format_bytes(disk.used),
            total=format_bytes(disk.total),
            usage_percent=round(disk.percent, 1),
            free=format_bytes(disk.free),
        ),
    )
