"""Resource usage snapshot models for the per-container stats stream."""

# Standard library imports
from datetime import datetime
from typing import Dict, List, Optional

# Third-party imports
from pydantic import BaseModel, ConfigDict, Field

# Local application imports
from ..utils.timestamps import parse_timestamp


class _StatsModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")


class NetworkStats(_StatsModel):
    """Interface counters."""

    rx_bytes: int = 0
    rx_packets: int = 0
    rx_errors: int = 0
    rx_dropped: int = 0
    tx_bytes: int = 0
    tx_packets: int = 0
    tx_errors: int = 0
    tx_dropped: int = 0


class MemoryStats(_StatsModel):
    """cgroup memory counters."""

    usage: int = 0
    max_usage: int = 0
    failcnt: int = 0
    limit: int = 0
    stats: Dict[str, int] = Field(default_factory=dict)


class CpuUsage(_StatsModel):
    total_usage: int = 0
    percpu_usage: List[int] = Field(default_factory=list)
    usage_in_kernelmode: int = 0
    usage_in_usermode: int = 0


class ThrottlingData(_StatsModel):
    periods: int = 0
    throttled_periods: int = 0
    throttled_time: int = 0


class CpuStats(_StatsModel):
    """CPU counters at one sampling point."""

    cpu_usage: CpuUsage = Field(default_factory=CpuUsage)
    system_cpu_usage: int = 0
    online_cpus: int = 0
    throttling_data: ThrottlingData = Field(default_factory=ThrottlingData)


class BlkioEntry(_StatsModel):
    major: int = 0
    minor: int = 0
    op: str = ""
    value: int = 0


class BlkioStats(_StatsModel):
    io_service_bytes_recursive: Optional[List[BlkioEntry]] = None
    io_serviced_recursive: Optional[List[BlkioEntry]] = None


class Stats(_StatsModel):
    """One resource-usage snapshot.

    ``precpu_stats`` holds the previous sample so that a CPU percentage can be
    derived from a single snapshot.
    """

    read: Optional[str] = None
    network: Optional[NetworkStats] = None
    networks: Optional[Dict[str, NetworkStats]] = None
    memory_stats: MemoryStats = Field(default_factory=MemoryStats)
    cpu_stats: CpuStats = Field(default_factory=CpuStats)
    precpu_stats: CpuStats = Field(default_factory=CpuStats)
    blkio_stats: BlkioStats = Field(default_factory=BlkioStats)

    @property
    def read_at(self) -> Optional[datetime]:
        """Sampling time parsed from ``read``."""
        if not self.read:
            return None
        return parse_timestamp(self.read)

    @property
    def memory_usage_mb(self) -> float:
        return self.memory_stats.usage / (1024 * 1024)

    def memory_percent(self) -> float:
        """Memory usage as a percentage of the cgroup limit."""
        if not self.memory_stats.limit:
            return 0.0
        return self.memory_stats.usage / self.memory_stats.limit * 100.0

    def cpu_percent(self) -> float:
        """CPU usage between the previous and current sample, scaled by CPUs."""
        cpu_delta = (
            self.cpu_stats.cpu_usage.total_usage
            - self.precpu_stats.cpu_usage.total_usage
        )
        system_delta = self.cpu_stats.system_cpu_usage - self.precpu_stats.system_cpu_usage
        if cpu_delta <= 0 or system_delta <= 0:
            return 0.0
        cpus = self.cpu_stats.online_cpus or len(self.cpu_stats.cpu_usage.percpu_usage) or 1
        return cpu_delta / system_delta * cpus * 100.0

    def total_network_io(self) -> NetworkStats:
        """Counters summed over all interfaces (or the single legacy block)."""
        if self.networks:
            total = NetworkStats()
            for iface in self.networks.values():
                for name in NetworkStats.model_fields:
                    setattr(total, name, getattr(total, name) + getattr(iface, name))
            return total
        return self.network or NetworkStats()
