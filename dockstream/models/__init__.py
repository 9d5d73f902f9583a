"""Data models for the dockstream client."""

from .events import Actor, Event, SwarmNode
from .stats import (
    Stats,
    CpuStats,
    CpuUsage,
    MemoryStats,
    NetworkStats,
    BlkioStats,
)
from .logs import LogEntry, StreamType
from .auth import AuthConfig
from .system import Version, DockerInfo, ContainerDetail
from .errors import (
    ErrorType,
    DockStreamError,
    DockerTransportError,
    DockerAPIError,
    StreamDecodeError,
    UnsupportedOperationError,
    is_not_found,
    is_server_internal_error,
)

__all__ = [
    # Event models
    "Actor",
    "Event",
    "SwarmNode",
    # Stats models
    "Stats",
    "CpuStats",
    "CpuUsage",
    "MemoryStats",
    "NetworkStats",
    "BlkioStats",
    # Log models
    "LogEntry",
    "StreamType",
    # Misc models
    "AuthConfig",
    "Version",
    "DockerInfo",
    "ContainerDetail",
    # Error models
    "ErrorType",
    "DockStreamError",
    "DockerTransportError",
    "DockerAPIError",
    "StreamDecodeError",
    "UnsupportedOperationError",
    "is_not_found",
    "is_server_internal_error",
]
