"""Async client for a container engine's remote API, focused on streams.

Events, resource stats and container logs are exposed as background
monitors (callback + token) and as async iterators, all over one shared
connection pool.
"""

from .client import DockerClient
from .core.monitors import MonitorRegistry
from .models import (
    Actor,
    AuthConfig,
    ContainerDetail,
    DockerAPIError,
    DockerInfo,
    DockerTransportError,
    DockStreamError,
    Event,
    LogEntry,
    Stats,
    StreamDecodeError,
    StreamType,
    UnsupportedOperationError,
    Version,
    is_not_found,
    is_server_internal_error,
)

__version__ = "0.1.0"

__all__ = [
    "DockerClient",
    "MonitorRegistry",
    "Actor",
    "AuthConfig",
    "ContainerDetail",
    "DockerAPIError",
    "DockerInfo",
    "DockerTransportError",
    "DockStreamError",
    "Event",
    "LogEntry",
    "Stats",
    "StreamDecodeError",
    "StreamType",
    "UnsupportedOperationError",
    "Version",
    "is_not_found",
    "is_server_internal_error",
]
