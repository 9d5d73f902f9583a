"""Transport, dispatch and monitor registry shared by every stream."""

from .transport import (
    DaemonAddress,
    DaemonConnection,
    build_http_client,
    build_tls_context,
    parse_daemon_url,
)
from .dispatcher import RequestDispatcher
from .monitors import MonitorRegistry, ReadWriteLock

__all__ = [
    "DaemonAddress",
    "DaemonConnection",
    "build_http_client",
    "build_tls_context",
    "parse_daemon_url",
    "RequestDispatcher",
    "MonitorRegistry",
    "ReadWriteLock",
]
