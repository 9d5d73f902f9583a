"""Streaming services.

This package provides the readers behind the client's monitoring API:
- streaming.py: background subscriptions and the JSON stream reader
- events.py: daemon event stream
- stats.py: per-container resource usage stream
- logs.py: container log retrieval and demultiplexing
"""

from .streaming import JsonStreamReader, SubscriptionManager
from .events import EventService
from .stats import StatsService
from .logs import LogService, demultiplex, copy_raw, read_all_logs

__all__ = [
    "JsonStreamReader",
    "SubscriptionManager",
    "EventService",
    "StatsService",
    "LogService",
    "demultiplex",
    "copy_raw",
    "read_all_logs",
]
