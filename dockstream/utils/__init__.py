"""Utility modules for the dockstream client."""

from .logging import setup_logging, get_logger
from .timestamps import parse_timestamp, ts_from_now

__all__ = [
    "setup_logging",
    "get_logger",
    "parse_timestamp",
    "ts_from_now",
]
