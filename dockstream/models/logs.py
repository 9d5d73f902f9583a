"""Log entry models for container output streams."""

from dataclasses import dataclass
from datetime import datetime
from enum import IntEnum
from typing import Optional


class StreamType(IntEnum):
    """Output stream selector carried in byte 0 of a log frame."""

    STDIN = 0
    STDOUT = 1
    STDERR = 2


@dataclass
class LogEntry:
    """One record of container output.

    In framed mode there is one entry per frame; in raw (tty) mode entries
    are attributed to stdout only.
    """

    stream: StreamType
    payload: bytes
    timestamp: Optional[datetime] = None

    @property
    def text(self) -> str:
        return self.payload.decode("utf-8", errors="replace")
