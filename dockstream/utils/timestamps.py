"""Timestamp helpers for daemon wire formats."""

import re
from datetime import datetime, timedelta, timezone
from typing import Optional

# RFC 3339 with up to nanosecond precision, as the daemon emits it
_RFC3339_RE = re.compile(
    r"^(?P<base>\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2})"
    r"(?:\.(?P<frac>\d{1,9}))?"
    r"(?P<tz>Z|[+-]\d{2}:\d{2})$"
)


def parse_timestamp(value: str) -> datetime:
    """Parse an RFC 3339 timestamp, truncating precision to microseconds.

    Raises:
        ValueError: if ``value`` is not a valid timestamp
    """
    match = _RFC3339_RE.match(value.strip())
    if not match:
        raise ValueError(f"invalid timestamp: {value!r}")

    frac = (match.group("frac") or "")[:6].ljust(6, "0")
    tz = match.group("tz")
    if tz == "Z":
        tz = "+00:00"
    return datetime.fromisoformat(f"{match.group('base')}.{frac}{tz}")


def ts_from_now(duration: timedelta, now: Optional[datetime] = None) -> int:
    """Unix seconds of the instant ``duration`` before ``now``."""
    if now is None:
        now = datetime.now(timezone.utc)
    return int((now - duration).timestamp())
