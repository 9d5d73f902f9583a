"""Stats stream reader for per-container resource usage."""

from contextlib import aclosing
from typing import AsyncIterator, Optional

from ..models.errors import StreamDecodeError
from ..models.stats import Stats
from .streaming import JsonStreamReader, SubscriptionManager, UnitCallback


def stats_path(container_id: str) -> str:
    return f"containers/{container_id}/stats"


class StatsService:
    """Resource-usage monitoring for containers."""

    def __init__(self, reader: JsonStreamReader, subscriptions: SubscriptionManager):
        self._reader = reader
        self._subscriptions = subscriptions

    def iter_stats(
        self, container_id: str, token: Optional[int] = None
    ) -> AsyncIterator[Stats]:
        """Yield every snapshot the daemon sends for ``container_id``."""
        return self._reader.iter_models(stats_path(container_id), Stats, token=token)

    def subscribe(self, container_id: str, callback: UnitCallback) -> int:
        """Start monitoring ``container_id`` in the background.

        Same callback rules as event subscriptions; every snapshot is
        forwarded.
        """
        return self._subscriptions.start(
            "stats",
            lambda token: self.iter_stats(container_id, token=token),
            callback,
            Stats,
        )

    async def get_stats(self, container_id: str) -> Stats:
        """Return the first snapshot and close the stream.

        Raises:
            StreamDecodeError: the stream ended before any snapshot
        """
        async with aclosing(self.iter_stats(container_id)) as snapshots:
            async for snapshot in snapshots:
                return snapshot
        raise StreamDecodeError(f"stats stream for {container_id} ended without data")
