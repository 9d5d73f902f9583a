"""Event stream reader.

Monitors the daemon's ``events`` endpoint, either as a background
subscription driven by a monitor token or as a bounded poll between two
points in time.
"""

import json
from datetime import datetime, timedelta, timezone
from typing import AsyncIterator, Dict, List, Optional, Union

import structlog

from ..models.events import Event
from ..models.errors import UnsupportedOperationError
from ..utils.timestamps import ts_from_now
from .streaming import JsonStreamReader, SubscriptionManager, UnitCallback

logger = structlog.get_logger(__name__)

EVENTS_PATH = "events"

Filters = Optional[Union[str, Dict[str, List[str]]]]


def encode_filters(filters: Filters) -> Optional[str]:
    """Render filters as the JSON string the daemon expects."""
    if not filters:
        return None
    if isinstance(filters, str):
        return filters
    return json.dumps(filters)


def _has_signal(event: Event) -> bool:
    # The daemon may open the stream with an empty event
    return event.has_signal()


class EventService:
    """Subscriptions to and polls of the daemon event stream."""

    def __init__(
        self,
        reader: JsonStreamReader,
        subscriptions: SubscriptionManager,
        is_swarm: bool = False,
    ):
        self._reader = reader
        self._subscriptions = subscriptions
        self._is_swarm = is_swarm

    def iter_events(
        self, filters: Filters = None, token: Optional[int] = None
    ) -> AsyncIterator[Event]:
        """Yield events as they arrive until the stream ends or ``token`` stops.

        Raises:
            StreamDecodeError: malformed or truncated event
            DockerTransportError, DockerAPIError: request failures
        """
        return self._reader.iter_models(
            EVENTS_PATH,
            Event,
            params={"filters": encode_filters(filters)},
            token=token,
            accept_first=_has_signal,
        )

    def subscribe(self, callback: UnitCallback, filters: Filters = None) -> int:
        """Start monitoring events in the background.

        ``callback(event, None)`` is called for each event in order. On
        failure ``callback(Event(), error)`` is called once and the monitor
        ends. A clean end of stream calls nothing.

        Returns:
            Monitor token; pass it to ``stop_monitor`` to end the subscription
        """
        return self._subscriptions.start(
            "events",
            lambda token: self.iter_events(filters, token=token),
            callback,
            Event,
        )

    async def events_since(
        self,
        since: timedelta,
        until: Optional[timedelta] = None,
        filters: Filters = None,
    ) -> List[Event]:
        """Collect the events between ``since`` and ``until`` ago.

        Both durations are measured back from now and sent as absolute unix
        timestamps, so the daemon closes the stream when it reaches ``until``
        (or now when ``until`` is not given).

        Raises:
            UnsupportedOperationError: the client targets a swarm manager
            StreamDecodeError: malformed or truncated event
        """
        if self._is_swarm:
            raise UnsupportedOperationError(
                "Swarm doesn't support the events polling mode"
            )

        now = datetime.now(timezone.utc)
        params = {
            "filters": encode_filters(filters),
            "since": ts_from_now(since, now),
        }
        if until is not None:
            params["until"] = ts_from_now(until, now)

        events = [
            event
            async for event in self._reader.iter_models(
                EVENTS_PATH, Event, params=params, accept_first=_has_signal
            )
        ]
        logger.debug("Polled events", count=len(events), since=params["since"])
        return events
