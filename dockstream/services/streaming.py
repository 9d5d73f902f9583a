"""Background consumers for long-lived streaming responses.

Each subscription is an asyncio task that drains one async iterator of
decoded units and hands every unit to a callback. The iterator checks the
monitor registry between units, so stopping a monitor ends the task after
the unit in flight, and the response body is released on the way out.

Callback contract:
    callback(unit, None) for every unit, in arrival order
    callback(empty_unit, error) at most once, after which the task ends
    nothing at all on a clean end-of-stream
"""

import asyncio
import inspect
from contextlib import aclosing
from typing import (
    Any,
    AsyncIterator,
    Awaitable,
    Callable,
    Dict,
    Mapping,
    Optional,
    Set,
    TypeVar,
    Union,
)

import structlog
from pydantic import ValidationError

from ..core.dispatcher import RequestDispatcher
from ..core.monitors import MonitorRegistry
from ..models.errors import StreamDecodeError
from ..utils.json_stream import DEFAULT_MAX_UNIT_BYTES, iter_json_values

logger = structlog.get_logger(__name__)

T = TypeVar("T")

UnitCallback = Callable[[Any, Optional[Exception]], Union[None, Awaitable[None]]]


class SubscriptionManager:
    """Owns the background tasks behind monitor tokens."""

    def __init__(self, registry: MonitorRegistry):
        self._registry = registry
        self._tasks: Dict[int, asyncio.Task] = {}
        # Tokens allocated here; the registry may also hold other clients' tokens
        self._tokens: Set[int] = set()

    def start(
        self,
        kind: str,
        source: Callable[[int], AsyncIterator[T]],
        callback: UnitCallback,
        empty: Callable[[], T],
    ) -> int:
        """Register a token and schedule a consumer; returns immediately.

        Args:
            kind: Stream name used in logs and task names
            source: Builds the unit iterator for the new token
            callback: Receives ``(unit, None)`` or ``(empty(), error)``
            empty: Zero-value unit passed along with an error

        Must be called from a running event loop.
        """
        token = self._registry.new_token()
        self._tokens.add(token)
        task = asyncio.create_task(
            self._run(kind, token, source(token), callback, empty),
            name=f"dockstream-{kind}-{token}",
        )
        self._tasks[token] = task
        task.add_done_callback(lambda _t, _token=token: self._tasks.pop(_token, None))
        logger.info("Monitor started", kind=kind, token=token)
        return token

    def stop(self, token: int) -> None:
        self._registry.stop(token)
        self._tokens.discard(token)

    def task_for(self, token: int) -> Optional[asyncio.Task]:
        """The consumer task of a running subscription, if any."""
        return self._tasks.get(token)

    @property
    def active_count(self) -> int:
        return len(self._tasks)

    async def close(self) -> None:
        """Stop the monitors started here and wait for their consumers to exit."""
        for token in self._tokens:
            self._registry.stop(token)
        self._tokens.clear()
        tasks = list(self._tasks.values())
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()

    async def _run(
        self,
        kind: str,
        token: int,
        units: AsyncIterator[T],
        callback: UnitCallback,
        empty: Callable[[], T],
    ) -> None:
        delivered = 0
        try:
            async with aclosing(units):
                async for unit in units:
                    delivered += 1
                    await self._invoke(kind, token, callback, unit, None)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(
                "Monitor stream failed",
                kind=kind,
                token=token,
                error=str(e),
                delivered=delivered,
            )
            await self._invoke(kind, token, callback, empty(), e)
        finally:
            logger.info(
                "Monitor finished",
                kind=kind,
                token=token,
                delivered=delivered,
                live=self._registry.is_live(token),
            )

    @staticmethod
    async def _invoke(
        kind: str,
        token: int,
        callback: UnitCallback,
        unit: Any,
        error: Optional[Exception],
    ) -> None:
        try:
            result = callback(unit, error)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            logger.warning(
                "Monitor callback raised",
                kind=kind,
                token=token,
                error=str(e),
                exc_info=True,
            )


class JsonStreamReader:
    """Decodes a GET response of concatenated JSON values into models."""

    def __init__(
        self,
        dispatcher: RequestDispatcher,
        registry: MonitorRegistry,
        max_unit_bytes: int = DEFAULT_MAX_UNIT_BYTES,
    ):
        self._dispatcher = dispatcher
        self._registry = registry
        self._max_unit_bytes = max_unit_bytes

    async def iter_models(
        self,
        path: str,
        model: type,
        params: Optional[Mapping[str, Any]] = None,
        token: Optional[int] = None,
        accept_first: Optional[Callable[[Any], bool]] = None,
    ) -> AsyncIterator[Any]:
        """Yield one ``model`` instance per decoded value.

        Args:
            path: API path to GET
            model: pydantic model each value is validated into
            params: Query parameters
            token: When given, stop as soon as the monitor is no longer live
            accept_first: Predicate for the first unit; a rejected first
                unit is dropped silently

        Raises:
            StreamDecodeError: malformed or truncated value, or a value the
                model rejects
            DockerTransportError, DockerAPIError: from the request itself
        """
        if token is not None and not self._registry.is_live(token):
            return

        async with self._dispatcher.open_stream("GET", path, params=params) as response:
            first = True
            values = iter_json_values(response.aiter_bytes(), self._max_unit_bytes)
            async with aclosing(values):
                async for value in values:
                    if token is not None and not self._registry.is_live(token):
                        logger.debug("Monitor no longer live", path=path, token=token)
                        return
                    unit = _validate(model, value)
                    if first:
                        first = False
                        if accept_first is not None and not accept_first(unit):
                            continue
                    yield unit


def _validate(model: type, value: Any) -> Any:
    try:
        return model.model_validate(value)
    except ValidationError as e:
        raise StreamDecodeError(
            f"unexpected {model.__name__} payload: {e.error_count()} validation error(s)"
        ) from e
