"""Container log retrieval and demultiplexing.

A container created without a tty writes its output to the logs endpoint
in frames:

    byte 0      stream (0 stdin, 1 stdout, 2 stderr)
    bytes 1-3   reserved
    bytes 4-7   payload length, big-endian uint32
    payload

A container with a tty writes raw bytes with no framing at all. The byte
stream does not say which of the two it is, so callers pass ``tty``
explicitly (see ``ContainerDetail.tty``).
"""

import struct
from contextlib import aclosing
from typing import AsyncIterator, List, Optional

import httpx
import structlog

from ..core.dispatcher import RequestDispatcher
from ..core.monitors import MonitorRegistry
from ..models.errors import StreamDecodeError
from ..models.logs import LogEntry, StreamType
from ..utils.timestamps import parse_timestamp
from .streaming import SubscriptionManager, UnitCallback

logger = structlog.get_logger(__name__)

FRAME_HEADER = struct.Struct(">BxxxL")


class _ChunkReader:
    """Exact-size reads over an async iterator of byte chunks."""

    def __init__(self, chunks: AsyncIterator[bytes]):
        self._chunks = chunks.__aiter__()
        self._buffer = bytearray()
        self._eof = False

    async def read_exact(self, size: int) -> bytes:
        """Return ``size`` bytes, or fewer only if the stream ended first."""
        while len(self._buffer) < size and not self._eof:
            try:
                self._buffer += await self._chunks.__anext__()
            except StopAsyncIteration:
                self._eof = True
        data = bytes(self._buffer[:size])
        del self._buffer[:size]
        return data


def _split_timestamp(stream: StreamType, payload: bytes) -> LogEntry:
    token, _, rest = payload.partition(b" ")
    try:
        timestamp = parse_timestamp(token.decode("ascii"))
    except (UnicodeDecodeError, ValueError) as e:
        raise StreamDecodeError(f"log frame has no leading timestamp: {e}") from e
    return LogEntry(stream=stream, payload=rest, timestamp=timestamp)


async def demultiplex(
    chunks: AsyncIterator[bytes], timestamps: bool = False
) -> AsyncIterator[LogEntry]:
    """Yield one LogEntry per frame.

    Ends silently at end of stream on a frame boundary.

    Raises:
        StreamDecodeError: truncated header or payload, unknown stream byte,
            or a missing timestamp when ``timestamps`` is set
    """
    reader = _ChunkReader(chunks)
    while True:
        header = await reader.read_exact(FRAME_HEADER.size)
        if not header:
            return
        if len(header) < FRAME_HEADER.size:
            raise StreamDecodeError(
                f"truncated frame header: {len(header)} of {FRAME_HEADER.size} bytes"
            )

        stream_id, length = FRAME_HEADER.unpack(header)
        try:
            stream = StreamType(stream_id)
        except ValueError:
            raise StreamDecodeError(
                f"unknown stream type {stream_id} in frame header"
            ) from None

        payload = await reader.read_exact(length)
        if len(payload) < length:
            raise StreamDecodeError(
                f"truncated frame payload: {len(payload)} of {length} bytes"
            )

        if timestamps:
            yield _split_timestamp(stream, payload)
        else:
            yield LogEntry(stream=stream, payload=payload)


async def copy_raw(chunks: AsyncIterator[bytes]) -> AsyncIterator[LogEntry]:
    """Yield tty output as stdout entries, one per received chunk."""
    async for chunk in chunks:
        if chunk:
            yield LogEntry(stream=StreamType.STDOUT, payload=chunk)


async def read_all_logs(
    chunks: AsyncIterator[bytes], tty: bool, timestamps: bool = False
) -> List[LogEntry]:
    """Decode a whole log body.

    Raw (tty) output comes back as a single stdout entry holding every byte,
    or no entry when the body is empty.
    """
    if tty:
        data = b"".join([chunk async for chunk in chunks])
        return [LogEntry(stream=StreamType.STDOUT, payload=data)] if data else []
    return [entry async for entry in demultiplex(chunks, timestamps)]


def logs_path(container_id: str) -> str:
    return f"containers/{container_id}/logs"


def _log_params(
    stdout: bool, stderr: bool, timestamps: bool, tail: Optional[int], follow: bool
) -> dict:
    params = {
        "stdout": stdout,
        "stderr": stderr,
        "timestamps": timestamps,
        "follow": follow,
    }
    if tail is not None and tail >= 0:
        params["tail"] = tail
    return params


class LogService:
    """Log retrieval for containers, one-shot or followed."""

    def __init__(
        self,
        dispatcher: RequestDispatcher,
        registry: MonitorRegistry,
        subscriptions: SubscriptionManager,
    ):
        self._dispatcher = dispatcher
        self._registry = registry
        self._subscriptions = subscriptions

    async def container_logs(
        self,
        container_id: str,
        tty: bool,
        stdout: bool = True,
        stderr: bool = True,
        timestamps: bool = False,
        tail: Optional[int] = None,
    ) -> List[LogEntry]:
        """Fetch the logs written so far (no follow)."""

        async def _consume(response: httpx.Response) -> List[LogEntry]:
            return await read_all_logs(response.aiter_bytes(), tty, timestamps)

        entries = await self._dispatcher.send_request_callback(
            "GET",
            logs_path(container_id),
            _consume,
            params=_log_params(stdout, stderr, timestamps, tail, follow=False),
        )
        logger.debug(
            "Fetched container logs",
            container_id=container_id[:12],
            entries=len(entries),
            tty=tty,
        )
        return entries

    async def iter_logs(
        self,
        container_id: str,
        tty: bool,
        stdout: bool = True,
        stderr: bool = True,
        timestamps: bool = False,
        tail: Optional[int] = None,
        follow: bool = False,
        token: Optional[int] = None,
    ) -> AsyncIterator[LogEntry]:
        """Yield log entries as they arrive.

        With a ``token``, stops as soon as the monitor is no longer live.
        """
        if token is not None and not self._registry.is_live(token):
            return

        async with self._dispatcher.open_stream(
            "GET",
            logs_path(container_id),
            params=_log_params(stdout, stderr, timestamps, tail, follow),
        ) as response:
            chunks = response.aiter_bytes()
            entries = copy_raw(chunks) if tty else demultiplex(chunks, timestamps)
            async with aclosing(entries):
                async for entry in entries:
                    if token is not None and not self._registry.is_live(token):
                        return
                    yield entry

    def subscribe(
        self,
        container_id: str,
        callback: UnitCallback,
        tty: bool,
        stdout: bool = True,
        stderr: bool = True,
        timestamps: bool = False,
        tail: Optional[int] = None,
    ) -> int:
        """Follow the logs of ``container_id`` in the background.

        Same callback rules as event subscriptions.
        """
        return self._subscriptions.start(
            "logs",
            lambda token: self.iter_logs(
                container_id,
                tty,
                stdout=stdout,
                stderr=stderr,
                timestamps=timestamps,
                tail=tail,
                follow=True,
                token=token,
            ),
            callback,
            lambda: LogEntry(stream=StreamType.STDOUT, payload=b""),
        )
