"""Single HTTP exchanges against the daemon API.

Every request goes to ``<base>/<api-version>/<path>`` with a JSON content
type. Failures are mapped to typed errors; bodies are either buffered or
handed, still open, to a consumer that owns them until it returns.
"""

import json
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, Mapping, Optional, Union

import httpx
import structlog

from ..models.errors import DockerAPIError, DockerTransportError
from .transport import DaemonConnection

logger = structlog.get_logger(__name__)

Body = Union[bytes, str, Mapping[str, Any], list, None]
Params = Optional[Mapping[str, Any]]
ResponseConsumer = Callable[[httpx.Response], Awaitable[Any]]


def _encode_body(body: Body) -> Optional[bytes]:
    if body is None:
        return None
    if isinstance(body, bytes):
        return body
    if isinstance(body, str):
        return body.encode("utf-8")
    return json.dumps(body).encode("utf-8")


def _encode_params(params: Params) -> Optional[Dict[str, str]]:
    """Drop unset values and render booleans the way the daemon expects."""
    if not params:
        return None
    encoded = {}
    for key, value in params.items():
        if value is None:
            continue
        if isinstance(value, bool):
            encoded[key] = "true" if value else "false"
        else:
            encoded[key] = str(value)
    return encoded or None


class RequestDispatcher:
    """Issues requests over a shared ``DaemonConnection``. No retries."""

    def __init__(self, connection: DaemonConnection, api_version: str):
        self._connection = connection
        self.api_version = api_version

    def build_url(self, path: str) -> str:
        return f"{self._connection.base_url}/{self.api_version}/{path.lstrip('/')}"

    @asynccontextmanager
    async def open_stream(
        self,
        method: str,
        path: str,
        body: Body = None,
        headers: Optional[Mapping[str, str]] = None,
        params: Params = None,
    ) -> AsyncIterator[httpx.Response]:
        """Open a request and yield the response with its body unread.

        The body is released when the ``async with`` block exits, whatever
        the reason.

        Raises:
            DockerTransportError: the exchange could not be completed
            DockerAPIError: the daemon answered with status >= 400
        """
        url = self.build_url(path)
        request_headers = {"Content-Type": "application/json"}
        if headers:
            request_headers.update(headers)

        logger.debug("Sending request", method=method, url=url, params=params)
        client = self._connection.get_client()
        try:
            async with client.stream(
                method,
                url,
                content=_encode_body(body),
                headers=request_headers,
                params=_encode_params(params),
            ) as response:
                if response.status_code >= 400:
                    raise DockerAPIError(response.status_code, response.reason_phrase)
                yield response
        except httpx.TransportError as e:
            raise self._transport_error(e) from e

    async def send_request_callback(
        self,
        method: str,
        path: str,
        consumer: ResponseConsumer,
        body: Body = None,
        headers: Optional[Mapping[str, str]] = None,
        params: Params = None,
    ) -> Any:
        """Hand the open response to ``consumer`` and return its result.

        The body is released after ``consumer`` returns or raises.
        """
        async with self.open_stream(
            method, path, body=body, headers=headers, params=params
        ) as response:
            return await consumer(response)

    async def send_request(
        self,
        method: str,
        path: str,
        body: Body = None,
        headers: Optional[Mapping[str, str]] = None,
        params: Params = None,
    ) -> bytes:
        """Perform a request and return the whole response body."""

        async def _read_all(response: httpx.Response) -> bytes:
            return await response.aread()

        return await self.send_request_callback(
            method, path, _read_all, body=body, headers=headers, params=params
        )

    async def get_json(self, path: str, params: Params = None) -> Any:
        """GET ``path`` and decode the JSON body."""
        data = await self.send_request("GET", path, params=params)
        return json.loads(data) if data else None

    def _transport_error(self, error: httpx.TransportError) -> DockerTransportError:
        message = str(error) or error.__class__.__name__
        hint = (
            "connection refused" not in message.lower()
            and not self._connection.tls_enabled
        )
        logger.warning(
            "Daemon request failed",
            error=message,
            error_class=error.__class__.__name__,
            tls_hint=hint,
        )
        return DockerTransportError(message, tls_hint=hint)
