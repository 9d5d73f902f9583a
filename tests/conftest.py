"""Pytest configuration and shared fixtures."""

import asyncio
import json
from typing import Any, Dict, List, Optional, Tuple

import httpx
import pytest
import pytest_asyncio

from dockstream import DockerClient


class ChunkedStream(httpx.AsyncByteStream):
    """Response body delivered chunk by chunk.

    An exception instance among the chunks is raised when reached, and an
    ``asyncio.Event`` holds the body back until it is set.
    """

    def __init__(self, chunks):
        self.chunks = list(chunks)
        self.sent = 0
        self.closed = False

    async def __aiter__(self):
        for chunk in self.chunks:
            if isinstance(chunk, asyncio.Event):
                await chunk.wait()
                continue
            if isinstance(chunk, BaseException):
                raise chunk
            self.sent += 1
            yield chunk

    async def aclose(self):
        self.closed = True


class DaemonStub:
    """In-memory daemon answering requests by API path."""

    def __init__(self, api_version: str = "v1.17"):
        self.api_version = api_version
        self.routes: Dict[str, Tuple[int, list, Optional[Exception]]] = {}
        self.requests: List[httpx.Request] = []
        self.streams: List[ChunkedStream] = []

    def route(self, path: str, chunks=(), status: int = 200, error: Exception = None):
        self.routes[path] = (status, list(chunks), error)

    def route_json(self, path: str, *values: Any):
        """Serve each value as its own chunk, newline-terminated."""
        self.route(path, [json.dumps(v).encode() + b"\n" for v in values])

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.path.startswith(f"/{self.api_version}/"):
            path = request.url.path[len(self.api_version) + 2:]
        else:
            path = request.url.path.lstrip("/")
        if path not in self.routes:
            return httpx.Response(404, stream=ChunkedStream([b"no such route"]))

        status, chunks, error = self.routes[path]
        if error is not None:
            raise error
        stream = ChunkedStream(chunks)
        self.streams.append(stream)
        return httpx.Response(status, stream=stream)

    @property
    def last_request(self) -> httpx.Request:
        return self.requests[-1]

    def params(self, index: int = -1) -> Dict[str, str]:
        return dict(self.requests[index].url.params)


class Recorder:
    """Monitor callback that records what it receives."""

    def __init__(self):
        self.units: List[Any] = []
        self.errors: List[Tuple[Any, Exception]] = []

    def __call__(self, unit, error):
        if error is None:
            self.units.append(unit)
        else:
            self.errors.append((unit, error))

    @property
    def calls(self) -> int:
        return len(self.units) + len(self.errors)

    async def wait_for(self, count: int, timeout: float = 2.0) -> None:
        async def _wait():
            while self.calls < count:
                await asyncio.sleep(0.001)

        await asyncio.wait_for(_wait(), timeout)


def make_client(daemon: DaemonStub, **kwargs) -> DockerClient:
    kwargs.setdefault("api_version", daemon.api_version)
    return DockerClient(
        kwargs.pop("daemon_url", "tcp://127.0.0.1:2375"),
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(daemon.handle)),
        **kwargs,
    )


@pytest.fixture
def daemon():
    """Fresh in-memory daemon."""
    return DaemonStub()


@pytest.fixture
def recorder():
    return Recorder()


@pytest_asyncio.fixture
async def client_factory(daemon):
    """Build extra clients against the in-memory daemon; closed on teardown."""
    clients = []

    def _factory(**kwargs) -> DockerClient:
        client = make_client(daemon, **kwargs)
        clients.append(client)
        return client

    yield _factory
    for client in clients:
        await client.close()


@pytest_asyncio.fixture
async def docker(daemon):
    """Client wired to the in-memory daemon."""
    client = make_client(daemon)
    yield client
    await client.close()
