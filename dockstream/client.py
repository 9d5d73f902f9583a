"""Client for the container engine remote API.

The client owns one shared connection pool and one monitor registry. Event,
stats and log monitors run as background tasks against that pool and are
stopped through their tokens:

    async with DockerClient("unix:///var/run/docker.sock") as docker:
        token = docker.monitor_events(on_event)
        ...
        docker.stop_monitor(token)
"""

import asyncio
import json
import ssl
from datetime import timedelta
from typing import Any, AsyncIterator, List, Optional

import httpx
import structlog

from .config import (
    SUPPORTED_API_VERSIONS,
    Settings,
    normalize_api_version,
    settings as default_settings,
)
from .core.dispatcher import RequestDispatcher
from .core.monitors import MonitorRegistry
from .core.transport import DaemonConnection, build_tls_context
from .models.events import Event
from .models.logs import LogEntry
from .models.stats import Stats
from .models.system import ContainerDetail, DockerInfo, Version
from .services.events import EventService, Filters
from .services.logs import LogService
from .services.stats import StatsService
from .services.streaming import JsonStreamReader, SubscriptionManager, UnitCallback
from .utils.json_stream import DEFAULT_MAX_UNIT_BYTES

logger = structlog.get_logger(__name__)


class DockerClient:
    """Async client for one daemon or swarm manager."""

    def __init__(
        self,
        daemon_url: str,
        tls_context: Optional[ssl.SSLContext] = None,
        api_version: Optional[str] = None,
        connect_timeout: float = 30.0,
        read_timeout: Optional[float] = None,
        max_connections: int = 100,
        is_swarm: bool = False,
        max_unit_bytes: int = DEFAULT_MAX_UNIT_BYTES,
        registry: Optional[MonitorRegistry] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Initialize the client. No connection is made until the first request.

        Args:
            daemon_url: ``unix:///path``, ``tcp://host:port``, ``host:port``
                or an explicit ``http(s)://`` URL
            tls_context: TLS settings; ``tcp`` addresses use https when set
            api_version: Remote API version, with or without leading ``v``
            connect_timeout: Dial timeout in seconds
            read_timeout: Read timeout in seconds; None leaves streams open
            max_connections: Connection pool size shared by all requests
            is_swarm: Target is a swarm manager
            max_unit_bytes: Cap on one pending JSON value in a stream
            registry: Monitor registry to share with other clients
            http_client: Prebuilt HTTP client to use instead of building one
        """
        self.api_version = normalize_api_version(api_version)
        if self.api_version not in SUPPORTED_API_VERSIONS:
            logger.warning(
                "Remote API version has not been verified with this client; "
                "it may not be stable but the client can still be used",
                api_version=self.api_version,
                supported=sorted(SUPPORTED_API_VERSIONS),
            )

        self.is_swarm = is_swarm
        self._connection = DaemonConnection(
            daemon_url,
            tls_context=tls_context,
            connect_timeout=connect_timeout,
            read_timeout=read_timeout,
            max_connections=max_connections,
            client=http_client,
        )
        self._dispatcher = RequestDispatcher(self._connection, self.api_version)
        self._registry = registry if registry is not None else MonitorRegistry()
        self._subscriptions = SubscriptionManager(self._registry)

        reader = JsonStreamReader(self._dispatcher, self._registry, max_unit_bytes)
        self.events = EventService(reader, self._subscriptions, is_swarm=is_swarm)
        self.stats = StatsService(reader, self._subscriptions)
        self.logs = LogService(self._dispatcher, self._registry, self._subscriptions)

        logger.debug(
            "Initialized daemon client",
            base_url=self._connection.base_url,
            api_version=self.api_version,
            swarm=is_swarm,
        )

    @classmethod
    def from_settings(cls, config: Optional[Settings] = None, **overrides) -> "DockerClient":
        """Build a client from configuration; keyword arguments override it."""
        config = config or default_settings
        transport = config.transport

        tls_context = None
        if transport.tls_enabled:
            tls_context = build_tls_context(
                ca_cert=transport.docker_tls_ca_cert,
                client_cert=transport.docker_tls_cert,
                client_key=transport.docker_tls_key,
                verify=transport.docker_tls_verify,
            )

        kwargs = dict(
            daemon_url=transport.docker_host,
            tls_context=tls_context,
            api_version=transport.docker_api_version,
            connect_timeout=transport.docker_connect_timeout,
            read_timeout=transport.docker_read_timeout,
            max_connections=transport.docker_max_connections,
            is_swarm=transport.docker_is_swarm,
            max_unit_bytes=config.stream_max_unit_bytes,
        )
        kwargs.update(overrides)
        return cls(**kwargs)

    @property
    def base_url(self) -> str:
        return self._connection.base_url

    @property
    def dispatcher(self) -> RequestDispatcher:
        return self._dispatcher

    @property
    def monitors(self) -> MonitorRegistry:
        return self._registry

    # =========================================================================
    # Monitors
    # =========================================================================

    def monitor_events(self, callback: UnitCallback, filters: Filters = None) -> int:
        """Start an event monitor; see ``EventService.subscribe``."""
        return self.events.subscribe(callback, filters)

    def monitor_stats(self, container_id: str, callback: UnitCallback) -> int:
        """Start a stats monitor; see ``StatsService.subscribe``."""
        return self.stats.subscribe(container_id, callback)

    def monitor_logs(
        self,
        container_id: str,
        callback: UnitCallback,
        tty: bool,
        stdout: bool = True,
        stderr: bool = True,
        timestamps: bool = False,
        tail: Optional[int] = None,
    ) -> int:
        """Follow container logs; see ``LogService.subscribe``."""
        return self.logs.subscribe(
            container_id,
            callback,
            tty,
            stdout=stdout,
            stderr=stderr,
            timestamps=timestamps,
            tail=tail,
        )

    def stop_monitor(self, token: int) -> None:
        """Stop a monitor. Safe to call repeatedly or with unknown tokens."""
        self._subscriptions.stop(token)

    def is_monitor_live(self, token: int) -> bool:
        return self._registry.is_live(token)

    def monitor_task(self, token: int) -> Optional[asyncio.Task]:
        """Background task of a running monitor, or None once it has exited."""
        return self._subscriptions.task_for(token)

    # =========================================================================
    # Streams and polls
    # =========================================================================

    def iter_events(
        self, filters: Filters = None, token: Optional[int] = None
    ) -> AsyncIterator[Event]:
        return self.events.iter_events(filters, token=token)

    async def events_since(
        self,
        since: timedelta,
        until: Optional[timedelta] = None,
        filters: Filters = None,
    ) -> List[Event]:
        return await self.events.events_since(since, until, filters)

    def iter_stats(
        self, container_id: str, token: Optional[int] = None
    ) -> AsyncIterator[Stats]:
        return self.stats.iter_stats(container_id, token=token)

    async def get_stats(self, container_id: str) -> Stats:
        return await self.stats.get_stats(container_id)

    async def container_logs(
        self,
        container_id: str,
        tty: bool,
        stdout: bool = True,
        stderr: bool = True,
        timestamps: bool = False,
        tail: Optional[int] = None,
    ) -> List[LogEntry]:
        return await self.logs.container_logs(
            container_id,
            tty,
            stdout=stdout,
            stderr=stderr,
            timestamps=timestamps,
            tail=tail,
        )

    # =========================================================================
    # One-shot calls
    # =========================================================================

    async def ping(self) -> bool:
        data = await self._dispatcher.send_request("GET", "_ping")
        return data == b"OK"

    async def version(self) -> Version:
        return Version.model_validate(await self._dispatcher.get_json("version"))

    async def info(self) -> DockerInfo:
        return DockerInfo.model_validate(await self._dispatcher.get_json("info"))

    async def inspect_container(self, container_id: str) -> ContainerDetail:
        data = await self._dispatcher.get_json(f"containers/{container_id}/json")
        return ContainerDetail.model_validate(data)

    async def request_json(self, method: str, path: str, body: Any = None) -> Any:
        """Issue an arbitrary API call and decode the JSON answer."""
        data = await self._dispatcher.send_request(method, path, body=body)
        return json.loads(data) if data else None

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def close(self) -> None:
        """Stop the monitors this client started, wait for consumers, and close the pool."""
        await self._subscriptions.close()
        await self._connection.close()

    async def __aenter__(self) -> "DockerClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()
