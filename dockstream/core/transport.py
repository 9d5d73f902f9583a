"""Shared connection to the container engine daemon.

This module builds the one HTTP client every request and stream goes
through, for TCP (plain or TLS) and local unix-socket daemons.
"""

import ssl
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlsplit

import httpx
import structlog

logger = structlog.get_logger(__name__)

# Logical host used in URLs when the daemon is reached over a unix socket
UNIX_SOCKET_HOST = "docker.sock"

DEFAULT_CONNECT_TIMEOUT = 30.0
DEFAULT_MAX_CONNECTIONS = 100


@dataclass(frozen=True)
class DaemonAddress:
    """Where and how to reach the daemon."""

    scheme: str
    netloc: str
    socket_path: Optional[str] = None

    @property
    def base_url(self) -> str:
        return f"{self.scheme}://{self.netloc}"

    @property
    def is_unix(self) -> bool:
        return self.socket_path is not None


def parse_daemon_url(daemon_url: str, tls: bool = False) -> DaemonAddress:
    """Resolve a daemon address into the URL scheme and host to use.

    ``tcp://`` and bare ``host:port`` become ``http`` (``https`` when TLS is
    configured); ``unix://`` keeps the socket path and uses a placeholder
    host; explicit ``http``/``https`` are kept.
    """
    if "://" not in daemon_url:
        daemon_url = "tcp://" + daemon_url
    parts = urlsplit(daemon_url)
    scheme = parts.scheme.lower()

    if scheme == "unix":
        return DaemonAddress(
            scheme="http",
            netloc=UNIX_SOCKET_HOST,
            socket_path=parts.path or "/var/run/docker.sock",
        )
    if scheme in ("", "tcp"):
        scheme = "https" if tls else "http"
    return DaemonAddress(scheme=scheme, netloc=parts.netloc)


def build_tls_context(
    ca_cert: Optional[str] = None,
    client_cert: Optional[str] = None,
    client_key: Optional[str] = None,
    verify: bool = True,
) -> ssl.SSLContext:
    """Create a TLS context from PEM files.

    Args:
        ca_cert: CA bundle used to verify the daemon
        client_cert: Client certificate for mutual TLS
        client_key: Private key for ``client_cert``
        verify: Verify the daemon certificate and hostname
    """
    context = ssl.create_default_context(cafile=ca_cert)
    if not verify:
        context.check_hostname = False
        context.verify_mode = ssl.CERT_NONE
    if client_cert:
        context.load_cert_chain(certfile=client_cert, keyfile=client_key)
    return context


def build_http_client(
    address: DaemonAddress,
    tls_context: Optional[ssl.SSLContext] = None,
    connect_timeout: float = DEFAULT_CONNECT_TIMEOUT,
    read_timeout: Optional[float] = None,
    max_connections: int = DEFAULT_MAX_CONNECTIONS,
) -> httpx.AsyncClient:
    """Build the async HTTP client for ``address``.

    No I/O happens here; dial and TLS failures surface on the first request.
    """
    transport = httpx.AsyncHTTPTransport(
        verify=tls_context if tls_context is not None else True,
        uds=address.socket_path,
        retries=0,
        limits=httpx.Limits(
            max_connections=max_connections,
            max_keepalive_connections=min(20, max_connections),
        ),
    )
    return httpx.AsyncClient(
        transport=transport,
        timeout=httpx.Timeout(
            connect=connect_timeout,
            read=read_timeout,
            write=read_timeout,
            pool=None,
        ),
    )


class DaemonConnection:
    """Lazily created, shared HTTP client for one daemon.

    Usage:
        connection = DaemonConnection("unix:///var/run/docker.sock")
        client = connection.get_client()
    """

    def __init__(
        self,
        daemon_url: str,
        tls_context: Optional[ssl.SSLContext] = None,
        connect_timeout: float = DEFAULT_CONNECT_TIMEOUT,
        read_timeout: Optional[float] = None,
        max_connections: int = DEFAULT_MAX_CONNECTIONS,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.address = parse_daemon_url(daemon_url, tls=tls_context is not None)
        self.tls_context = tls_context
        self.connect_timeout = connect_timeout
        self.read_timeout = read_timeout
        self.max_connections = max_connections
        # A prebuilt client (e.g. one over a mock transport) is used as-is
        self._client: Optional[httpx.AsyncClient] = client

    @property
    def base_url(self) -> str:
        return self.address.base_url

    @property
    def tls_enabled(self) -> bool:
        return self.tls_context is not None

    def get_client(self) -> httpx.AsyncClient:
        """Get the shared async HTTP client, creating it on first use."""
        if self._client is None:
            self._client = build_http_client(
                self.address,
                tls_context=self.tls_context,
                connect_timeout=self.connect_timeout,
                read_timeout=self.read_timeout,
                max_connections=self.max_connections,
            )
            logger.info(
                "Daemon connection pool initialized",
                base_url=self.base_url,
                socket_path=self.address.socket_path,
                tls=self.tls_enabled,
                max_connections=self.max_connections,
            )
        return self._client

    @property
    def pool_stats(self) -> dict:
        """Get connection pool statistics."""
        return {
            "initialized": self._client is not None,
            "max_connections": self.max_connections,
            "base_url": self.base_url,
        }

    async def close(self) -> None:
        """Close the client and release all pooled connections."""
        if self._client is not None:
            await self._client.aclose()
            logger.info("Daemon connection pool closed", base_url=self.base_url)
        self._client = None
