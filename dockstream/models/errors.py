"""Error models and exception classes for the dockstream client."""

from typing import Optional
from enum import Enum

TLS_HINT = "Are you trying to connect to a TLS-enabled daemon without TLS?"


class ErrorType(str, Enum):
    """Error type enumeration."""

    TRANSPORT = "transport"
    STATUS = "status"
    DECODE = "decode"
    UNSUPPORTED = "unsupported"
    INTERNAL = "internal"


# Custom Exception Classes


class DockStreamError(Exception):
    """Base exception for the dockstream client."""

    def __init__(
        self,
        message: str,
        error_type: ErrorType = ErrorType.INTERNAL,
        status_code: Optional[int] = None,
    ):
        self.message = message
        self.error_type = error_type
        self.status_code = status_code
        super().__init__(message)


class DockerTransportError(DockStreamError):
    """DNS, dial, TLS or timeout failure talking to the daemon."""

    def __init__(self, message: str, tls_hint: bool = False):
        if tls_hint:
            message = f"{message}. {TLS_HINT}"
        self.tls_hint = tls_hint
        super().__init__(message=message, error_type=ErrorType.TRANSPORT)


class DockerAPIError(DockStreamError):
    """The daemon answered with an HTTP status of 400 or above."""

    def __init__(self, status_code: int, status: str):
        self.status = status
        super().__init__(
            message=f"{status_code}: {status}",
            error_type=ErrorType.STATUS,
            status_code=status_code,
        )

    @property
    def is_not_found(self) -> bool:
        return self.status_code == 404

    @property
    def is_server_internal_error(self) -> bool:
        return self.status_code == 500


class StreamDecodeError(DockStreamError):
    """Malformed JSON value or log frame in a response body."""

    def __init__(self, message: str):
        super().__init__(message=message, error_type=ErrorType.DECODE)


class UnsupportedOperationError(DockStreamError):
    """Operation refused by the client's mode (e.g. swarm)."""

    def __init__(self, message: str):
        super().__init__(message=message, error_type=ErrorType.UNSUPPORTED)


def is_not_found(err: Optional[BaseException]) -> bool:
    """True when ``err`` is a status error with code 404."""
    return isinstance(err, DockerAPIError) and err.is_not_found


def is_server_internal_error(err: Optional[BaseException]) -> bool:
    """True when ``err`` is a status error with code 500."""
    return isinstance(err, DockerAPIError) and err.is_server_internal_error
