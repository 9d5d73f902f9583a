"""Configuration management for the dockstream client.

This module provides a unified Settings class with flat, environment-driven
fields and grouped views over them.

Usage:
    from dockstream.config import settings

    # Access grouped settings
    settings.transport.docker_host
    settings.logging.log_level

    # Or the flat fields
    settings.docker_host
    settings.stream_max_unit_bytes
"""

from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .transport import TransportConfig
from .logging import LoggingConfig

# API versions this client has been checked against
SUPPORTED_API_VERSIONS = frozenset({"v1.17", "v1.18"})

DEFAULT_API_VERSION = "v1.17"


def normalize_api_version(version: Optional[str]) -> str:
    """Return the version with a leading ``v``, or the default when empty."""
    if not version:
        return DEFAULT_API_VERSION
    version = version.strip()
    if not version.startswith("v"):
        version = "v" + version
    return version


class Settings(BaseSettings):
    """Client settings with environment variable support.

    This class provides both:
    1. Grouped access via nested configs (settings.transport.docker_host)
    2. Flat access (settings.docker_host)
    """

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=False, extra="ignore"
    )

    # Daemon connection
    docker_host: str = Field(default="unix:///var/run/docker.sock")
    docker_api_version: str = Field(default=DEFAULT_API_VERSION)
    docker_connect_timeout: float = Field(default=30.0, gt=0, le=600)
    docker_read_timeout: Optional[float] = Field(
        default=None,
        gt=0,
        description="Read timeout in seconds; None keeps long-lived streams open",
    )
    docker_max_connections: int = Field(default=100, ge=1, le=1000)
    docker_is_swarm: bool = Field(
        default=False, description="Target is a swarm manager rather than a daemon"
    )

    # TLS
    docker_tls_verify: bool = Field(default=False)
    docker_tls_ca_cert: Optional[str] = Field(default=None)
    docker_tls_cert: Optional[str] = Field(default=None)
    docker_tls_key: Optional[str] = Field(default=None)

    # Streaming
    stream_max_unit_bytes: int = Field(
        default=16 * 1024 * 1024,
        ge=1024,
        description="Largest undecoded JSON value buffered from a stream",
    )

    # Logging
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="json")

    @field_validator("docker_api_version")
    @classmethod
    def _normalize_api_version(cls, v):
        """Accept versions with or without the leading ``v``."""
        return normalize_api_version(v)

    @field_validator("log_format")
    @classmethod
    def _validate_log_format(cls, v):
        if v.lower() not in ("json", "console"):
            raise ValueError("log_format must be 'json' or 'console'")
        return v.lower()

    # ========================================================================
    # GROUPED CONFIG ACCESS
    # ========================================================================

    @property
    def transport(self) -> TransportConfig:
        """Access daemon transport configuration group."""
        return TransportConfig(
            docker_host=self.docker_host,
            docker_api_version=self.docker_api_version,
            docker_connect_timeout=self.docker_connect_timeout,
            docker_read_timeout=self.docker_read_timeout,
            docker_max_connections=self.docker_max_connections,
            docker_tls_verify=self.docker_tls_verify,
            docker_tls_ca_cert=self.docker_tls_ca_cert,
            docker_tls_cert=self.docker_tls_cert,
            docker_tls_key=self.docker_tls_key,
            docker_is_swarm=self.docker_is_swarm,
        )

    @property
    def logging(self) -> LoggingConfig:
        """Access logging configuration group."""
        return LoggingConfig(log_level=self.log_level, log_format=self.log_format)


# Global settings instance
settings = Settings()

__all__ = [
    "Settings",
    "settings",
    "TransportConfig",
    "LoggingConfig",
    "SUPPORTED_API_VERSIONS",
    "DEFAULT_API_VERSION",
    "normalize_api_version",
]
