"""Daemon transport configuration."""

from typing import Optional
from pydantic import Field
from pydantic_settings import BaseSettings


class TransportConfig(BaseSettings):
    """Connection settings for the container engine daemon."""

    docker_host: str = Field(
        default="unix:///var/run/docker.sock", alias="docker_host"
    )
    docker_api_version: str = Field(default="v1.17", alias="docker_api_version")
    docker_connect_timeout: float = Field(
        default=30.0, gt=0, le=600, alias="docker_connect_timeout"
    )
    docker_read_timeout: Optional[float] = Field(
        default=None, gt=0, alias="docker_read_timeout"
    )
    docker_max_connections: int = Field(
        default=100, ge=1, le=1000, alias="docker_max_connections"
    )

    # TLS
    docker_tls_verify: bool = Field(default=False, alias="docker_tls_verify")
    docker_tls_ca_cert: Optional[str] = Field(default=None, alias="docker_tls_ca_cert")
    docker_tls_cert: Optional[str] = Field(default=None, alias="docker_tls_cert")
    docker_tls_key: Optional[str] = Field(default=None, alias="docker_tls_key")

    docker_is_swarm: bool = Field(default=False, alias="docker_is_swarm")

    @property
    def tls_enabled(self) -> bool:
        """TLS is used when verification is requested or a client cert is set."""
        return self.docker_tls_verify or bool(self.docker_tls_cert)

    class Config:
        env_prefix = ""
        extra = "ignore"
