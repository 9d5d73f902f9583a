"""Logging configuration."""

from pydantic import Field
from pydantic_settings import BaseSettings


class LoggingConfig(BaseSettings):
    """structlog output settings."""

    log_level: str = Field(default="INFO")
    log_format: str = Field(default="json")

    def is_json(self) -> bool:
        """Whether records should be rendered as JSON lines."""
        return self.log_format.lower() == "json"

    class Config:
        env_prefix = ""
        extra = "ignore"
