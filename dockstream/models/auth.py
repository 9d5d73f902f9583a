"""Registry credential model."""

import base64

from pydantic import BaseModel, Field


class AuthConfig(BaseModel):
    """Credentials for registry-authenticated operations."""

    username: str = Field(default="")
    password: str = Field(default="")
    email: str = Field(default="")

    def encode(self) -> str:
        """Encode as the ``X-Registry-Auth`` header value.

        URL-safe base64 of the JSON record with empty fields omitted and a
        trailing newline, matching the daemon's reference encoder.
        """
        payload = self.model_dump_json(exclude_defaults=True) + "\n"
        return base64.urlsafe_b64encode(payload.encode("utf-8")).decode("ascii")

    def as_header(self) -> dict:
        return {"X-Registry-Auth": self.encode()}
