"""Client configuration via Pydantic Settings.

All configuration is loaded from ``CRM_``-prefixed environment variables
(or a local ``.env`` file) following 12-factor principles.
"""

import re

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Client settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="CRM_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Backend
    api_base_url: str = Field(
        description="Base URL of the CRM REST API (e.g. https://crm.example.com/api)",
    )
    socket_url: str = Field(
        description="Base URL of the real-time progress channel",
    )
    api_token: str | None = Field(
        default=None,
        description="Bearer token sent with REST requests and the channel handshake",
    )
    manager_id: str | None = Field(
        default=None,
        description="Owner id used to join the per-manager progress room",
    )

    @field_validator("api_base_url")
    @classmethod
    def validate_api_base_url(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            msg = "api_base_url must use http:// or https://"
            raise ValueError(msg)
        return v.rstrip("/")

    @field_validator("socket_url")
    @classmethod
    def validate_socket_url(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            msg = "socket_url must use http:// or https://"
            raise ValueError(msg)
        v = v.rstrip("/")
        return re.sub(r"/socket\.io.*$", "", v)

    # HTTP
    request_timeout: float = Field(
        default=30.0,
        description="REST request timeout in seconds",
        gt=0,
    )

    # Progress channel
    socket_path: str = Field(
        default="/socket.io",
        description="Socket.IO endpoint path on the channel host",
    )
    socket_connect_timeout: float = Field(
        default=20.0,
        description="Seconds to wait for the channel handshake",
        gt=0,
    )
    reconnection_delay: float = Field(
        default=1.5,
        description="Fixed delay in seconds between channel reconnection attempts",
        gt=0,
    )

    # Downloads
    download_dir: str = Field(
        default="./downloads",
        description="Directory where finished export files are saved",
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level",
    )
    log_dir: str | None = Field(
        default=None,
        description="Directory for log files (enables file logging with 24h rotation when set)",
    )


def get_settings() -> Settings:
    """Create and return client settings."""
    return Settings()  # type: ignore[call-arg]
