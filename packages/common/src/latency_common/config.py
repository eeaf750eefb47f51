"""Environment settings shared by the requestor and replier.

Command-line flags always win; these values only supply defaults.

Environment variables:
    LOG_LEVEL        DEBUG | INFO | WARNING | ERROR | CRITICAL (default: INFO)
    LOG_FORMAT       console | json (default: console)
    NATS_URL         Default server URL list for ``-s``
    METRICS_PORT     Default Prometheus port for ``-p``
    REQUEST_TIMEOUT  Per-request timeout in seconds (default: 10)
"""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_NATS_URL = "nats://127.0.0.1:4222"
DEFAULT_METRICS_PORT = 8675
DEFAULT_REQUEST_TIMEOUT = 10.0

_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
_LOG_FORMATS = {"console", "json"}


class Settings(BaseSettings):
    """Process-wide settings loaded from the environment (and ``.env``)."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    log_level: str = "INFO"
    log_format: str = "console"

    nats_url: str = DEFAULT_NATS_URL
    metrics_port: int = Field(default=DEFAULT_METRICS_PORT, ge=0, le=65535)
    request_timeout: float = Field(default=DEFAULT_REQUEST_TIMEOUT, gt=0)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in _LOG_LEVELS:
            raise ValueError(f"log_level must be one of {sorted(_LOG_LEVELS)}, got {v!r}")
        return level

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        fmt = v.lower()
        if fmt not in _LOG_FORMATS:
            raise ValueError(f"log_format must be one of {sorted(_LOG_FORMATS)}, got {v!r}")
        return fmt


@lru_cache
def get_settings() -> Settings:
    """Return the cached settings instance."""
    return Settings()
