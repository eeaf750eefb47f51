"""Shared support for the NATS latency demo clients.

Provides settings, structured logging and error types used by both the
requestor and the replier.
"""

from latency_common.config import Settings, get_settings
from latency_common.errors import (
    ConnectError,
    DurationError,
    LatencyDemoError,
    MetricsServerError,
    SubscribeError,
)
from latency_common.logging_config import configure_logging, get_logger

__all__ = [
    "Settings",
    "get_settings",
    "configure_logging",
    "get_logger",
    "LatencyDemoError",
    "DurationError",
    "ConnectError",
    "SubscribeError",
    "MetricsServerError",
]

__version__ = "0.1.0"
