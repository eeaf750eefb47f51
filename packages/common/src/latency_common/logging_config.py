"""Structured logging setup.

Events are logged as snake_case names with keyword context::

    logger = get_logger(__name__)
    logger.info("nats_reconnected", url="nats://127.0.0.1:4222")
"""

from __future__ import annotations

import logging
import sys
from typing import Optional

import structlog

from latency_common.config import get_settings


def configure_logging(level: Optional[str] = None, log_format: Optional[str] = None) -> None:
    """Configure stdlib logging and structlog.

    Args:
        level: Log level name. Defaults to ``Settings.log_level``.
        log_format: ``console`` or ``json``. Defaults to ``Settings.log_format``.
    """
    if level is None or log_format is None:
        settings = get_settings()
        level = level or settings.log_level
        log_format = log_format or settings.log_format

    log_level = getattr(logging, level.upper(), logging.INFO)

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=log_level,
        force=True,
    )

    processors = [
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if log_format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger bound to ``name``."""
    return structlog.get_logger(name)
