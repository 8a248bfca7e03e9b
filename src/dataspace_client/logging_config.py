"""Structured logging configuration using structlog.

Provides JSON-structured logging in production and human-readable colored
output in development. The flow orchestrator binds a ``flow_id`` context
variable so every driver and transport entry of one end-to-end run can be
correlated.

Usage:
    from dataspace_client.logging_config import configure_logging, get_logger
    configure_logging()
    logger = get_logger()
    logger.info("negotiation.initiated", negotiation_id="neg-1", state="REQUESTED")
"""

from __future__ import annotations

import logging
import sys
from typing import TYPE_CHECKING

import structlog

from dataspace_client.config import get_settings

if TYPE_CHECKING:
    from dataspace_client.config import Settings


def configure_logging(settings: Settings | None = None) -> None:
    """Configure logging from APP_LOG_LEVEL and APP_ENV.

    Development gets the colored console renderer; staging and production
    get JSON lines.
    """
    settings = settings or get_settings()
    setup_logging(
        log_level=settings.app_log_level,
        json_logs=not settings.is_development,
    )


def setup_logging(log_level: str = "INFO", json_logs: bool = False) -> None:
    """Configure structlog with shared processors.

    Args:
        log_level: Standard Python log level string (DEBUG, INFO, WARNING, etc.)
        json_logs: If True, output JSON. If False, colored console.
    """
    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if json_logs:
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=True)

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    # httpx logs every request line at INFO, including full URLs
    for noisy_logger in ("httpx", "httpcore"):
        logging.getLogger(noisy_logger).setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance.

    Args:
        name: Optional logger name. If None, uses the calling module's name.
    """
    return structlog.get_logger(name)
