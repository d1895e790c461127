"""Structured logging configuration."""

from __future__ import annotations

import logging
import sys
from typing import TYPE_CHECKING, Any, Optional

import structlog

if TYPE_CHECKING:
    from structlog.types import Processor

from gtfsrt_validator.config import get_settings


def setup_logging(level: Optional[str] = None, *, json_output: Optional[bool] = None) -> None:
    """Configure structured logging for the validator.

    Args:
        level: Log level override (defaults to ``settings.log_level``).
        json_output: Force JSON (True) or console (False) rendering. When None,
            console rendering is used only in the development environment.
    """
    settings = get_settings()
    level = (level or settings.log_level).upper()
    if json_output is None:
        json_output = settings.environment != "development"

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if json_output:
        shared_processors.append(structlog.processors.format_exc_info)
        renderer: Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())

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
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(level)

    logging.getLogger("google.protobuf").setLevel(
        logging.DEBUG if settings.debug else logging.WARNING
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance."""
    return structlog.stdlib.get_logger(name)


def bind_feed_context(**kwargs: Any) -> None:
    """Bind context variables (feed file, iteration) for subsequent log lines."""
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_feed_context() -> None:
    """Clear context variables after a feed iteration completes."""
    structlog.contextvars.clear_contextvars()
