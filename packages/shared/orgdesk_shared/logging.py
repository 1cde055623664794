"""
Structured logging setup shared by the API server and the CLI.
"""

from __future__ import annotations

import logging
from typing import Optional, TextIO

import structlog


def configure_logging(
    level: str = "info",
    fmt: str = "json",
    stream: Optional[TextIO] = None,
) -> None:
    """Configure structlog with the specified level and format.

    ``stream`` redirects output (the CLI keeps stdout for results).
    """
    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]
    if fmt == "json":
        processors.append(structlog.processors.format_exc_info)
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(level.upper())
        ),
        logger_factory=structlog.PrintLoggerFactory(file=stream),
        cache_logger_on_first_use=False,
    )
