"""Structured logging configuration for semvecdb."""

from __future__ import annotations

import logging

import structlog


def configure_logging(
    service_name: str = "semvecdb", *, level: int | str = logging.INFO, json: bool = True
) -> structlog.stdlib.BoundLogger:
    """Configure structlog and return a service-bound logger.

    Events are emitted through the standard library root logger, which
    writes to stderr. With ``json=False`` events are rendered for a
    terminal instead of as JSON lines.
    """

    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)

    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[logging.StreamHandler()],
    )

    renderer = structlog.processors.JSONRenderer() if json else structlog.dev.ConsoleRenderer()
    structlog.configure(
        processors=[
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        cache_logger_on_first_use=False,
    )
    return structlog.get_logger(service=service_name)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Return a logger without mutating global configuration."""

    return structlog.get_logger(name)


__all__ = ["configure_logging", "get_logger"]
