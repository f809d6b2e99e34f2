"""Structured logging configuration for the narrative engine.

The engine recovers from most content errors by logging them, so log lines
are the main channel through which authors learn about broken directives.
structlog gives each line structured context (the directive fragment, the
registry id, the pool) in either console or JSON form.

Example:
    >>> from narrative_engine.core.logging import get_logger
    >>> logger = get_logger(__name__)
    >>> logger.info("Scene entered", scene="tavern", dungeon="village")
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any

import structlog
from structlog.types import Processor


if TYPE_CHECKING:
    from structlog.types import EventDict, WrappedLogger


OVERWRITE_SEVERITY = "overwrite"


def add_app_context(
    logger: WrappedLogger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """Add application context to log entries.

    Args:
        logger: The wrapped logger instance.
        method_name: Name of the logging method called.
        event_dict: The event dictionary to modify.

    Returns:
        The modified event dictionary with app context.
    """
    event_dict["app"] = "narrative_engine"
    return event_dict


def configure_logging(
    *,
    level: str = "INFO",
    json_format: bool = False,
    log_file: str | None = None,
) -> None:
    """Configure engine-wide logging.

    Args:
        level: The logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        json_format: If True, output logs in JSON format.
        log_file: Append log lines to this file instead of stdout.

    Example:
        >>> configure_logging(level="DEBUG", json_format=False)
    """
    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        add_app_context,
    ]

    if json_format:
        processors: list[Processor] = [
            *shared_processors,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors = [
            *shared_processors,
            structlog.dev.ConsoleRenderer(
                colors=log_file is None,
                exception_formatter=structlog.dev.plain_traceback,
            ),
        ]

    if log_file:
        logger_factory: Any = structlog.WriteLoggerFactory(
            file=Path(log_file).open("a", encoding="utf-8")
        )
    else:
        logger_factory = structlog.PrintLoggerFactory()

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, level.upper(), logging.INFO)
        ),
        context_class=dict,
        logger_factory=logger_factory,
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None) -> structlog.BoundLogger:
    """Get a configured logger instance.

    Args:
        name: Optional name for the logger (typically __name__).

    Returns:
        A configured structlog BoundLogger instance.
    """
    return structlog.get_logger(name)


def log_overwrite(logger: Any, event: str, **kwargs: Any) -> None:
    """Log that a registry entry replaced an existing one.

    Overwrites are how mods redefine built-in behavior, so they are reported
    at warning level under their own severity tag rather than as errors.

    Args:
        logger: Logger to emit through.
        event: Log message.
        **kwargs: Structured context for the entry.

    Example:
        >>> log_overwrite(logger, "Action already exists - overwriting", action_id="flag")
    """
    logger.warning(event, severity=OVERWRITE_SEVERITY, **kwargs)


def bind_context(**kwargs: Any) -> None:
    """Bind context variables that will be included in all subsequent logs.

    Args:
        **kwargs: Key-value pairs to bind to the logging context.

    Example:
        >>> bind_context(session_id="abc123", dungeon="village")
    """
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    """Clear all bound context variables."""
    structlog.contextvars.clear_contextvars()


__all__ = [
    "OVERWRITE_SEVERITY",
    "configure_logging",
    "get_logger",
    "log_overwrite",
    "bind_context",
    "clear_context",
]
