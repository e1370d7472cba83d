"""Structured logging setup."""

import logging
import sys
from typing import Optional, TextIO
import structlog


def setup_logging(
    level: str = "INFO",
    service_name: Optional[str] = "guard",
    json_format: bool = True,
    stream: TextIO = sys.stdout,
) -> structlog.BoundLogger:
    """
    Setup structured logging with structlog.

    Request-handling code binds per-origin context with
    ``structlog.contextvars.bind_contextvars(ip=..., origin=...)``; those
    values are merged into every event logged while handling the request.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR)
        service_name: Name of the service (for log context)
        json_format: If True, output JSON logs; otherwise, console format
        stream: Where log lines are written

    Returns:
        Configured logger instance
    """
    log_level = getattr(logging, level.upper())

    logging.basicConfig(
        format="%(message)s",
        stream=stream,
        level=log_level,
    )

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]

    if log_level <= logging.DEBUG:
        processors.append(
            structlog.processors.CallsiteParameterAdder(
                {
                    structlog.processors.CallsiteParameter.MODULE,
                    structlog.processors.CallsiteParameter.FUNC_NAME,
                    structlog.processors.CallsiteParameter.LINENO,
                }
            )
        )

    if json_format:
        processors.append(structlog.processors.format_exc_info)
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=stream),
        cache_logger_on_first_use=True,
    )

    logger = structlog.get_logger()

    if service_name:
        logger = logger.bind(service=service_name)

    return logger
