"""
Structured logging configuration for the queue router.

This module configures Structlog as the application's default logging system,
providing:
  - JSON output in production for log aggregation
  - Human-readable colored output in development
  - Context propagation (queue_name, queue_type)
  - Integration with standard library logging
  - Automatic filtering of sensitive data (connection passwords, secrets)

Usage:
    from queue_router.utils.logging import setup_logging, get_logger

    # At application startup:
    setup_logging(log_level="INFO", environment="development")

    # In any module:
    logger = get_logger(__name__)
    logger.info("queue_switched", queue_type="redis", queue_name="orders")

    # With bound context (persists across calls):
    logger = logger.bind(queue_name="orders", queue_type="redis")
    logger.info("queue_operation", operation="send")
"""

import logging
import re
import sys
from typing import Any, Optional

import structlog
from structlog.types import EventDict, WrappedLogger


# Credentials embedded in connection URLs, e.g. redis://:pw@host or amqp://user:pw@host
_URL_PASSWORD_PATTERN = re.compile(r"(?P<scheme>[a-zA-Z][a-zA-Z0-9+.\-]*://)(?P<user>[^:/@\s]*):(?P<password>[^@/\s]+)@")

_SENSITIVE_KEYS = frozenset({
    "token", "secret", "password", "api_key", "apikey",
    "authorization", "credentials", "private_key",
})


def redact_url(url: Optional[str]) -> Optional[str]:
    """Replace the password in a connection URL with a placeholder."""
    if not url:
        return url
    return _URL_PASSWORD_PATTERN.sub(r"\g<scheme>\g<user>:***REDACTED***@", url)


def _sanitize_value(value: Any) -> Any:
    """Redact passwords embedded in connection URLs."""
    if isinstance(value, str) and "://" in value:
        return redact_url(value)
    return value


def _sanitize_event_dict(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """
    Structlog processor that redacts sensitive data from log events.

    Checks both key names and string values for sensitive patterns.
    """
    sanitized = {}
    for key, value in event_dict.items():
        key_lower = key.lower()
        if any(sensitive in key_lower for sensitive in _SENSITIVE_KEYS):
            sanitized[key] = "***REDACTED***"
        else:
            sanitized[key] = _sanitize_value(value)
    return sanitized


def _add_app_context(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Add application-level context to every log event."""
    event_dict.setdefault("service", "queue-router")
    return event_dict


def setup_logging(
    log_level: str = "INFO",
    environment: str = "development",
    json_output: Optional[bool] = None,
) -> None:
    """
    Configure structured logging for the application.

    Sets up Structlog with appropriate processors and formatters based
    on the environment. In production, outputs JSON for log aggregation.
    In development, outputs human-readable colored output.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        environment: Application environment (development, staging, production)
        json_output: Force JSON output (auto-detected from environment if None)
    """
    if json_output is None:
        json_output = environment in ("production", "staging")

    numeric_level = getattr(logging, log_level.upper(), logging.INFO)

    # Shared processors for both structlog and standard library
    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.ExtraAdder(),
        _add_app_context,
        _sanitize_event_dict,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if json_output:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(
            colors=True,
            pad_event_to=40,
        )

    stdlib_formatter = structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
        foreign_pre_chain=shared_processors,
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)

    # Remove existing handlers to avoid duplicate output
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(stdlib_formatter)
    console_handler.setLevel(numeric_level)
    root_logger.addHandler(console_handler)

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    # The AMQP client libraries are chatty at INFO
    for noisy_logger_name in ("aio_pika", "aiormq"):
        logging.getLogger(noisy_logger_name).setLevel(max(numeric_level, logging.WARNING))

    logging.captureWarnings(True)


def get_logger(name: Optional[str] = None, **initial_context: Any) -> structlog.stdlib.BoundLogger:
    """
    Get a structured logger instance.

    Creates a new structlog BoundLogger, optionally pre-bound with
    context variables that will appear in every log message.

    Args:
        name: Logger name (typically __name__)
        **initial_context: Key-value pairs to bind to every log message

    Returns:
        Configured BoundLogger instance
    """
    log = structlog.get_logger(name)
    if initial_context:
        log = log.bind(**initial_context)
    return log


def bind_contextvars(**kwargs: Any) -> None:
    """
    Bind context variables that will be included in all subsequent log messages.

    The bound values are visible to ALL loggers in the current async context
    (or thread).

    Args:
        **kwargs: Key-value pairs to bind
    """
    structlog.contextvars.bind_contextvars(**kwargs)


def unbind_contextvars(*keys: str) -> None:
    """
    Remove context variables from the current context.

    Args:
        *keys: Names of context variables to remove
    """
    structlog.contextvars.unbind_contextvars(*keys)


def clear_contextvars() -> None:
    """Clear all context variables from the current context."""
    structlog.contextvars.clear_contextvars()
