"""
Centralized logging configuration for thumbzone application.

Structured logging is provided by structlog on top of the standard library
logging module. Development runs render to the console, every other
environment renders one JSON object per line.
"""

import logging
import os
import sys
from typing import Any

import structlog

LOG_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


def get_log_level() -> int:
    """
    Get log level from the LOG_LEVEL environment variable.

    Returns:
        int: Log level constant from logging module, INFO when unset or unknown
    """
    return LOG_LEVELS.get(os.getenv("LOG_LEVEL", "INFO").upper(), logging.INFO)


def is_development_environment() -> bool:
    """Check if running in development environment."""
    return os.getenv("ENVIRONMENT", "development").lower() in ["development", "dev", "local"]


def configure_structured_logging() -> None:
    """
    Configure structured logging for the entire application.

    Safe to call on every Streamlit rerun; structlog simply replaces its
    configuration and the stdlib root logger keeps a single handler.
    """
    log_level = get_log_level()
    is_dev = is_development_environment()

    logging.basicConfig(level=log_level, format="%(message)s", stream=sys.stderr)

    processors: list[Any] = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if is_dev:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()))
    else:
        processors.append(structlog.processors.JSONRenderer())

    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.getLogger().setLevel(log_level)

    structlog.get_logger("thumbzone.logging").debug(
        "logging_configured",
        log_level=logging.getLevelName(log_level),
        environment="development" if is_dev else "production",
    )


def get_logger(name: str | None = None) -> Any:
    """
    Get a structured logger instance.

    Args:
        name: Logger name, usually ``__name__`` of the calling module

    Returns:
        structlog.BoundLogger: Configured logger instance
    """
    return structlog.get_logger(name)


def log_performance(operation: str, duration: float, **context: Any) -> None:
    """
    Log how long an operation took.

    Args:
        operation: Name of the operation
        duration: Duration in seconds
        **context: Additional context information
    """
    logger = get_logger("thumbzone.performance")
    logger.info("performance_metric", operation=operation, duration_seconds=round(duration, 4), **context)


def log_user_action(session_id: str, action: str, **context: Any) -> None:
    """
    Log user actions for the audit trail.

    Args:
        session_id: Identifier of the browser session performing the action
        action: Action performed
        **context: Additional context information
    """
    logger = get_logger("thumbzone.user_actions")
    logger.info("user_action", session_id=session_id, action=action, **context)


def log_error(error: Exception, context: dict[str, Any] | None = None) -> None:
    """
    Log errors with structured context.

    Args:
        error: Exception that occurred
        context: Additional context information
    """
    logger = get_logger("thumbzone.errors")

    error_context = {
        "error_type": type(error).__name__,
        "error_message": str(error),
    }
    if context:
        error_context.update(context)

    logger.error("error_occurred", **error_context)
