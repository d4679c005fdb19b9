"""Structured logging configuration for webprovision.

Output is either JSON (for log shipping) or console format (for
interactive use). Logs go to stderr so that machine-readable command
output on stdout stays clean. Options not passed explicitly come from
``BaseSettings``, so LOG_FORMAT, LOG_LEVEL and SERVICE_NAME work both as
environment variables and in ``.env``.

Usage:
    from webprovision.logging_config import setup_logging
    import structlog

    setup_logging(log_format="json")
    logger = structlog.get_logger()
    logger.info("event_name", key1=value1, key2=value2)
"""

import logging
import sys
from typing import Literal

import structlog
from structlog.types import Processor

from webprovision.config import BaseSettings, load_logging_settings


def setup_logging(
    service_name: str | None = None,
    log_format: Literal["json", "console"] | None = None,
    log_level: str | None = None,
    settings: BaseSettings | None = None,
) -> None:
    """Configure structured logging with structlog.

    Args:
        service_name: Name bound to every log line.
        log_format: Output format - "json" for log shipping, "console" for humans.
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR).
        settings: Source of the options left as None. Loaded from the
                  environment and ``.env`` when omitted.

    Raises:
        ConfigurationError: If a fallback is needed and the logging
            settings are invalid.
    """
    if None in (service_name, log_format, log_level):
        settings = settings or load_logging_settings()
        service_name = service_name or settings.service_name
        log_format = log_format or settings.log_format
        log_level = log_level or settings.log_level

    numeric_level = getattr(logging, log_level.upper(), logging.INFO)

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=numeric_level,
        force=True,
    )

    processors: list[Processor] = [
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=False),
        # run_id and service come from contextvars
        structlog.contextvars.merge_contextvars,
        structlog.processors.CallsiteParameterAdder(
            {
                structlog.processors.CallsiteParameter.FUNC_NAME,
                structlog.processors.CallsiteParameter.LINENO,
            }
        ),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if log_format == "json":
        processors.append(structlog.processors.JSONRenderer(sort_keys=False))
    else:
        processors.append(
            structlog.dev.ConsoleRenderer(
                colors=sys.stderr.isatty(),
                exception_formatter=structlog.dev.plain_traceback,
            )
        )

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    structlog.contextvars.bind_contextvars(service=service_name)

    logger = structlog.get_logger()
    logger.debug(
        "logging_initialized",
        service=service_name,
        log_format=log_format,
        log_level=log_level,
    )


def set_run_id(run_id: str) -> None:
    """Set the provisioning run ID for the current context."""
    structlog.contextvars.bind_contextvars(run_id=run_id)


def get_run_id() -> str | None:
    """Get the provisioning run ID from the current context."""
    return structlog.contextvars.get_contextvars().get("run_id")


def clear_run_id() -> None:
    """Remove the run ID from the current context."""
    structlog.contextvars.unbind_contextvars("run_id")
