"""
Structured logging for the API and the ETL CLI

Both entry points call configure_logging() once; modules only do
`logger = get_logger(__name__)` and log snake_case events with key/value
context.
"""

import sys
import logging
from typing import Optional
import structlog
from structlog.processors import JSONRenderer

from ..config.settings import settings

LOG_FORMATS = ("json", "text")

# httpx logs one INFO line per request; an ETL run makes thousands
NOISY_LOGGERS = ("httpx", "httpcore", "asyncpg")


def configure_logging(
    log_level: Optional[str] = None,
    log_format: Optional[str] = None,
    service_name: Optional[str] = None
) -> None:
    """
    Configure structlog and the stdlib root logger

    Args:
        log_level: DEBUG, INFO, WARNING, ERROR or CRITICAL (default LOG_LEVEL)
        log_format: 'json' or 'text' (default LOG_FORMAT)
        service_name: bound as `service` on every event, with `environment`
    """
    level = (log_level or settings.log_level).upper()
    format_type = (log_format or settings.log_format).lower()
    if format_type not in LOG_FORMATS:
        raise ValueError(f"Unknown log format: {format_type}")

    numeric_level = getattr(logging, level, logging.INFO)

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=numeric_level,
        force=True,
    )
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(numeric_level, logging.WARNING))

    renderer = JSONRenderer() if format_type == "json" else structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    structlog.contextvars.clear_contextvars()
    if service_name:
        structlog.contextvars.bind_contextvars(
            service=service_name,
            environment=settings.environment
        )


def get_logger(name: str, **initial_context) -> structlog.stdlib.BoundLogger:
    """
    Logger for a module, optionally with bound context

    Example:
        logger = get_logger(__name__, stage="prices")
        logger.info("etl_batch_completed", processed=10, total=5200)
    """
    logger = structlog.get_logger(name)

    if initial_context:
        logger = logger.bind(**initial_context)

    return logger
