"""structlog setup shared by the web app and scripts."""

import logging
import sys

import structlog

from septic_estimator.config.settings import settings


def configure_logging(level: str | None = None, log_format: str | None = None) -> None:
    """Configure structlog and the stdlib root logger.

    Args:
        level: Log level name, defaults to LOG_LEVEL.
        log_format: "console" for development output, "json" for one JSON
            object per line. Defaults to LOG_FORMAT.
    """
    level_name = (level or settings.log_level).upper()
    fmt = log_format or settings.log_format

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level_name, logging.INFO),
    )

    renderer = (
        structlog.processors.JSONRenderer()
        if fmt == "json"
        else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
