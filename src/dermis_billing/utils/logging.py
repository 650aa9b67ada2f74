"""
Logging Configuration
Loguru sinks for the billing API, with stdlib logging routed through them
Source: https://github.com/Delgan/loguru
"""

import logging
import sys
from pathlib import Path

from loguru import logger

# Service modules log through stdlib logging under this namespace
SERVICE_LOGGER = "dermis_billing"


class InterceptHandler(logging.Handler):
    """Forward stdlib log records to loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno
        logger.opt(exception=record.exc_info).bind(name=record.name).log(
            level, record.getMessage()
        )


def setup_logging(
    level: str = "INFO",
    log_file: str | None = None,
    json_logs: bool = False,
) -> None:
    """
    Configure application logging.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional log file path
        json_logs: Whether to output JSON format (useful for production)
    """
    logger.remove()

    if json_logs:
        logger.add(
            sys.stderr,
            format="{message}",
            level=level,
            serialize=True,
        )
    else:
        logger.add(
            sys.stderr,
            format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{extra[name]}</cyan> - <level>{message}</level>",
            level=level,
            colorize=True,
        )

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        logger.add(
            log_file,
            rotation="100 MB",
            retention="30 days",
            compression="zip",
            format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {extra[name]} - {message}",
            level=level,
            serialize=json_logs,
        )

    logger.configure(extra={"name": "root"})

    service_logger = logging.getLogger(SERVICE_LOGGER)
    service_logger.handlers = [InterceptHandler()]
    service_logger.setLevel(level.upper())
    service_logger.propagate = False

    logger.bind(name=__name__).info(f"Logging configured: level={level}, json_logs={json_logs}")


def get_logger(name: str = __name__):  # type: ignore[no-untyped-def]
    """
    Get a logger instance bound to a module name.

    Example:
        >>> from dermis_billing.utils.logging import get_logger
        >>> logger = get_logger(__name__)
        >>> logger.info("Checkout API started")
    """
    return logger.bind(name=name)
