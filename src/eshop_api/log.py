"""Logging configuration."""

import logging
import sys
from typing import Any

from pythonjsonlogger import jsonlogger

from eshop_api.config import Settings, get_settings

# Request body fields that never reach the logs in clear text.
MASKED_FIELDS = ("password", "token", "clientSecret", "api_key")


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """JSON formatter that adds level and logger name to every record."""

    def add_fields(
        self, log_record: dict[str, Any], record: logging.LogRecord, message_dict: dict[str, Any]
    ) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["level"] = record.levelname
        log_record["logger"] = record.name

        if record.exc_info:
            log_record["exc_info"] = self.formatException(record.exc_info)


def setup_logging(settings: Settings | None = None) -> logging.Logger:
    """Configure the ``eshop_api`` logger tree.

    Args:
        settings: Settings to read level and format from. Defaults to global settings.

    Returns:
        The configured package logger
    """
    settings = settings or get_settings()

    logger = logging.getLogger("eshop_api")
    logger.setLevel(getattr(logging, settings.log_level.upper(), logging.INFO))
    logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)

    if settings.log_format.lower() == "json":
        formatter: logging.Formatter = CustomJsonFormatter(
            "%(timestamp)s %(level)s %(name)s %(message)s",
            timestamp=True,
        )
    else:
        formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)
    logger.propagate = False

    return logger


def mask_sensitive(body: dict[str, Any]) -> dict[str, Any]:
    """Return a copy of a request body with credentials replaced by asterisks."""
    masked = dict(body)
    for field in MASKED_FIELDS:
        if masked.get(field):
            masked[field] = "******"
    return masked
