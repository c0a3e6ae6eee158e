"""Loguru sink configuration for the command-line entry point."""
from __future__ import annotations

import sys

from loguru import logger

from linkpreview.app.config.settings import Settings
from linkpreview.app.core import SERVICE_NAME

_TEXT_FORMAT = (
    "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | "
    "{extra[service_name]} {extra[event]} {message}{extra}"
)


def configure_logging(settings: Settings) -> None:
    """Replace the default sink with one honouring LOG_LEVEL and LOG_JSON.

    Events are logged with an empty message and their fields bound through
    ``logger.bind``, so both formats render ``extra``.
    """
    logger.remove()
    logger.configure(extra={"service_name": SERVICE_NAME, "event": "-"})
    level = settings.log_level.upper()
    if settings.log_json:
        logger.add(sys.stderr, level=level, serialize=True)
    else:
        logger.add(sys.stderr, level=level, format=_TEXT_FORMAT)
