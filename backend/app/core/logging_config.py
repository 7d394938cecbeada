"""Logging configuration for the PriceWatch backend.

Every module logs through ``logging.getLogger(__name__)``, so all records
flow through the ``app`` logger configured here.
"""
import logging
import sys

from app.core.config import settings

_DETAILED_FORMAT = (
    "%(asctime)s | %(levelname)-8s | %(name)s | %(module)s:%(funcName)s:%(lineno)d | "
    "%(message)s"
)

_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(level: str | None = None) -> logging.Logger:
    """Attach a console handler to the ``app`` logger. Safe to call twice."""
    app_logger = logging.getLogger("app")
    app_logger.setLevel((level or settings.LOG_LEVEL).upper())

    # Prevent duplicate handlers on repeated calls (e.g. reload, tests)
    if app_logger.handlers:
        return app_logger

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(_DETAILED_FORMAT, datefmt=_DATE_FORMAT))
    app_logger.addHandler(handler)

    app_logger.info("Logging initialised at level %s", logging.getLevelName(app_logger.level))
    return app_logger
