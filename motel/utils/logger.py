"""Process-wide logging setup for the reservation service."""

from __future__ import annotations

import logging
import sys
import time
from typing import Optional

from motel.utils.config import get_settings


LOG_FORMAT = "%(asctime)sZ | %(levelname)s | %(name)s | %(message)s"
_QUIETED_LOGGERS = ("uvicorn.access", "httpx")
_LOGGER_INITIALIZED = False


def configure_logging(level: Optional[str] = None) -> None:
    """Configure root logging once.

    Timestamps are rendered in UTC to line up with stored reservation times.
    """

    global _LOGGER_INITIALIZED
    if _LOGGER_INITIALIZED:
        return

    resolved_level = (level or get_settings().log_level).upper()
    handler = logging.StreamHandler(sys.stdout)
    formatter = logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%dT%H:%M:%S")
    formatter.converter = time.gmtime
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.setLevel(resolved_level)
    root.addHandler(handler)
    for name in _QUIETED_LOGGERS:
        logging.getLogger(name).setLevel(max(logging.WARNING, root.level))
    _LOGGER_INITIALIZED = True


def get_logger(name: str) -> logging.Logger:
    configure_logging()
    return logging.getLogger(name)
