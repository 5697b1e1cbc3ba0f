# app/logger.py
# Role: Logging setup for the finance tracker.
#       Store, routes and main.py get their logger via get_logger(__name__);
#       the level comes from config.LOG_LEVEL (LOG_LEVEL in .env).

import logging
import sys
from typing import Optional

import config

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"

_handler: Optional[logging.Handler] = None


def configure_logging(level: Optional[str] = None) -> logging.Handler:
    """
    Send log records to stdout through a single root handler.

    Safe to call repeatedly: the handler is installed once, later calls only
    change the level.
    """
    global _handler
    root = logging.getLogger()
    root.setLevel(level or config.LOG_LEVEL)
    if _handler is None:
        _handler = logging.StreamHandler(sys.stdout)
        _handler.setFormatter(logging.Formatter(LOG_FORMAT, "%Y-%m-%d %H:%M:%S"))
        root.addHandler(_handler)
    return _handler


def get_logger(name: str) -> logging.Logger:
    if _handler is None:
        configure_logging()
    return logging.getLogger(name)
