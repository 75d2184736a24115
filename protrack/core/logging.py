"""Logging configuration shared by the API process."""

from __future__ import annotations

import logging
import sys

LOG_FORMAT = "%(asctime)s [%(name)s] %(levelname)s: %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def configure_logging(level: str = "INFO") -> logging.Logger:
    """Install one stream handler on the ``protrack`` logger.

    Safe to call more than once; the handler is only added the first time.
    """

    logger = logging.getLogger("protrack")
    logger.setLevel(level)

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
        logger.addHandler(handler)
    for handler in logger.handlers:
        handler.setLevel(level)

    logger.propagate = False
    return logger
