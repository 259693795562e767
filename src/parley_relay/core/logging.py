"""Logging configuration helpers."""

from __future__ import annotations

import logging

LOG_FORMAT = "%(asctime)s %(levelname)-8s [%(name)s] %(message)s"
PACKAGE_LOGGER = "parley_relay"


def configure_logging(log_level: str = "INFO") -> None:
    """Install a root handler (if none exists) and set the package log level.

    Existing root handlers, such as those installed by uvicorn or pytest, are
    left untouched.
    """
    logging.basicConfig(level=logging.WARNING, format=LOG_FORMAT)
    logging.getLogger(PACKAGE_LOGGER).setLevel(log_level.upper())
