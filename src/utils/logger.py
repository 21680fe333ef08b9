"""Shared logger for the ingestion and translation pipeline."""

import logging
import sys


LOGGER_NAME = "mangatl"
LOG_FORMAT = "[%(levelname)s] %(asctime)s %(name)s: %(message)s"
DATE_FORMAT = "%H:%M:%S"


def setup_logging(name: str = LOGGER_NAME, level: int = logging.INFO) -> logging.Logger:
    """Create the package logger with a single stderr handler."""
    log = logging.getLogger(name)
    if not log.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
        log.addHandler(handler)
    log.setLevel(level)
    return log


def set_log_level(level: int) -> None:
    logger.setLevel(level)


logger = setup_logging()
