#!/usr/bin/env python3
"""
Logging setup for the engine and its command line
Messages go to stderr so the server's stdout carries only responses
"""

import logging
import sys

ROOT_LOGGER_NAME = "nevealdj"
_FORMAT = "[%(levelname)s][%(name)s] %(message)s"


def setup_logging(level: str = "INFO") -> logging.Logger:
    """Install a single stderr handler on the package logger"""
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    # Replace rather than reuse: sys.stderr may have been swapped since the last call
    for handler in [h for h in logger.handlers if getattr(h, "_nevealdj", False)]:
        logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(_FORMAT))
    handler._nevealdj = True
    logger.addHandler(handler)
    logger.propagate = False
    set_log_level(level)
    return logger


def set_log_level(level: str) -> None:
    """Set the package log level (DEBUG/INFO/WARNING/ERROR)"""
    level_name = (level or "INFO").upper()
    level_val = getattr(logging, level_name, logging.INFO)
    logging.getLogger(ROOT_LOGGER_NAME).setLevel(level_val)


def get_log_level() -> str:
    """Current package log level name"""
    return logging.getLevelName(logging.getLogger(ROOT_LOGGER_NAME).level)
