"""Logging helper for scripts that embed ragstore.

Library modules only call ``logging.getLogger(__name__)``; handlers are the
application's business. ``get_logger()`` with no name configures the
``ragstore`` package logger, so every ``ragstore.*`` module reports through it.
"""

from __future__ import annotations

import logging
import sys

_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
_PACKAGE_LOGGER = "ragstore"


def get_logger(name: str | None = None, level: int | str = logging.INFO) -> logging.Logger:
    """Return *name*'s logger with one stdout handler attached.

    Repeated calls never add a second handler; they only apply *level*, which
    may be a number or a level name such as ``"DEBUG"``.
    """
    logger = logging.getLogger(name or _PACKAGE_LOGGER)
    logger.setLevel(level.upper() if isinstance(level, str) else level)
    if logger.handlers:
        return logger

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(_FORMAT))
    logger.addHandler(handler)
    logger.propagate = False
    return logger
