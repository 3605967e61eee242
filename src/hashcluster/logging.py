"""
Package logging.

Every module logs through a child of the ``hashcluster`` logger. Only that
package logger carries a handler, so records are formatted once and the level
can be changed for the whole library in one place.
"""

import logging
import os
from typing import Optional, Union

PACKAGE_LOGGER = "hashcluster"
LEVEL_ENV_VAR = "HASHCLUSTER_LOG_LEVEL"
DEFAULT_LEVEL = logging.WARNING
LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def _resolve_level(level: Optional[Union[int, str]]) -> int:
    if level is None:
        level = os.getenv(LEVEL_ENV_VAR, "")
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(level.strip().upper())
    # getLevelName answers "Level X" for names it doesn't know
    return resolved if isinstance(resolved, int) else DEFAULT_LEVEL


def configure_logging(level: Optional[Union[int, str]] = None) -> logging.Logger:
    """
    Attach the stream handler to the package logger and set its level.

    Args:
        level: Level number or name; defaults to HASHCLUSTER_LOG_LEVEL, then WARNING

    Returns:
        The package logger
    """
    logger = logging.getLogger(PACKAGE_LOGGER)
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
    logger.setLevel(_resolve_level(level))
    return logger


def get_logger(name: str) -> logging.Logger:
    if not logging.getLogger(PACKAGE_LOGGER).handlers:
        configure_logging()
    return logging.getLogger(name)
