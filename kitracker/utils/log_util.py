"""
log_util.py: Shared logger factory for the KI Tracker modules.

Usage:
    logger = app_logger(__name__)
    collect_logger = app_logger(__name__, log_file="collect.log")
"""

import logging
import os
from typing import Optional

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_LEVEL_ENV = "KITRACKER_LOG_LEVEL"


def _resolve_level(level: Optional[str]) -> int:
    name = (level or os.environ.get(LOG_LEVEL_ENV, "INFO")).upper()
    return getattr(logging, name, logging.INFO)


def app_logger(
    name: str, log_file: Optional[str] = None, level: Optional[str] = None
) -> logging.Logger:
    """
    Get a logger with a console handler and an optional file handler.

    Calling this repeatedly for the same name does not stack handlers, which
    matters because Streamlit re-imports page modules on every rerun.

    :param name: Logger name, usually the module's __name__.
    :param log_file: Optional path of a file to log to as well.
    :param level: Level name; defaults to $KITRACKER_LOG_LEVEL or INFO.
    :return: logging.Logger
    """
    logger = logging.getLogger(name)
    logger.setLevel(_resolve_level(level))
    logger.propagate = False

    formatter = logging.Formatter(LOG_FORMAT)

    if not any(
        type(h) is logging.StreamHandler for h in logger.handlers
    ):
        console = logging.StreamHandler()
        console.setFormatter(formatter)
        logger.addHandler(console)

    if log_file:
        target = os.path.abspath(log_file)
        if not any(
            isinstance(h, logging.FileHandler) and h.baseFilename == target
            for h in logger.handlers
        ):
            file_handler = logging.FileHandler(target)
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)

    return logger
