"""
Logging setup shared by services and API modules.
"""

import logging
import sys

from planner.core.config import get_settings

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
ROOT_LOGGER_NAME = "planner"


def _configure_root() -> logging.Logger:
    root = logging.getLogger(ROOT_LOGGER_NAME)
    if not root.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(handler)
    root.setLevel(get_settings().LOG_LEVEL.upper())
    return root


def setup_logger(name: str) -> logging.Logger:
    """
    Get a module logger.

    All planner loggers hang off the ``planner`` logger, which owns the only
    console handler, so records are printed once.

    Args:
        name: Logger name (usually ``__name__``)

    Returns:
        logging.Logger for the module
    """
    root = _configure_root()
    if name == ROOT_LOGGER_NAME or name.startswith(f"{ROOT_LOGGER_NAME}."):
        return logging.getLogger(name)
    return root.getChild(name)


logger = setup_logger(ROOT_LOGGER_NAME)
