"""Console logging for the loader.

All modules log through children of the ``route_loader`` logger
(``logging.getLogger(__name__)``), so configuring that single logger once at
program start routes progress, warnings and errors to stdout.
"""

from __future__ import annotations

import logging
import sys

LOGGER_NAME = "route_loader"
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"


def setup_logging(level: str | int = logging.INFO) -> logging.Logger:
    """Set up the shared loader logger with a stdout handler.

    Safe to call more than once: the handler is only attached the first time,
    later calls just update the level.

    Args:
        level: Logging level name ("INFO", "debug", ...) or numeric level.

    Returns:
        The configured ``route_loader`` logger.
    """
    if isinstance(level, str):
        level = level.upper()
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
    return logger
