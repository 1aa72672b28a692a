"""
Logger factory shared by every pulsechain module.

Library modules call `get_logger(__name__)`; only the process entry point
calls `configure_logging`, which attaches the single formatted handler to
the package logger.
"""

import logging

LOG_FORMAT = '[%(asctime)s] %(levelname)s %(name)s: %(message)s'
PACKAGE_LOGGER = 'pulsechain'


def get_logger(name=None):
    """Return a logger for a module, parented to the package logger."""
    if name and not name.startswith(PACKAGE_LOGGER):
        name = f"{PACKAGE_LOGGER}.{name}"
    return logging.getLogger(name or PACKAGE_LOGGER)


def configure_logging(level="INFO"):
    """Attach a standardized stream handler to the package logger."""
    logger = logging.getLogger(PACKAGE_LOGGER)
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
    logger.setLevel(level.upper() if isinstance(level, str) else level)
    return logger
