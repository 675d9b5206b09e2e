"""Logging setup shared by the command line entry point and tests.

Usage:
    from famledger.logging import setup_logging
    setup_logging(logging.INFO)
"""

import logging
import sys

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Loggers that are too chatty below WARNING
NOISY_LOGGERS = ["sqlalchemy.engine", "sqlalchemy.pool"]


def setup_logging(level: int = logging.WARNING) -> logging.Logger:
    """Configure the famledger logger with a single stderr handler.

    Calling it again only changes the level.

    Args:
        level: Log level for famledger messages

    Returns:
        The configured "famledger" logger
    """
    logger = logging.getLogger("famledger")
    logger.setLevel(level)

    if not any(getattr(h, "_famledger", False) for h in logger.handlers):
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
        handler._famledger = True
        logger.addHandler(handler)
        logger.propagate = False

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return logger
