"""
Logging setup shared by the API process and scripts.

Usage:
    from splitledger.core.logging import setup_logging
    setup_logging("INFO")
"""

import logging
import sys

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Libraries that log every query / request at INFO or DEBUG
NOISY_LOGGERS = [
    "aiosqlite",
    "httpcore",
    "httpx",
    "sqlalchemy.engine",
]


def setup_logging(level="INFO") -> logging.Logger:
    """Configure the root logger with a single console handler.

    Safe to call more than once: existing handlers are replaced.

    Args:
        level: log level name or number for the root logger

    Returns:
        The configured root logger
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
    root_logger.addHandler(handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return root_logger
