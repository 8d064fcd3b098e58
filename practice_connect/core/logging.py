"""
Logging setup for the practice_connect.* logger hierarchy.

Every module logs through ``logging.getLogger("practice_connect.<area>")``.
This module attaches a single stdout handler to the package root logger once,
at application startup.

Log Format:
===========
    [2025-01-15 10:30:00] INFO [practice_connect.services.credentials] Stored gsc access_token

Context is passed with ``extra=`` (client id, provider, upstream status).
Secrets never go through the logger - only their presence.
"""

import logging
import sys


ROOT_LOGGER_NAME = "practice_connect"


def configure_logging(level: str = "INFO") -> logging.Logger:
    """
    Configure the package root logger.

    Safe to call more than once: the handler is only attached the first time,
    later calls just update the level.

    Args:
        level: Level name ("DEBUG", "INFO", ...)

    Returns:
        The configured root logger for the package
    """
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(level.upper())

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        formatter = logging.Formatter(
            '[%(asctime)s] %(levelname)s [%(name)s] %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    return logger
