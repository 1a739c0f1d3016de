"""Loguru sink setup for the CLI."""

import sys

from loguru import logger

_FORMAT = (
    "<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)


def configure_logging(level: str = "INFO") -> int:
    """Replace loguru's default sink with a single stderr sink at ``level``."""
    logger.remove()
    return logger.add(sys.stderr, level=level.upper(), format=_FORMAT, backtrace=False)
