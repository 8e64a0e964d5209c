"""Loguru setup shared by the API and the CLI entry points."""

from __future__ import annotations

import sys

from loguru import logger

LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level>"
)


def configure_logging(level: str = "INFO") -> None:
    """Replace loguru's default sink with a single stderr sink at ``level``."""
    logger.remove()
    logger.add(sys.stderr, format=LOG_FORMAT, level=level.upper())
