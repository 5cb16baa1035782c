"""Loguru sink configuration."""

import sys
from typing import Optional

from loguru import logger

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan> | <level>{message}</level>"
)


def configure_logging(level: str = "INFO", log_file: Optional[str] = None) -> None:
    """
    Replace loguru's default handler with the engine's sinks.

    Args:
        level: Console log level
        log_file: Optional path for a rotating DEBUG-level file log
    """
    logger.remove()  # Remove default handler

    logger.add(sys.stderr, format=CONSOLE_FORMAT, level=level.upper())

    if log_file:
        logger.add(
            log_file,
            rotation="10 MB",
            retention="7 days",
            compression="zip",
            level="DEBUG",
        )
