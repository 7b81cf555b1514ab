"""
Logging setup.

Configures the loguru logger for command line runs: a coloured stderr
sink plus an optional rotating file sink.
"""

import sys

from loguru import logger


CONSOLE_FORMAT = (
    "<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | {message}"
)


def setup_logging(level: str = "INFO", log_file: str | None = None) -> None:
    """Configure logger sinks, replacing any previously added ones."""
    logger.remove()
    logger.add(sys.stderr, format=CONSOLE_FORMAT, level=level)

    if log_file:
        logger.add(
            log_file,
            rotation="1 day",
            retention="7 days",
            level=level,
            encoding="utf-8",
        )
