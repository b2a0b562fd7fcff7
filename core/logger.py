"""
Logging setup for the wildfire watch service.

Modules log through loguru's shared ``logger``; ``setup_logging`` only decides
where records go and at what level.
"""

import sys

from loguru import logger


def setup_logging(level: str = "INFO", serialize: bool = False) -> None:
    """Replace loguru's default sink with a single stderr sink."""
    logger.remove()
    logger.add(
        sys.stderr,
        format=(
            "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
            "<level>{level: <8}</level> | "
            "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
            "<level>{message}</level>"
        ),
        level=level,
        colorize=not serialize,
        serialize=serialize,
    )
    logger.info("Logging initialized", level=level)
