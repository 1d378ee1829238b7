import sys

from loguru import logger


def configure_logging(level: str = "INFO"):
    """Replace loguru's default sink with a compact stderr sink"""
    logger.remove()
    logger.add(
        sys.stderr,
        level=level.upper(),
        format="<dim>{time:HH:mm:ss}</dim> | <level>{level: <8}</level> | {message}",
    )
