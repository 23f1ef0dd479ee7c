"""
Logging setup shared by the library and the service.
"""
import logging
import sys

from src.geocover.config import LOG_LEVEL


def get_logger(name: str, level: str = LOG_LEVEL) -> logging.Logger:
    """
    Get a logger with a single stdout handler.

    Args:
        name: Logger name (typically __name__)
        level: Level name such as "INFO" or "DEBUG"

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        formatter = logging.Formatter(
            '%(asctime)s | %(name)s | %(levelname)s | %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    logger.setLevel(level)
    return logger
