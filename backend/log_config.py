# backend/log_config.py
import sys
from loguru import logger

import config

_configured = False


def setup_logging() -> None:
    """
    Replace loguru's default sink with one stderr sink using the configured
    level and format. Safe to call more than once.
    """
    global _configured
    if _configured:
        return
    logger.remove()
    logger.add(sys.stderr, format=config.LOG_FORMAT, level=config.LOG_LEVEL, colorize=True)
    _configured = True
    logger.info(f"Logging initialised at level {config.LOG_LEVEL}")
