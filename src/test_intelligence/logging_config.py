"""Loguru sink setup for library callers."""

import sys
from typing import Optional

from loguru import logger

from .config import TestIntelligenceConfig


def setup_logging(config: Optional[TestIntelligenceConfig] = None) -> int:
    """
    Replace loguru's default sinks with a single stderr sink.

    Args:
        config: Configuration providing ``log_level`` and ``log_json``

    Returns:
        The id of the installed sink, usable with ``logger.remove``
    """
    config = config or TestIntelligenceConfig()
    logger.remove()
    return logger.add(
        sys.stderr,
        level=config.log_level,
        serialize=config.log_json,
        backtrace=False,
        diagnose=False,
    )
