"""Log sink setup for the feature-info service."""

from __future__ import annotations

import sys

from loguru import logger


def configure_logging(level: str = "INFO") -> None:
    """Replace loguru's default sink with a stderr sink at ``level``.

    Args:
        level: Minimum level name, e.g. "DEBUG" or "WARNING".
    """
    logger.remove()
    logger.add(sys.stderr, level=level.upper())
