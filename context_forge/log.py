"""Logging setup. Output goes to stderr; stdout carries MCP protocol frames."""

from __future__ import annotations

import logging
import sys

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s - %(message)s"


def configure_logging(level: str | int = "INFO") -> None:
    """Configure the root logger with a single stderr handler."""
    logger = logging.getLogger()
    logger.setLevel(level.upper() if isinstance(level, str) else level)

    # Remove existing handlers to avoid duplication
    if logger.handlers:
        logger.handlers.clear()

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)

    logging.getLogger("watchdog").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)
