"""Logging setup for the application entry point."""

from __future__ import annotations

import logging

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str | int = "INFO") -> logging.Logger:
    """Install one stream handler on the ``cliptrim`` logger.

    Safe to call repeatedly; later calls only update the level.
    """
    logger = logging.getLogger("cliptrim")
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    logger.setLevel(level)
    if not any(getattr(h, "_cliptrim", False) for h in logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._cliptrim = True  # type: ignore[attr-defined]
        logger.addHandler(handler)
    return logger


__all__ = ["configure_logging", "LOG_FORMAT"]
