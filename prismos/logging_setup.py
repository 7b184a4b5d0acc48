"""Logging configuration for the agent kernel."""
from __future__ import annotations

import logging

_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"

# Chatty third-party loggers held at WARNING regardless of the root level.
_QUIET_LOGGERS = ("aiohttp", "anthropic", "httpx")


def configure_logging(level: str = "INFO") -> None:
    """Configure the root logger.

    Unknown level names fall back to INFO.
    """
    numeric = logging.getLevelName(level.upper()) if isinstance(level, str) else level
    if not isinstance(numeric, int):
        numeric = logging.INFO

    root = logging.getLogger()
    root.setLevel(numeric)

    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(_FORMAT))
        root.addHandler(handler)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
