"""Logging configuration — single-line ``[time] LEVEL message`` records."""
from __future__ import annotations

import logging
import sys

_LEVEL_ALIASES = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARN": logging.WARNING,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
}

LOG_FORMAT = "[%(asctime)s.%(msecs)03d] %(levelname)-5s %(message)s"
DATE_FORMAT = "%H:%M:%S"


def configure_logging(level: str = "INFO") -> None:
    """Configure the root logger for the keeper.

    Unknown level names fall back to INFO. Noisy third-party loggers are held
    at WARNING regardless of the chosen level.
    """
    resolved = _LEVEL_ALIASES.get(str(level).upper(), logging.INFO)

    logging.addLevelName(logging.WARNING, "WARN")

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(resolved)

    logging.getLogger("aiohttp").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)
