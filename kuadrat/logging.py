"""
Logging for the cart engine.

    from kuadrat.logging import get_logger
    logger = get_logger(__name__)

Handlers are attached to the root logger once, on first import, unless the
host application already configured logging. Session ids and storage error
text come from outside the process, so they pass through the sanitizers
below before reaching a log line.
"""

import logging
import os
import sys
from functools import cache

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_FORMAT_SIMPLE = "%(levelname)s - %(name)s - %(message)s"

# Upstash's REST client logs every request through these
_NOISY_LOGGERS = ("httpx", "httpcore")


def configure_logging() -> None:
    """
    Attach a stdout handler to the root logger.

    LOG_LEVEL picks the level (default INFO); VERCEL=1 switches to the
    short format. Does nothing when the root logger already has handlers.
    """
    root = logging.getLogger()
    if root.handlers:
        return

    level = getattr(logging, os.environ.get("LOG_LEVEL", "INFO").upper(), logging.INFO)
    fmt = LOG_FORMAT_SIMPLE if os.environ.get("VERCEL") == "1" else LOG_FORMAT

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt))
    root.setLevel(level)
    root.addHandler(handler)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


configure_logging()


@cache
def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def _clean(value) -> str:
    # CWE-117: no forged log lines through control characters
    return (
        str(value)
        .replace("\n", "\\n")
        .replace("\r", "\\r")
        .replace("\t", "\\t")
        .replace("\x00", "")
    )


def sanitize_id_for_logging(id_value: str | None) -> str:
    """Session or product id, escaped and cut to 8 characters ("N/A" if empty)."""
    if not id_value:
        return "N/A"
    return _clean(id_value)[:8]


def sanitize_string_for_logging(value: str | None, max_length: int = 50) -> str:
    """
    Free text such as a storage exception message, escaped and truncated
    to `max_length` with a trailing "..." ("N/A" if empty).
    """
    if not value:
        return "N/A"
    safe_value = _clean(value)
    if len(safe_value) <= max_length:
        return safe_value
    return safe_value[:max_length] + "..."


__all__ = [
    "LOG_FORMAT",
    "LOG_FORMAT_SIMPLE",
    "configure_logging",
    "get_logger",
    "sanitize_id_for_logging",
    "sanitize_string_for_logging",
]
