"""
Centralized logging configuration for GoMarket.

Usage:
    from gomarket.logging import get_logger
    logger = get_logger(__name__)

    logger.info("Cart hydrated")
    logger.error("Cart write failed", exc_info=True)
"""

import logging
import os
import sys
from functools import cache

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_FORMAT_SIMPLE = "%(levelname)s - %(name)s - %(message)s"


def _get_log_level() -> int:
    """Get log level from environment or default to INFO."""
    level_name = os.environ.get("LOG_LEVEL", "INFO").upper()
    return getattr(logging, level_name, logging.INFO)


def _configure_root_logger() -> None:
    """Attach a stdout handler to the root logger unless one is already set up."""
    root = logging.getLogger()

    if root.handlers:
        return

    level = _get_log_level()
    root.setLevel(level)

    # Compact format on Vercel, timestamps locally
    compact = os.environ.get("VERCEL") == "1"
    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT_SIMPLE if compact else LOG_FORMAT))
    root.addHandler(handler)

    # Upstash client talks over httpx
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


_configure_root_logger()


@cache
def get_logger(name: str) -> logging.Logger:
    """
    Get or create a logger with the given name.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured logger instance
    """
    return logging.getLogger(name)


# Control characters that could forge extra log lines (CWE-117)
_LOG_ESCAPES = str.maketrans({"\n": "\\n", "\r": "\\r", "\t": "\\t", "\x00": None})


def _clip(value: str | None, limit: int, marker: str) -> str:
    if not value:
        return "N/A"
    safe_value = str(value).translate(_LOG_ESCAPES)
    if len(safe_value) <= limit:
        return safe_value
    return safe_value[:limit] + marker


def sanitize_id_for_logging(id_value: str | None) -> str:
    """Escaped product id cut to its first 8 chars, or "N/A"."""
    return _clip(id_value, 8, "")


def sanitize_string_for_logging(value: str | None, max_length: int = 50) -> str:
    """
    Sanitize free text (titles, storage keys) for logging.

    Args:
        value: String value to sanitize (can be None)
        max_length: Maximum length to keep (default: 50)

    Returns:
        Escaped string, "..." appended when cut, or "N/A" if empty
    """
    return _clip(value, max_length, "...")


__all__ = [
    "LOG_FORMAT",
    "LOG_FORMAT_SIMPLE",
    "get_logger",
    "sanitize_id_for_logging",
    "sanitize_string_for_logging",
]
