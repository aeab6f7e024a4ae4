"""Logging helpers shared by resolvers, caches and the HTTP client.

Records carry structured context through ``extra=extra_context(...)`` so
handlers that understand the fields (JSON formatters, test capture) can use
them while the default text format stays short.
"""
from __future__ import annotations

import logging
import os
import re
import time
import urllib.parse
from typing import Any, Dict, Optional

from ..constants import Constants

_SECRET_PATTERN = re.compile(r"(token|secret|password|authorization)=([^&\s]+)", re.IGNORECASE)


def configure_logging(level: Optional[str] = None) -> None:
    """Install a stream handler on the package logger.

    Args:
        level: Level name; falls back to DOCRESOLVE_LOG_LEVEL, then INFO.
    """
    level_name = (level or os.environ.get(Constants.ENV_LOG_LEVEL) or "INFO").upper()
    level_value = getattr(logging, level_name, logging.INFO)
    package_logger = logging.getLogger("docresolve")
    if not any(getattr(h, "_docresolve_handler", False) for h in package_logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(Constants.LOG_FORMAT))
        handler._docresolve_handler = True  # type: ignore[attr-defined]
        package_logger.addHandler(handler)
    package_logger.setLevel(level_value)


def is_debug_enabled(logger: logging.Logger) -> bool:
    """Return True when DEBUG records would be emitted by logger."""
    return logger.isEnabledFor(logging.DEBUG)


def extra_context(**fields: Any) -> Dict[str, Any]:
    """Build the ``extra`` mapping for a structured log record.

    None values are dropped so records only carry meaningful fields.
    """
    return {k: v for k, v in fields.items() if v is not None}


def safe_url(url: str) -> str:
    """Strip credentials, query string and fragment from a URL for logging."""
    try:
        parts = urllib.parse.urlsplit(url)
    except ValueError:
        return "<invalid-url>"
    host = parts.hostname or ""
    if parts.port:
        host = f"{host}:{parts.port}"
    return urllib.parse.urlunsplit((parts.scheme, host, parts.path, "", ""))


def redact(text: str) -> str:
    """Mask secret-looking key=value pairs in free text."""
    return _SECRET_PATTERN.sub(lambda m: f"{m.group(1)}=***", text)


class Timer:
    """Context manager measuring wall-clock duration."""

    def __init__(self) -> None:
        self._start = 0.0
        self._end: Optional[float] = None

    def __enter__(self) -> "Timer":
        self._start = time.perf_counter()
        self._end = None
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self._end = time.perf_counter()

    def duration_ms(self) -> int:
        """Elapsed milliseconds; still running timers report time so far."""
        end = self._end if self._end is not None else time.perf_counter()
        return int((end - self._start) * 1000)
