"""Centralized logging helpers.

Structured fields are attached through ``extra_context`` so handlers and
tests can inspect ``record.event`` / ``record.outcome`` without parsing the
message text. Debug tracing is guarded with ``is_debug_enabled`` to keep the
hot paths cheap when DEBUG is off.
"""
from __future__ import annotations

import logging
import re
import time
from typing import Any, Dict, Optional
from urllib.parse import urlsplit, urlunsplit

from constants import Constants

_SENSITIVE_PARAM_RE = re.compile(r"(?i)(token|key|secret|password|auth)=([^&]+)")


def configure_logging(level: str = "INFO", logfile: Optional[str] = None) -> None:
    """Configure the root logger with the project log format.

    Args:
        level: Level name, e.g. "INFO" or "DEBUG".
        logfile: Optional file to log to instead of stderr.
    """
    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)

    if logfile:
        handler: logging.Handler = logging.FileHandler(logfile, encoding="utf-8")
    else:
        handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(Constants.LOG_FORMAT))
    root.addHandler(handler)
    root.setLevel(getattr(logging, str(level).upper(), logging.INFO))


def extra_context(**kwargs: Any) -> Dict[str, Any]:
    """Build an ``extra`` mapping for structured log records, dropping None values."""
    return {k: v for k, v in kwargs.items() if v is not None}


def is_debug_enabled(logger: logging.Logger) -> bool:
    """Return True when DEBUG records would be emitted by logger."""
    return logger.isEnabledFor(logging.DEBUG)


def redact(text: str) -> str:
    """Mask credential-like query parameters in text."""
    if not text:
        return text
    return _SENSITIVE_PARAM_RE.sub(r"\1=***", text)


def safe_url(url: str) -> str:
    """Return url without userinfo and with sensitive query values masked."""
    try:
        parts = urlsplit(url)
    except ValueError:
        return redact(url)
    netloc = parts.hostname or ""
    if parts.port:
        netloc = f"{netloc}:{parts.port}"
    return urlunsplit((parts.scheme, netloc, parts.path, redact(parts.query), ""))


class Timer:
    """Context manager measuring wall-clock duration in milliseconds."""

    def __init__(self) -> None:
        self._start = 0.0
        self._end: Optional[float] = None

    def __enter__(self) -> "Timer":
        self._start = time.perf_counter()
        return self

    def __exit__(self, *exc: Any) -> None:
        self._end = time.perf_counter()

    def duration_ms(self) -> float:
        """Elapsed milliseconds; usable while the block is still running."""
        end = self._end if self._end is not None else time.perf_counter()
        return round((end - self._start) * 1000, 2)
