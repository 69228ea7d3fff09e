"""Centralized logging helpers shared by the CLI, resolver and registry clients.

Structured fields are attached through ``extra=extra_context(...)`` so the
same call sites render as plain text in human mode and as one JSON object per
line when ``DEPFORCE_LOG_FORMAT=json``.
"""
from __future__ import annotations

import json
import logging
import os
import re
import sys
import time
from typing import Any, Dict, Optional
from urllib.parse import urlsplit, urlunsplit

_STRUCTURED_KEYS = (
    "event",
    "component",
    "action",
    "outcome",
    "target",
    "package_manager",
    "status_code",
    "duration_ms",
    "count",
    "attempt",
    "context",
    "coordinate",
)

_SENSITIVE_PATTERN = re.compile(
    r"(?i)(token|secret|password|passwd|authorization|api[_-]?key)=([^&\s]+)"
)

_HUMAN_FORMAT = "[%(levelname)s] %(message)s"


class StructuredFormatter(logging.Formatter):
    """Render records as JSON including any structured fields present."""

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "ts": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key in _STRUCTURED_KEYS:
            value = getattr(record, key, None)
            if value is not None:
                payload[key] = value
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def configure_logging() -> None:
    """Configure the root logger from DEPFORCE_LOG_LEVEL / DEPFORCE_LOG_FORMAT.

    Safe to call more than once; previously installed depforce handlers are
    replaced rather than duplicated.
    """
    level_name = os.environ.get("DEPFORCE_LOG_LEVEL", "INFO").upper()
    level = getattr(logging, level_name, logging.INFO)
    fmt = os.environ.get("DEPFORCE_LOG_FORMAT", "human").lower()

    root = logging.getLogger()
    for handler in list(root.handlers):
        if getattr(handler, "_depforce_handler", False):
            root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler._depforce_handler = True  # type: ignore[attr-defined]
    if fmt == "json":
        handler.setFormatter(StructuredFormatter())
    else:
        handler.setFormatter(logging.Formatter(_HUMAN_FORMAT))
    root.addHandler(handler)
    root.setLevel(level)


def extra_context(**kwargs: Any) -> Dict[str, Any]:
    """Build the ``extra`` mapping for a log call, dropping None values."""
    return {k: v for k, v in kwargs.items() if v is not None}


def is_debug_enabled(logger: logging.Logger) -> bool:
    """Return True when DEBUG records from ``logger`` would be emitted."""
    return logger.isEnabledFor(logging.DEBUG)


def redact(text: Optional[str]) -> str:
    """Mask credential-like key=value pairs in free text."""
    if not text:
        return ""
    return _SENSITIVE_PATTERN.sub(lambda m: f"{m.group(1)}=***", text)


def safe_url(url: Optional[str]) -> str:
    """Strip userinfo and query string from a URL before logging it."""
    if not url:
        return ""
    try:
        parts = urlsplit(url)
    except ValueError:
        return redact(url)
    netloc = parts.hostname or ""
    if parts.port:
        netloc = f"{netloc}:{parts.port}"
    return urlunsplit((parts.scheme, netloc, parts.path, "", ""))


class Timer:
    """Context manager measuring wall-clock duration in milliseconds."""

    def __init__(self) -> None:
        self._start = 0.0
        self._end: Optional[float] = None

    def __enter__(self) -> "Timer":
        self._start = time.perf_counter()
        self._end = None
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self._end = time.perf_counter()

    def duration_ms(self) -> float:
        """Elapsed milliseconds; still running timers report time so far."""
        end = self._end if self._end is not None else time.perf_counter()
        return round((end - self._start) * 1000.0, 2)
