"""Logging setup for live-coach.

Every line is pipe-separated with an ISO 8601 timestamp.  Loggers from
:func:`session_logger` also tag each message with the coaching session it
belongs to, so interleaved lines from concurrent sessions stay readable.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import MutableMapping
from typing import Any

_LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"

# Set on the handler setup_logging installs; other root handlers are left alone.
_HANDLER_ATTR = "_live_coach_log_handler"


def setup_logging(level: str = "INFO") -> None:
    """Route engine logs to *stderr* at *level*.

    Repeated calls reuse the handler installed by the first call and only
    change its level.

    Args:
        level: A standard logging level name, case-insensitive.

    Raises:
        ValueError: If *level* is not a recognised logging level string.
    """
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        raise ValueError(f"Invalid log level: {level!r}")

    root = logging.getLogger()
    root.setLevel(numeric_level)

    existing = [h for h in root.handlers if getattr(h, _HANDLER_ATTR, False)]
    if existing:
        existing[0].setLevel(numeric_level)
        return

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(numeric_level)
    handler.setFormatter(logging.Formatter(_LOG_FORMAT, datefmt=_DATE_FORMAT))
    setattr(handler, _HANDLER_ATTR, True)
    root.addHandler(handler)


class SessionLogAdapter(logging.LoggerAdapter):
    """Prefixes messages with ``[session <id>]``."""

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> tuple[Any, MutableMapping[str, Any]]:
        return f"[session {self.extra['session_id']}] {msg}", kwargs


def session_logger(name: str, session_id: str) -> SessionLogAdapter:
    """Return a logger for *name* whose lines carry *session_id*.

    Args:
        name: Dotted logger name, typically ``__name__`` of the caller.
        session_id: Identifier of the owning coaching session.
    """
    return SessionLogAdapter(logging.getLogger(name), {"session_id": session_id})
