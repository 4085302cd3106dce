"""live-coach: real-time coaching for simulated sales conversations.

Detects objections, persuasion techniques and talk-time imbalance as
dialogue turns arrive, and surfaces throttled, de-duplicated feedback
alongside rolling session metrics.
"""

from __future__ import annotations

from live_coach.config import ConfigError, Settings, load_settings
from live_coach.connection import ConnectionStateMachine
from live_coach.engine import CoachingSession, SessionRecord
from live_coach.exceptions import (
    ChannelError,
    CoachConnectionError,
    CoachError,
    ConnectionStateError,
    HandshakeFailureError,
    HandshakeTimeoutError,
    MalformedTurnPayloadError,
    PermissionDeniedError,
    UnexpectedChannelCloseError,
)
from live_coach.feedback_queue import FeedbackQueue
from live_coach.metrics import recompute
from live_coach.models import (
    Category,
    ConnectionState,
    ConnectionStatus,
    Detection,
    FeedbackItem,
    SessionMetrics,
    Severity,
    Speaker,
    TranscriptTurn,
)
from live_coach.rate_limiter import FeedbackRateLimiter
from live_coach.scanner import scan_turn
from live_coach.transcript_log import TranscriptLog

__version__ = "0.1.0"

__all__ = [
    "Category",
    "ChannelError",
    "CoachConnectionError",
    "CoachError",
    "CoachingSession",
    "ConfigError",
    "ConnectionState",
    "ConnectionStateError",
    "ConnectionStateMachine",
    "ConnectionStatus",
    "Detection",
    "FeedbackItem",
    "FeedbackQueue",
    "FeedbackRateLimiter",
    "HandshakeFailureError",
    "HandshakeTimeoutError",
    "MalformedTurnPayloadError",
    "PermissionDeniedError",
    "SessionMetrics",
    "SessionRecord",
    "Settings",
    "Severity",
    "Speaker",
    "TranscriptLog",
    "TranscriptTurn",
    "UnexpectedChannelCloseError",
    "load_settings",
    "recompute",
    "scan_turn",
]
