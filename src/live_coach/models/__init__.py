"""Data models for live-coach."""

from __future__ import annotations

from live_coach.models.connection import ConnectionState, ConnectionStatus
from live_coach.models.feedback import (
    Category,
    CategoryKind,
    Detection,
    FeedbackItem,
    Severity,
)
from live_coach.models.metrics import SessionMetrics
from live_coach.models.transcript import (
    ParseWarning,
    Speaker,
    TranscriptParseResult,
    TranscriptTurn,
    Utterance,
)

__all__ = [
    "Category",
    "CategoryKind",
    "ConnectionState",
    "ConnectionStatus",
    "Detection",
    "FeedbackItem",
    "ParseWarning",
    "SessionMetrics",
    "Severity",
    "Speaker",
    "TranscriptParseResult",
    "TranscriptTurn",
    "Utterance",
]
