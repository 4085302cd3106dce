"""Typed events exchanged between the connection, the session and readers.

Channel events are published by
:class:`~live_coach.connection.ConnectionStateMachine` onto its single
``events`` queue and consumed in order by the coaching session.  Session
updates are fanned out by :class:`~live_coach.engine.CoachingSession` to
presentation subscribers.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Union

from live_coach.models.connection import ConnectionStatus
from live_coach.models.feedback import FeedbackItem
from live_coach.models.metrics import SessionMetrics


@dataclass(frozen=True)
class TranscriptReceived:
    """A finished utterance from either party.

    Attributes:
        speaker: Raw speaker label as sent by the channel.
        text: Raw utterance text; validated by the transcript log.
        timestamp: ``datetime``, epoch seconds, or ``None``.
    """

    speaker: Any
    text: Any
    timestamp: datetime | float | None = None


@dataclass(frozen=True)
class AudioChunkReceived:
    """Opaque inbound audio.  Never decoded by the engine."""

    chunk: Any


@dataclass(frozen=True)
class ChannelEnded:
    """The remote side ended the call."""

    reason: str = "ended"


@dataclass(frozen=True)
class ChannelFailed:
    """The channel reported an error while connected."""

    error: BaseException


@dataclass(frozen=True)
class ConnectionChanged:
    """The connection moved to a new state."""

    status: ConnectionStatus


ChannelEvent = Union[
    TranscriptReceived, AudioChunkReceived, ChannelEnded, ChannelFailed, ConnectionChanged
]


@dataclass(frozen=True)
class FeedbackEmitted:
    """A feedback item was accepted and queued."""

    item: FeedbackItem


@dataclass(frozen=True)
class MetricsUpdated:
    """Metrics were recomputed after a turn."""

    metrics: SessionMetrics


SessionUpdate = Union[FeedbackEmitted, MetricsUpdated, ConnectionChanged]
