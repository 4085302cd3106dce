"""Coaching session: the per-session owner of all engine state.

A :class:`CoachingSession` wires the transcript log, scanner, trackers,
rate limiter, metrics aggregator and feedback queue to one
:class:`~live_coach.connection.ConnectionStateMachine`.  Nothing is
process-wide: two sessions never share dedup, cooldown or transcript
state.

Turns are analysed strictly one at a time, in arrival order, either by
the event pump started with :meth:`CoachingSession.start` or by direct
calls to :meth:`CoachingSession.ingest_turn`.
"""

from __future__ import annotations

import asyncio
import contextlib
import time
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any

from live_coach.channel import CaptureDevice, NullCapture, RealtimeChannel
from live_coach.config import Settings
from live_coach.connection import ConnectionStateMachine
from live_coach.events import (
    ChannelEnded,
    ChannelEvent,
    ChannelFailed,
    ConnectionChanged,
    FeedbackEmitted,
    MetricsUpdated,
    SessionUpdate,
    TranscriptReceived,
)
from live_coach.exceptions import CoachConnectionError, ConnectionStateError
from live_coach.feedback_queue import FeedbackQueue
from live_coach.log import session_logger
from live_coach.metrics import TalkTimeBand, imbalance_detection, recompute
from live_coach.models.connection import ConnectionState, ConnectionStatus
from live_coach.models.feedback import Detection, FeedbackItem
from live_coach.models.metrics import SessionMetrics
from live_coach.models.transcript import TranscriptTurn
from live_coach.rate_limiter import FeedbackRateLimiter
from live_coach.scanner import scan_turn
from live_coach.trackers import MonologueTracker, ObjectionFollowUpTracker
from live_coach.transcript_log import TranscriptLog

_DEFAULT_SUBSCRIBER_SIZE = 100


@dataclass
class SessionRecord:
    """Final session state handed back by :meth:`CoachingSession.stop`.

    The owning caller persists this; the engine itself never writes to
    storage.

    Attributes:
        turns: The complete transcript log.
        feedback: Feedback items still in the queue, oldest first.
        metrics: Metrics for the complete transcript.
        connection: Connection status at stop time.
        duration_seconds: Total time spent ``connected``.
        dropped_turns: Number of malformed turns rejected.
        audio_chunks: Number of inbound audio chunks seen.
    """

    turns: tuple[TranscriptTurn, ...] = ()
    feedback: tuple[FeedbackItem, ...] = ()
    metrics: SessionMetrics = field(default_factory=SessionMetrics)
    connection: ConnectionStatus = field(default_factory=ConnectionStatus)
    duration_seconds: float = 0.0
    dropped_turns: int = 0
    audio_chunks: int = 0


class CoachingSession:
    """One live coaching session.

    Args:
        channel: Realtime channel adapter.  When ``None`` the session can
            only be fed through :meth:`ingest_turn`.
        capture: Local capture device; defaults to :class:`NullCapture`.
        settings: Tuning knobs; defaults to :class:`Settings` defaults.
        clock: Returns "now" for turns that arrive without a timestamp.
        session_id: Tag for this session's log lines; random when omitted.
    """

    def __init__(
        self,
        channel: RealtimeChannel | None = None,
        capture: CaptureDevice | None = None,
        settings: Settings | None = None,
        clock: Callable[[], datetime] | None = None,
        session_id: str | None = None,
    ) -> None:
        self.session_id = session_id or uuid.uuid4().hex[:8]
        self._logger = session_logger(__name__, self.session_id)
        self.settings = settings or Settings()
        self._clock = clock or (lambda: datetime.now(timezone.utc))

        self.log = TranscriptLog(clock=self._clock)
        self.limiter = FeedbackRateLimiter(timedelta(seconds=self.settings.cooldown_seconds))
        self.feedback = FeedbackQueue(self.settings.feedback_capacity)
        self.band = TalkTimeBand(
            low=self.settings.talk_ratio_low,
            high=self.settings.talk_ratio_high,
            min_turns=self.settings.imbalance_min_turns,
        )
        self.objections = ObjectionFollowUpTracker(
            timedelta(seconds=self.settings.objection_response_seconds)
        )
        self.monologue = MonologueTracker(timedelta(seconds=self.settings.monologue_seconds))

        self.connection: ConnectionStateMachine | None = None
        if channel is not None:
            self.connection = ConnectionStateMachine(
                channel,
                capture or NullCapture(),
                handshake_timeout=self.settings.handshake_timeout_seconds,
            )

        self._metrics = SessionMetrics()
        self._subscribers: list[asyncio.Queue[SessionUpdate]] = []
        self._pump: asyncio.Task[None] | None = None
        self._connected_since: float | None = None
        self._connected_total = 0.0

    # ------------------------------------------------------------------
    # Coaching output boundary
    # ------------------------------------------------------------------

    def list_feedback(self) -> tuple[FeedbackItem, ...]:
        """Feedback items, oldest first."""
        return self.feedback.list()

    def current_metrics(self) -> SessionMetrics:
        return self._metrics

    def connection_state(self) -> ConnectionStatus:
        if self.connection is None:
            return ConnectionStatus()
        return self.connection.status

    def subscribe(self, maxsize: int = _DEFAULT_SUBSCRIBER_SIZE) -> asyncio.Queue[SessionUpdate]:
        """Return a queue receiving every subsequent session update.

        The queue is bounded; when a slow reader lets it fill up, the
        oldest update is dropped to make room.
        """
        queue: asyncio.Queue[SessionUpdate] = asyncio.Queue(maxsize=maxsize)
        self._subscribers.append(queue)
        return queue

    # ------------------------------------------------------------------
    # Ingestion
    # ------------------------------------------------------------------

    def ingest_turn(
        self,
        speaker: Any,
        text: Any,
        timestamp: datetime | float | None = None,
    ) -> list[FeedbackItem]:
        """Run one turn through the analysis pipeline.

        Appends to the log, scans the new turn, evaluates the follow-up
        trackers, recomputes metrics and checks talk-time balance.  Every
        candidate detection goes through the rate limiter; accepted items
        are pushed to the feedback queue.

        Returns:
            Feedback items emitted for this turn.  Empty for malformed
            turns, which are dropped by the log.
        """
        turn = self.log.append(speaker, text, timestamp)
        if turn is None:
            return []

        detections = scan_turn(turn)
        candidates: list[Detection] = self.objections.observe(turn, detections)
        candidates.extend(detections)
        monologue = self.monologue.observe(turn)
        if monologue is not None:
            candidates.append(monologue)

        emitted = [item for item in map(self._accept, candidates) if item is not None]

        self._metrics = recompute(self.log.turns)
        self._publish(MetricsUpdated(metrics=self._metrics))

        imbalance = imbalance_detection(self._metrics, turn, self.band)
        if imbalance is not None:
            item = self._accept(imbalance)
            if item is not None:
                emitted.append(item)

        return emitted

    # ------------------------------------------------------------------
    # Session lifecycle boundary
    # ------------------------------------------------------------------

    async def start(self) -> ConnectionStatus:
        """Start consuming channel events, then connect.

        Raises:
            ConnectionStateError: If the session has no channel, or the
                connection is not ``disconnected``.
            CoachConnectionError: If the connection attempt fails.
        """
        if self.connection is None:
            raise ConnectionStateError("Session has no realtime channel")

        if self._pump is None or self._pump.done():
            self._pump = asyncio.create_task(self._pump_events())

        try:
            return await self.connection.start()
        except CoachConnectionError:
            await self._stop_pump()
            raise

    async def stop(self) -> SessionRecord:
        """End the session and return its final record.

        Stops the connection (idempotently), analyses any events still
        queued, and stops the event pump.
        """
        if self.connection is not None:
            await self.connection.stop()
        await self._stop_pump()

        return SessionRecord(
            turns=self.log.turns,
            feedback=self.feedback.list(),
            metrics=self._metrics,
            connection=self.connection_state(),
            duration_seconds=self.duration_seconds,
            dropped_turns=self.log.dropped_count,
            audio_chunks=self.connection.audio_chunks_received if self.connection else 0,
        )

    @property
    def duration_seconds(self) -> float:
        """Total time spent ``connected`` so far."""
        running = 0.0
        if self._connected_since is not None:
            running = time.monotonic() - self._connected_since
        return self._connected_total + running

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _accept(self, detection: Detection) -> FeedbackItem | None:
        item = self.limiter.accept(detection)
        if item is not None:
            self.feedback.push(item)
            self._publish(FeedbackEmitted(item=item))
        return item

    async def _pump_events(self) -> None:
        assert self.connection is not None
        events = self.connection.events
        while True:
            event = await events.get()
            try:
                self._dispatch(event)
            finally:
                events.task_done()

    async def _stop_pump(self) -> None:
        pump, self._pump = self._pump, None
        if pump is not None:
            pump.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await pump

        if self.connection is None:
            return
        # Anything published after the pump stopped is still analysed.
        events = self.connection.events
        while not events.empty():
            self._dispatch(events.get_nowait())
            events.task_done()

    def _dispatch(self, event: ChannelEvent) -> None:
        try:
            if isinstance(event, TranscriptReceived):
                self.ingest_turn(event.speaker, event.text, event.timestamp)
            elif isinstance(event, ConnectionChanged):
                self._track_connected_time(event.status.state)
                self._publish(event)
            elif isinstance(event, ChannelEnded):
                self._logger.info("Session channel ended: %s", event.reason)
            elif isinstance(event, ChannelFailed):
                self._logger.info("Session channel failed: %s", event.error)
        except Exception:
            # Analysis is best-effort; one bad event must not end the session.
            self._logger.exception("Failed to process %s", type(event).__name__)

    def _track_connected_time(self, state: ConnectionState) -> None:
        if state is ConnectionState.CONNECTED:
            self._connected_since = time.monotonic()
        elif self._connected_since is not None:
            self._connected_total += time.monotonic() - self._connected_since
            self._connected_since = None

    def _publish(self, update: SessionUpdate) -> None:
        for queue in self._subscribers:
            if queue.full():
                queue.get_nowait()
            queue.put_nowait(update)
