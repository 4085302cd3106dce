"""Replay a recorded transcript through a full coaching session.

Wires the transcript parser to a :class:`ScriptedChannel` and a
:class:`~live_coach.engine.CoachingSession`, so a recorded role-play
exercises the same connection lifecycle and analysis path as a live call.
The top-level entry point is :func:`run_replay`, which returns a
:class:`ReplayResult` for the report formatter.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import AsyncIterator, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from pathlib import Path

from live_coach.channel import NullCapture
from live_coach.config import Settings
from live_coach.engine import CoachingSession, SessionRecord
from live_coach.events import ChannelEnded, ChannelEvent, ConnectionChanged, TranscriptReceived
from live_coach.models.connection import ConnectionState
from live_coach.models.transcript import Speaker, TranscriptParseResult
from live_coach.parser import parse_transcript_file

logger = logging.getLogger(__name__)

END_REASON = "transcript_complete"

# Upper bound on how long a scripted replay may take to drain.
_REPLAY_TIMEOUT = 30.0


class ScriptedChannel:
    """Realtime channel that plays back a fixed list of events."""

    def __init__(self, events: Sequence[ChannelEvent]) -> None:
        self._events = list(events)
        self.closed = 0

    async def handshake(self) -> None:
        return None

    async def receive(self) -> AsyncIterator[ChannelEvent]:
        for event in self._events:
            # Yield control so the session pump runs between events.
            await asyncio.sleep(0)
            yield event

    async def close(self) -> None:
        self.closed += 1


@dataclass
class ReplayResult:
    """Everything the coaching report needs from one replay.

    Attributes:
        transcript_path: Path of the replayed transcript.
        trainee: Speaker name treated as the trainee.
        speakers_found: Unique speakers in the transcript.
        utterance_count: Number of parsed utterances.
        record: Final session record.
        warnings: Parse warnings and other non-fatal issues.
        duration_seconds: Wall-clock time for the replay.
    """

    transcript_path: Path
    trainee: str
    speakers_found: list[str] = field(default_factory=list)
    utterance_count: int = 0
    record: SessionRecord = field(default_factory=SessionRecord)
    warnings: list[str] = field(default_factory=list)
    duration_seconds: float = 0.0


def build_events(
    parse_result: TranscriptParseResult,
    trainee: str,
    start: datetime,
    spacing: timedelta,
) -> list[ChannelEvent]:
    """Turn parsed utterances into channel events.

    Utterances by *trainee* (case-insensitive) are trainee turns; every
    other speaker is the counterpart.  Turn ``n`` is stamped
    ``start + n * spacing``.  The list ends with a :class:`ChannelEnded`.
    """
    trainee_key = trainee.strip().lower()
    events: list[ChannelEvent] = []
    for index, utterance in enumerate(parse_result.utterances):
        role = Speaker.TRAINEE if utterance.speaker.lower() == trainee_key else Speaker.COUNTERPART
        events.append(
            TranscriptReceived(speaker=role, text=utterance.text, timestamp=start + spacing * index)
        )
    events.append(ChannelEnded(reason=END_REASON))
    return events


async def replay_session(
    events: Sequence[ChannelEvent],
    settings: Settings | None = None,
) -> SessionRecord:
    """Run *events* through a new session and return its record."""
    session = CoachingSession(ScriptedChannel(events), NullCapture(), settings)
    updates = session.subscribe(maxsize=0)

    await session.start()
    try:
        await asyncio.wait_for(_wait_disconnected(updates), timeout=_REPLAY_TIMEOUT)
    except asyncio.TimeoutError:
        logger.warning("Replay did not finish within %.0fs; stopping", _REPLAY_TIMEOUT)
    return await session.stop()


async def _wait_disconnected(updates: asyncio.Queue) -> None:
    while True:
        update = await updates.get()
        if isinstance(update, ConnectionChanged) and update.status.state is ConnectionState.DISCONNECTED:
            return


def run_replay(
    transcript_path: Path,
    trainee: str,
    settings: Settings | None = None,
    spacing_seconds: float = 5.0,
    start: datetime | None = None,
) -> ReplayResult:
    """Replay a transcript file and collect the coaching outcome.

    Args:
        transcript_path: Path to the ``[Speaker]: text`` transcript.
        trainee: Speaker name to coach.
        settings: Engine settings; defaults to :class:`Settings` defaults.
        spacing_seconds: Synthetic time between consecutive turns.
        start: Timestamp of the first turn.  Defaults to now (UTC).

    Returns:
        A :class:`ReplayResult`.

    Raises:
        FileNotFoundError: If *transcript_path* does not exist.
        PermissionError: If *transcript_path* is not readable.
    """
    started = time.monotonic()
    result = ReplayResult(transcript_path=transcript_path, trainee=trainee)

    logger.info("Loading transcript from %s", transcript_path)
    parse_result = parse_transcript_file(transcript_path)
    result.speakers_found = parse_result.speakers
    result.utterance_count = len(parse_result.utterances)

    for warning in parse_result.warnings:
        msg = f"Parse warning at line {warning.line_number}: {warning.message}"
        result.warnings.append(msg)
        logger.warning(msg)

    if trainee.strip().lower() not in {s.lower() for s in parse_result.speakers}:
        msg = f"Trainee {trainee!r} does not speak in this transcript"
        result.warnings.append(msg)
        logger.warning(msg)

    events = build_events(
        parse_result,
        trainee,
        start or datetime.now(timezone.utc),
        timedelta(seconds=spacing_seconds),
    )
    result.record = asyncio.run(replay_session(events, settings))

    if result.record.dropped_turns:
        result.warnings.append(f"{result.record.dropped_turns} malformed turn(s) dropped")

    result.duration_seconds = time.monotonic() - started
    logger.info(
        "Replay complete: %d turn(s), %d feedback item(s)",
        len(result.record.turns),
        len(result.record.feedback),
    )
    return result
