"""Append-only transcript log for a live coaching session.

The log is the single source of truth for everything downstream: the
scanner looks at the turn :meth:`TranscriptLog.append` returns, and the
metrics aggregator recomputes from :attr:`TranscriptLog.turns`.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

from live_coach.exceptions import MalformedTurnPayloadError
from live_coach.models.transcript import Speaker, TranscriptTurn

logger = logging.getLogger(__name__)

# Speaker labels used by the realtime channels, mapped to engine roles.
SPEAKER_ALIASES: dict[str, Speaker] = {
    "trainee": Speaker.TRAINEE,
    "user": Speaker.TRAINEE,
    "rep": Speaker.TRAINEE,
    "counterpart": Speaker.COUNTERPART,
    "homeowner": Speaker.COUNTERPART,
    "agent": Speaker.COUNTERPART,
    "assistant": Speaker.COUNTERPART,
    "ai": Speaker.COUNTERPART,
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def resolve_speaker(speaker: Any) -> Speaker:
    """Map a raw speaker label onto a :class:`Speaker`.

    Raises:
        MalformedTurnPayloadError: If the label is not recognised.
    """
    if isinstance(speaker, Speaker):
        return speaker
    if isinstance(speaker, str):
        resolved = SPEAKER_ALIASES.get(speaker.strip().lower())
        if resolved is not None:
            return resolved
    raise MalformedTurnPayloadError(f"Unknown speaker: {speaker!r}", payload=speaker)


def resolve_timestamp(value: Any, fallback: Callable[[], datetime]) -> datetime:
    """Coerce an arrival timestamp into a timezone-aware ``datetime``.

    Accepts ``datetime`` objects (naive values are taken as UTC), epoch
    seconds as ``int``/``float``, or ``None`` to use *fallback*.

    Raises:
        MalformedTurnPayloadError: For any other type.
    """
    if value is None:
        return fallback()
    if isinstance(value, datetime):
        return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return datetime.fromtimestamp(value, tz=timezone.utc)
    raise MalformedTurnPayloadError(f"Invalid timestamp: {value!r}", payload=value)


class TranscriptLog:
    """Ordered, append-only list of :class:`TranscriptTurn` objects.

    Args:
        clock: Returns "now" for turns that arrive without a timestamp.
            Defaults to the current UTC time.
    """

    def __init__(self, clock: Callable[[], datetime] | None = None) -> None:
        self._clock = clock or _utcnow
        self._turns: tuple[TranscriptTurn, ...] = ()
        self._dropped = 0

    @property
    def turns(self) -> tuple[TranscriptTurn, ...]:
        """Snapshot of every accepted turn, in sequence order."""
        return self._turns

    @property
    def dropped_count(self) -> int:
        """Number of malformed turns rejected so far."""
        return self._dropped

    def __len__(self) -> int:
        return len(self._turns)

    def append(
        self,
        speaker: Any,
        text: Any,
        arrived_at: Any = None,
    ) -> TranscriptTurn | None:
        """Append a turn and return it.

        Malformed payloads (empty or non-string text, unknown speaker, or
        an unusable timestamp) are dropped with a warning and ``None`` is
        returned; nothing is raised to the caller.

        An ``arrived_at`` earlier than the previous turn's is clamped to
        the previous turn's time so arrival times never go backwards.

        Args:
            speaker: A :class:`Speaker` or one of :data:`SPEAKER_ALIASES`.
            text: Utterance text.
            arrived_at: ``datetime``, epoch seconds, or ``None`` for now.

        Returns:
            The new turn, or ``None`` if the payload was rejected.
        """
        try:
            turn = self._build_turn(speaker, text, arrived_at)
        except MalformedTurnPayloadError as exc:
            self._dropped += 1
            logger.warning("Dropping malformed turn: %s", exc)
            return None

        self._turns = (*self._turns, turn)
        logger.debug(
            "Appended turn %d (%s, %d chars)",
            turn.sequence,
            turn.speaker.value,
            len(turn.text),
        )
        return turn

    def _build_turn(self, speaker: Any, text: Any, arrived_at: Any) -> TranscriptTurn:
        if not isinstance(text, str):
            raise MalformedTurnPayloadError(
                f"Turn text must be a string, got {type(text).__name__}", payload=text
            )
        if not text.strip():
            raise MalformedTurnPayloadError("Turn text is empty", payload=text)

        role = resolve_speaker(speaker)
        timestamp = resolve_timestamp(arrived_at, self._clock)

        previous = self._turns[-1] if self._turns else None
        if previous is not None and timestamp < previous.arrived_at:
            logger.debug(
                "Turn timestamp %s precedes turn %d; clamping",
                timestamp.isoformat(),
                previous.sequence,
            )
            timestamp = previous.arrived_at

        sequence = previous.sequence + 1 if previous is not None else 1
        return TranscriptTurn(sequence=sequence, speaker=role, text=text, arrived_at=timestamp)
