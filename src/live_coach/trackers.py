"""Stateful follow-up rules evaluated as turns arrive.

Unlike the scanner, these rules depend on how the conversation unfolds
over time.  Both are evaluated lazily on the next turn, so neither needs a
timer, and both belong to a single session.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta

from live_coach.models.feedback import Category, Detection
from live_coach.models.transcript import Speaker, TranscriptTurn
from live_coach.patterns import CATEGORY_TEMPLATES, OBJECTION_PATTERNS

logger = logging.getLogger(__name__)


class ObjectionFollowUpTracker:
    """Flags objections the trainee did not respond to in time.

    An objection is resolved by any trainee turn arriving within *window*
    of it.  If the first turn to arrive after the window has closed finds
    the objection still open, one :attr:`Category.UNADDRESSED_OBJECTION`
    detection is produced, keyed to the objection's turn.

    Args:
        window: Time the trainee has to respond.
    """

    def __init__(self, window: timedelta = timedelta(seconds=30)) -> None:
        self.window = window
        self._pending: dict[int, tuple[Category, datetime]] = {}

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def observe(self, turn: TranscriptTurn, detections: list[Detection]) -> list[Detection]:
        """Update open objections with *turn* and its scanner *detections*.

        Returns:
            Unaddressed-objection detections for objections that expired.
        """
        expired: list[Detection] = []

        for sequence, (category, raised_at) in list(self._pending.items()):
            elapsed = turn.arrived_at - raised_at
            if elapsed > self.window:
                del self._pending[sequence]
                expired.append(
                    Detection(
                        category=Category.UNADDRESSED_OBJECTION,
                        turn_sequence=sequence,
                        detected_at=turn.arrived_at,
                        evidence=CATEGORY_TEMPLATES[category].label.lower(),
                    )
                )
            elif turn.speaker is Speaker.TRAINEE:
                logger.debug("Objection at turn %d answered by turn %d", sequence, turn.sequence)
                del self._pending[sequence]

        if turn.speaker is Speaker.COUNTERPART:
            for detection in detections:
                if detection.category in OBJECTION_PATTERNS:
                    # Track the first objection category per turn.
                    self._pending[turn.sequence] = (detection.category, turn.arrived_at)
                    break

        return expired


class MonologueTracker:
    """Flags long uninterrupted runs of trainee turns.

    A run starts at a trainee turn and is broken by any counterpart turn.
    A trainee turn arriving more than *threshold* after the run started
    produces a :attr:`Category.MONOLOGUE` detection and starts a new run.

    Args:
        threshold: Run length that triggers the warning.
    """

    def __init__(self, threshold: timedelta = timedelta(seconds=45)) -> None:
        self.threshold = threshold
        self._run_started: datetime | None = None

    def observe(self, turn: TranscriptTurn) -> Detection | None:
        if turn.speaker is Speaker.COUNTERPART:
            self._run_started = None
            return None

        if self._run_started is None:
            self._run_started = turn.arrived_at
            return None

        if turn.arrived_at - self._run_started > self.threshold:
            self._run_started = turn.arrived_at
            return Detection(
                category=Category.MONOLOGUE,
                turn_sequence=turn.sequence,
                detected_at=turn.arrived_at,
            )
        return None
