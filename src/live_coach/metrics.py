"""Rolling metrics aggregator.

:func:`recompute` derives :class:`~live_coach.models.metrics.SessionMetrics`
from the full transcript every time a turn is appended.  It is a pure
function of the turns it is given, so repeated calls on the same log
return equal snapshots.

:func:`imbalance_detection` turns an out-of-band talk-time ratio into a
synthetic detection that goes through the rate limiter like any other.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from live_coach.models.feedback import Category, Detection
from live_coach.models.metrics import SessionMetrics
from live_coach.models.transcript import Speaker, TranscriptTurn
from live_coach.patterns import IMBALANCE_ABOVE, IMBALANCE_BELOW
from live_coach.scanner import objection_categories, technique_categories

_DEFAULT_RATIO = 50


@dataclass(frozen=True)
class TalkTimeBand:
    """Acceptable talk-time ratio range.

    Attributes:
        low: Ratios strictly below this are "talking too little".
        high: Ratios strictly above this are "talking too much".
        min_turns: No imbalance is reported until the log has this many
            turns.
    """

    low: int = 35
    high: int = 70
    min_turns: int = 3


def talk_time_ratio(turns: Sequence[TranscriptTurn]) -> int:
    """Trainee share of all transcript characters, rounded to ``0..100``.

    Returns ``50`` when the transcript holds no text.
    """
    trainee_chars = 0
    total_chars = 0
    for turn in turns:
        length = len(turn.text)
        total_chars += length
        if turn.speaker is Speaker.TRAINEE:
            trainee_chars += length

    if total_chars == 0:
        return _DEFAULT_RATIO
    return round(trainee_chars / total_chars * 100)


def recompute(turns: Sequence[TranscriptTurn]) -> SessionMetrics:
    """Compute a fresh metrics snapshot from *turns*.

    Args:
        turns: Every turn in the transcript log, in order.

    Returns:
        A new :class:`SessionMetrics`.
    """
    objection_count = 0
    techniques: set[str] = set()

    for turn in turns:
        if turn.speaker is Speaker.COUNTERPART:
            if objection_categories(turn):
                objection_count += 1
        else:
            techniques.update(category.value for category in technique_categories(turn))

    return SessionMetrics(
        talk_time_ratio=talk_time_ratio(turns),
        objection_count=objection_count,
        techniques_used=frozenset(techniques),
        turn_count=len(turns),
    )


def imbalance_detection(
    metrics: SessionMetrics,
    turn: TranscriptTurn,
    band: TalkTimeBand | None = None,
) -> Detection | None:
    """Return a talk-time detection if *metrics* fall outside *band*.

    Args:
        metrics: The snapshot just recomputed after *turn* was appended.
        turn: The turn that triggered the recompute.
        band: Acceptable range; defaults to ``35..70`` after 3 turns.

    Returns:
        A :attr:`Category.TALK_TIME_IMBALANCE` detection whose evidence is
        ``"above"`` or ``"below"``, or ``None`` when the ratio is in band.
    """
    band = band or TalkTimeBand()
    if metrics.turn_count < band.min_turns:
        return None

    ratio = metrics.talk_time_ratio
    if ratio > band.high:
        direction = IMBALANCE_ABOVE
    elif ratio < band.low:
        direction = IMBALANCE_BELOW
    else:
        return None

    return Detection(
        category=Category.TALK_TIME_IMBALANCE,
        turn_sequence=turn.sequence,
        detected_at=turn.arrived_at,
        evidence=direction,
        ratio=ratio,
    )
