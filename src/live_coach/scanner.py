"""Incremental scanner: pattern detection for a single new turn.

The scanner is stateless.  It only ever looks at the turn it is given, so
the cost per turn depends on the size of the pattern library, not on the
length of the conversation.
"""

from __future__ import annotations

from live_coach.models.feedback import Category, Detection
from live_coach.models.transcript import Speaker, TranscriptTurn
from live_coach.patterns import (
    BUYING_SIGNAL_PATTERNS,
    INTERROGATIVE_RE,
    OBJECTION_PATTERNS,
    TECHNIQUE_PATTERNS,
    first_match,
    normalize_text,
)


def scan_turn(turn: TranscriptTurn) -> list[Detection]:
    """Detect coaching events in *turn*.

    Counterpart turns are matched against objection and buying-signal
    phrases; trainee turns against technique phrases, plus the structural
    rule that a turn opening with an interrogative is an open-ended
    question.  Each category yields at most one detection per turn.

    Args:
        turn: The newly appended turn.

    Returns:
        Detections in pattern-library order; empty when nothing matched.
    """
    text = normalize_text(turn.text)

    if turn.speaker is Speaker.COUNTERPART:
        detections = _match_all(turn, text, OBJECTION_PATTERNS)
        signal = first_match(text, BUYING_SIGNAL_PATTERNS)
        if signal is not None:
            detections.append(_detection(turn, Category.BUYING_SIGNAL, signal))
        return detections

    detections = []
    question = INTERROGATIVE_RE.match(text)
    if question is not None:
        detections.append(
            _detection(turn, Category.OPEN_ENDED_QUESTION, question.group(1))
        )
    detections.extend(_match_all(turn, text, TECHNIQUE_PATTERNS))
    return detections


def objection_categories(turn: TranscriptTurn) -> list[Category]:
    """Objection categories :func:`scan_turn` would report for *turn*."""
    return [d.category for d in scan_turn(turn) if d.category in OBJECTION_PATTERNS]


def technique_categories(turn: TranscriptTurn) -> list[Category]:
    """Technique categories :func:`scan_turn` would report for *turn*."""
    if turn.speaker is not Speaker.TRAINEE:
        return []
    return [d.category for d in scan_turn(turn)]


def _match_all(
    turn: TranscriptTurn,
    text: str,
    library: dict[Category, tuple[str, ...]],
) -> list[Detection]:
    detections = []
    for category, phrases in library.items():
        phrase = first_match(text, phrases)
        if phrase is not None:
            detections.append(_detection(turn, category, phrase))
    return detections


def _detection(turn: TranscriptTurn, category: Category, evidence: str) -> Detection:
    return Detection(
        category=category,
        turn_sequence=turn.sequence,
        detected_at=turn.arrived_at,
        evidence=evidence,
    )
