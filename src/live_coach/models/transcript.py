"""Transcript data models.

:class:`TranscriptTurn` is the unit the coaching engine works on; it is
created only by :class:`~live_coach.transcript_log.TranscriptLog`.  The
remaining dataclasses are the structured output of the replay transcript
parser.  All are plain stdlib dataclasses; Pydantic is reserved for the
models handed to the presentation layer.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class Speaker(str, Enum):
    """Role of the party that produced a turn."""

    TRAINEE = "trainee"
    COUNTERPART = "counterpart"


@dataclass(frozen=True)
class TranscriptTurn:
    """A single utterance in the live conversation.

    Attributes:
        sequence: 1-based position in the transcript log.  Strictly
            increasing with arrival order.
        speaker: Who spoke.
        text: The utterance text, as received.
        arrived_at: Timezone-aware arrival time.  Never earlier than the
            previous turn's ``arrived_at``.
    """

    sequence: int
    speaker: Speaker
    text: str
    arrived_at: datetime


@dataclass(frozen=True)
class Utterance:
    """A single speaker turn in a transcript file.

    Attributes:
        speaker: Speaker name, stripped of brackets and trimmed.
        text: Dialogue text, which may be multi-line (joined with ``\\n``).
        line_number: 1-based line number where this utterance begins.
    """

    speaker: str
    text: str
    line_number: int


@dataclass(frozen=True)
class ParseWarning:
    """A structured warning produced during transcript parsing.

    Attributes:
        line_number: 1-based line number of the problematic line.
        message: Human-readable description of the issue.
        raw_line: The original line text that triggered the warning.
    """

    line_number: int
    message: str
    raw_line: str


@dataclass(frozen=True)
class TranscriptParseResult:
    """Top-level return type from the transcript parser.

    Attributes:
        utterances: Parsed speaker turns, in order of appearance.
        speakers: Unique speaker names, ordered by first appearance.
        warnings: Any parse warnings encountered.
        source: File path of the parsed transcript, or ``"<string>"``.
    """

    utterances: list[Utterance] = field(default_factory=list)
    speakers: list[str] = field(default_factory=list)
    warnings: list[ParseWarning] = field(default_factory=list)
    source: str = "<string>"
