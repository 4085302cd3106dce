"""Detection and feedback models.

- :class:`Category` -- every kind of coaching event the engine can raise,
  as ``"<kind>:<slug>"`` strings.
- :class:`Detection` -- a transient candidate derived from one turn (or
  from a metrics recompute).
- :class:`FeedbackItem` -- the immutable, user-facing result of an
  accepted detection.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict


class CategoryKind(str, Enum):
    """Family a :class:`Category` belongs to."""

    OBJECTION = "objection"
    TECHNIQUE = "technique"
    TIP = "tip"
    WARNING = "warning"


class Category(str, Enum):
    """Coaching event categories."""

    PRICE_OBJECTION = "objection:price"
    TIMING_OBJECTION = "objection:timing"
    AUTHORITY_OBJECTION = "objection:authority"
    NEED_OBJECTION = "objection:need"

    EMPATHY_FRAMING = "technique:empathy-framing"
    SOCIAL_PROOF = "technique:social-proof"
    URGENCY = "technique:urgency"
    ACTIVE_LISTENING = "technique:active-listening"
    OPEN_ENDED_QUESTION = "technique:open-ended-question"

    BUYING_SIGNAL = "tip:buying-signal"
    UNADDRESSED_OBJECTION = "tip:unaddressed-objection"

    TALK_TIME_IMBALANCE = "warning:talk-time-imbalance"
    MONOLOGUE = "warning:monologue"

    @property
    def kind(self) -> CategoryKind:
        return CategoryKind(self.value.split(":", 1)[0])

    @property
    def slug(self) -> str:
        return self.value.split(":", 1)[1]

    @property
    def recurring(self) -> bool:
        """Whether the category is metrics-derived and subject to cooldown.

        Recurring categories can fire on many consecutive turns while the
        underlying condition holds, so the rate limiter throttles them.
        """
        return self.kind is CategoryKind.WARNING


class Severity(str, Enum):
    """How the presentation layer should frame a feedback item."""

    POSITIVE = "positive"
    NEUTRAL = "neutral"
    NEEDS_IMPROVEMENT = "needs-improvement"


@dataclass(frozen=True)
class Detection:
    """A candidate coaching event.

    Attributes:
        category: What was detected.
        turn_sequence: Sequence number of the turn that produced it.
        detected_at: Arrival time of that turn.
        evidence: The phrase that matched, when the detection came from a
            pattern hit.
        ratio: Talk-time ratio, set only for
            :attr:`Category.TALK_TIME_IMBALANCE`.
    """

    category: Category
    turn_sequence: int
    detected_at: datetime
    evidence: str | None = None
    ratio: int | None = None

    @property
    def key(self) -> tuple[Category, int]:
        """Exact-duplicate key used by the rate limiter."""
        return (self.category, self.turn_sequence)

    @property
    def cooldown_key(self) -> tuple[Category, str | None]:
        """Key the rate limiter throttles recurring categories on.

        Talk-time imbalance is throttled separately for each direction, so
        an "above" warning never hides a later "below" warning.
        """
        if self.category is Category.TALK_TIME_IMBALANCE:
            return (self.category, self.evidence)
        return (self.category, None)


class FeedbackItem(BaseModel):
    """A user-facing coaching message.

    Attributes:
        id: Unique identifier (``"<epoch-ms>-<hex>"``).
        timestamp: When the underlying evidence arrived.
        category: The :class:`Category` value string.
        message: Human-readable text for display.
        severity: Display framing.
        turn_sequence: Turn the item refers to.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    timestamp: datetime
    category: str
    message: str
    severity: Severity
    turn_sequence: int
