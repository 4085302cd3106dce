"""Static pattern library and message templates for live coaching.

Holds the phrase sets the incremental scanner matches against and the
category-to-message table the rate limiter renders feedback from.  Keeping
both as data means adding a category is a table edit, and
:data:`CATEGORY_TEMPLATES` can be checked for completeness against
:class:`~live_coach.models.feedback.Category`.

All phrases are lower-case; matching is plain substring search on the
lower-cased turn text.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from live_coach.models.feedback import Category, Detection, Severity

# ---------------------------------------------------------------------------
# Phrase sets
# ---------------------------------------------------------------------------

# Counterpart turns.  Checked in this order; each category fires at most once
# per turn.
OBJECTION_PATTERNS: dict[Category, tuple[str, ...]] = {
    Category.PRICE_OBJECTION: (
        "too expensive", "can't afford", "price is high", "costs too much",
        "too much money", "expensive", "cheaper", "lower price", "budget",
        "can't pay", "out of my price range", "more than i can spend",
    ),
    Category.TIMING_OBJECTION: (
        "not right now", "maybe later", "need to think", "think about it",
        "not ready", "some other time", "not now", "give me time",
        "need time", "think it over", "decide later", "call me later",
    ),
    Category.AUTHORITY_OBJECTION: (
        "talk to my spouse", "need to discuss", "not my decision", "spouse",
        "partner", "my wife", "my husband", "check with", "ask my",
        "discuss with", "run it by", "get back to you", "let me check",
    ),
    Category.NEED_OBJECTION: (
        "don't need it", "already have", "not interested", "don't want",
        "not needed", "no need", "already got", "have one",
        "not for me", "not what i need",
    ),
}

BUYING_SIGNAL_PATTERNS: tuple[str, ...] = (
    "when can you", "how soon", "how much", "what's included",
    "warranty", "guarantee", "install", "schedule", "available",
)

# Trainee turns.  Open-ended questions are detected structurally (see
# INTERROGATIVE_RE) rather than by phrase.
TECHNIQUE_PATTERNS: dict[Category, tuple[str, ...]] = {
    Category.EMPATHY_FRAMING: (
        "i understand how you feel", "i felt the same way", "others have felt",
        "i know how you feel", "i felt that", "others felt", "i've felt",
    ),
    Category.SOCIAL_PROOF: (
        "other customers", "neighbors", "other homeowners", "many customers",
        "lots of people", "others have", "most people", "customers say",
        "everyone says",
    ),
    Category.URGENCY: (
        "limited time", "today only", "special offer", "act now",
        "don't wait", "limited availability", "while supplies last",
        "expires soon", "ending soon", "last chance",
    ),
    Category.ACTIVE_LISTENING: (
        "i hear you", "i understand", "that makes sense", "i see",
        "got it", "i get that", "you're right", "i can see why",
        "that's understandable",
    ),
}

INTERROGATIVE_RE = re.compile(
    r"^(what|how|why|when|where|who|which|tell me|can you explain|could you tell)\b"
)


def normalize_text(text: str) -> str:
    """Lower-case *text* and fold typographic apostrophes to ``'``."""
    return text.strip().lower().replace("’", "'")


def first_match(text: str, phrases: tuple[str, ...]) -> str | None:
    """Return the first phrase contained in *text*, or ``None``."""
    for phrase in phrases:
        if phrase in text:
            return phrase
    return None


# ---------------------------------------------------------------------------
# Message templates
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CategoryTemplate:
    """Presentation data for one :class:`Category`.

    Attributes:
        label: Human-readable category name.
        severity: Severity of every item in this category.
        template: ``str.format`` template.  Available fields are
            ``label``, ``example``, ``ratio`` and ``evidence``.
        example: Canonical example phrase (objections only).
    """

    label: str
    severity: Severity
    template: str
    example: str = ""


_OBJECTION = '{label} objection detected: "{example}" or similar'
_TECHNIQUE = "Great use of {label}!"

CATEGORY_TEMPLATES: dict[Category, CategoryTemplate] = {
    Category.PRICE_OBJECTION: CategoryTemplate(
        "Price", Severity.NEUTRAL, _OBJECTION, example="I can't afford it"
    ),
    Category.TIMING_OBJECTION: CategoryTemplate(
        "Timing", Severity.NEUTRAL, _OBJECTION, example="Not right now"
    ),
    Category.AUTHORITY_OBJECTION: CategoryTemplate(
        "Authority", Severity.NEUTRAL, _OBJECTION, example="Need to check with my spouse"
    ),
    Category.NEED_OBJECTION: CategoryTemplate(
        "Need", Severity.NEUTRAL, _OBJECTION, example="I don't need it"
    ),
    Category.EMPATHY_FRAMING: CategoryTemplate(
        "empathy framing", Severity.POSITIVE, _TECHNIQUE
    ),
    Category.SOCIAL_PROOF: CategoryTemplate("social proof", Severity.POSITIVE, _TECHNIQUE),
    Category.URGENCY: CategoryTemplate("urgency", Severity.POSITIVE, _TECHNIQUE),
    Category.ACTIVE_LISTENING: CategoryTemplate(
        "active listening", Severity.POSITIVE, _TECHNIQUE
    ),
    Category.OPEN_ENDED_QUESTION: CategoryTemplate(
        "open-ended questions", Severity.POSITIVE, _TECHNIQUE
    ),
    Category.BUYING_SIGNAL: CategoryTemplate(
        "buying signal",
        Severity.POSITIVE,
        "Buying signal detected! The prospect is showing interest. "
        "Consider moving toward closing.",
    ),
    Category.UNADDRESSED_OBJECTION: CategoryTemplate(
        "unaddressed objection",
        Severity.NEEDS_IMPROVEMENT,
        "Consider addressing the {evidence} objection. "
        "Try acknowledging their concern and offering a solution.",
    ),
    Category.MONOLOGUE: CategoryTemplate(
        "monologue",
        Severity.NEEDS_IMPROVEMENT,
        "You've been talking for a while. "
        "Consider asking an open-ended question to engage the prospect.",
    ),
    # Rendered from IMBALANCE_TEMPLATES; the direction lives in the
    # detection's evidence.
    Category.TALK_TIME_IMBALANCE: CategoryTemplate(
        "talk-time imbalance", Severity.NEEDS_IMPROVEMENT, ""
    ),
}

IMBALANCE_ABOVE = "above"
IMBALANCE_BELOW = "below"

IMBALANCE_TEMPLATES: dict[str, str] = {
    IMBALANCE_ABOVE: (
        "You're talking {ratio}% of the time. "
        "Engage more - ask questions to involve the prospect."
    ),
    IMBALANCE_BELOW: (
        "You're only talking {ratio}% of the time. "
        "Try to listen more and engage in the conversation."
    ),
}


def render_message(detection: Detection) -> str:
    """Build the feedback message for *detection*.

    Raises:
        KeyError: If the category (or imbalance direction) has no template.
    """
    entry = CATEGORY_TEMPLATES[detection.category]
    template = entry.template
    if detection.category is Category.TALK_TIME_IMBALANCE:
        template = IMBALANCE_TEMPLATES[detection.evidence or ""]
    return template.format(
        label=entry.label,
        example=entry.example,
        ratio=detection.ratio,
        evidence=detection.evidence or "",
    )


def severity_for(category: Category) -> Severity:
    return CATEGORY_TEMPLATES[category].severity
