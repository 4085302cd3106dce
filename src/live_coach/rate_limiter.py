"""Dedup and rate limiting for coaching feedback.

:class:`FeedbackRateLimiter` turns :class:`~live_coach.models.feedback.Detection`
candidates into :class:`~live_coach.models.feedback.FeedbackItem` objects.
Two suppression rules apply, in order:

1. **Exact key** -- a ``(category, turn_sequence)`` pair produces at most
   one item.
2. **Cooldown** -- a recurring category (see
   :attr:`~live_coach.models.feedback.Category.recurring`) produces at most
   one item per cooldown window, measured from the last emission.  The
   check runs when a candidate arrives; there is no timer.  Talk-time
   imbalance keeps one window per direction (see
   :attr:`~live_coach.models.feedback.Detection.cooldown_key`).

One limiter belongs to one session.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timedelta

from live_coach.models.feedback import Category, Detection, FeedbackItem
from live_coach.patterns import render_message, severity_for

logger = logging.getLogger(__name__)

_DEFAULT_COOLDOWN = timedelta(seconds=60)


def generate_feedback_id(timestamp: datetime) -> str:
    """Return an id of the form ``"<epoch-ms>-<7 hex chars>"``."""
    return f"{int(timestamp.timestamp() * 1000)}-{uuid.uuid4().hex[:7]}"


class FeedbackRateLimiter:
    """Per-session dedup and cooldown gate.

    Args:
        cooldown: Minimum spacing between emitted items of the same
            recurring category.
    """

    def __init__(self, cooldown: timedelta = _DEFAULT_COOLDOWN) -> None:
        self.cooldown = cooldown
        self._emitted_keys: set[tuple[Category, int]] = set()
        self._last_emitted: dict[tuple[Category, str | None], datetime] = {}

    def accept(self, detection: Detection) -> FeedbackItem | None:
        """Convert *detection* into a feedback item unless suppressed.

        Args:
            detection: The candidate detection.

        Returns:
            The new :class:`FeedbackItem`, or ``None`` if the detection was
            a duplicate or fell inside its category's cooldown window.
        """
        if detection.key in self._emitted_keys:
            logger.debug("Suppressed duplicate %s for turn %d", *detection.key)
            return None

        category = detection.category
        if category.recurring:
            last = self._last_emitted.get(detection.cooldown_key)
            if last is not None and detection.detected_at - last < self.cooldown:
                logger.debug(
                    "Suppressed %s: last emitted %.1fs ago",
                    category.value,
                    (detection.detected_at - last).total_seconds(),
                )
                return None

        item = FeedbackItem(
            id=generate_feedback_id(detection.detected_at),
            timestamp=detection.detected_at,
            category=category.value,
            message=render_message(detection),
            severity=severity_for(category),
            turn_sequence=detection.turn_sequence,
        )

        self._emitted_keys.add(detection.key)
        self._last_emitted[detection.cooldown_key] = detection.detected_at
        logger.info("Feedback %s (turn %d): %s", category.value, detection.turn_sequence, item.message)
        return item

    def last_emitted(self, category: Category) -> datetime | None:
        """Timestamp of the most recent item emitted for *category*."""
        emitted = [at for (cat, _), at in self._last_emitted.items() if cat is category]
        return max(emitted, default=None)
