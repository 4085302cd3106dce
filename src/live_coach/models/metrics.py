"""Rolling session metrics model."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class SessionMetrics(BaseModel):
    """Snapshot of the live conversation statistics.

    Always recomputed from the full transcript log, never patched, so two
    snapshots of the same log compare equal.

    Attributes:
        talk_time_ratio: Trainee share of total transcript characters,
            ``0..100``.  ``50`` when nothing has been said yet.
        objection_count: Number of counterpart turns carrying at least one
            objection.
        techniques_used: Distinct technique category values detected in
            trainee turns.
        turn_count: Number of turns in the log.
    """

    model_config = ConfigDict(frozen=True)

    talk_time_ratio: int = Field(default=50, ge=0, le=100)
    objection_count: int = Field(default=0, ge=0)
    techniques_used: frozenset[str] = Field(default_factory=frozenset)
    turn_count: int = Field(default=0, ge=0)
