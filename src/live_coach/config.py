"""Configuration loading for live-coach.

Reads tuning knobs from environment variables (with .env support via
python-dotenv).  Every setting is optional; the defaults are the heuristics
the coaching engine ships with.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv


class ConfigError(Exception):
    """Raised when configuration values are invalid."""


@dataclass(frozen=True)
class Settings:
    """Engine settings loaded from environment variables.

    Attributes:
        log_level: Logging level (default ``"INFO"``).
        feedback_capacity: Maximum number of items kept in the feedback
            queue before the oldest is evicted.
        cooldown_seconds: Minimum spacing between two emitted items of the
            same recurring category.
        talk_ratio_low: Talk-time ratio below which the trainee is warned
            for talking too little.
        talk_ratio_high: Talk-time ratio above which the trainee is warned
            for talking too much.
        imbalance_min_turns: Number of turns the log must hold before any
            talk-time warning is considered.
        monologue_seconds: Length of an uninterrupted trainee run that
            triggers a monologue warning.
        objection_response_seconds: Time the trainee has to respond to an
            objection before an "unaddressed objection" tip is raised.
        handshake_timeout_seconds: Upper bound on the channel handshake.
    """

    log_level: str = "INFO"
    feedback_capacity: int = 50
    cooldown_seconds: float = 60.0
    talk_ratio_low: int = 35
    talk_ratio_high: int = 70
    imbalance_min_turns: int = 3
    monologue_seconds: float = 45.0
    objection_response_seconds: float = 30.0
    handshake_timeout_seconds: float = 10.0


_INT_VARS = {
    "COACH_FEEDBACK_CAPACITY": "feedback_capacity",
    "COACH_TALK_RATIO_LOW": "talk_ratio_low",
    "COACH_TALK_RATIO_HIGH": "talk_ratio_high",
    "COACH_IMBALANCE_MIN_TURNS": "imbalance_min_turns",
}

_FLOAT_VARS = {
    "COACH_COOLDOWN_SECONDS": "cooldown_seconds",
    "COACH_MONOLOGUE_SECONDS": "monologue_seconds",
    "COACH_OBJECTION_RESPONSE_SECONDS": "objection_response_seconds",
    "COACH_HANDSHAKE_TIMEOUT_SECONDS": "handshake_timeout_seconds",
}


def load_settings() -> Settings:
    """Load and validate settings from environment variables.

    Calls :func:`dotenv.load_dotenv` so a ``.env`` file in the project root
    is picked up automatically.  Unset or blank variables fall back to the
    :class:`Settings` defaults.

    Returns:
        A validated :class:`Settings` instance.

    Raises:
        ConfigError: If any variable is not a valid number, is negative,
            or the talk-ratio band is empty or outside ``0..100``.  The
            message names **all** offending variables.
    """
    load_dotenv()

    values: dict[str, object] = {}
    invalid: list[str] = []

    for env_var, field_name in _INT_VARS.items():
        raw = os.environ.get(env_var, "").strip()
        if not raw:
            continue
        try:
            parsed_int = int(raw)
        except ValueError:
            invalid.append(env_var)
            continue
        if parsed_int < 0:
            invalid.append(env_var)
            continue
        values[field_name] = parsed_int

    for env_var, field_name in _FLOAT_VARS.items():
        raw = os.environ.get(env_var, "").strip()
        if not raw:
            continue
        try:
            parsed_float = float(raw)
        except ValueError:
            invalid.append(env_var)
            continue
        if parsed_float < 0:
            invalid.append(env_var)
            continue
        values[field_name] = parsed_float

    if invalid:
        names = ", ".join(invalid)
        raise ConfigError(f"Invalid numeric environment variables: {names}")

    log_level = os.environ.get("LOG_LEVEL", "").strip()
    if log_level:
        values["log_level"] = log_level

    settings = Settings(**values)  # type: ignore[arg-type]

    if settings.feedback_capacity < 1:
        raise ConfigError("COACH_FEEDBACK_CAPACITY must be at least 1")
    if not 0 <= settings.talk_ratio_low < settings.talk_ratio_high <= 100:
        raise ConfigError(
            "COACH_TALK_RATIO_LOW, COACH_TALK_RATIO_HIGH must satisfy "
            f"0 <= low < high <= 100 (got {settings.talk_ratio_low}, "
            f"{settings.talk_ratio_high})"
        )

    return settings
