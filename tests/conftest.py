"""Shared fixtures for live-coach tests."""

from __future__ import annotations

import logging
from collections.abc import Generator

import pytest

from tests.helpers import FakeCapture, FakeChannel

_COACH_ENV_VARS = (
    "LOG_LEVEL",
    "COACH_FEEDBACK_CAPACITY",
    "COACH_COOLDOWN_SECONDS",
    "COACH_TALK_RATIO_LOW",
    "COACH_TALK_RATIO_HIGH",
    "COACH_IMBALANCE_MIN_TURNS",
    "COACH_MONOLOGUE_SECONDS",
    "COACH_OBJECTION_RESPONSE_SECONDS",
    "COACH_HANDSHAKE_TIMEOUT_SECONDS",
)


@pytest.fixture()
def channel() -> FakeChannel:
    return FakeChannel()


@pytest.fixture()
def capture() -> FakeCapture:
    return FakeCapture()


@pytest.fixture()
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Remove all live-coach environment variables.

    Patches ``load_dotenv`` so a real ``.env`` file cannot re-inject values
    the test explicitly removed.
    """
    monkeypatch.setattr("live_coach.config.load_dotenv", lambda *_a, **_kw: None)
    for key in _COACH_ENV_VARS:
        monkeypatch.delenv(key, raising=False)


@pytest.fixture(autouse=True)
def _reset_root_logger() -> Generator[None, None, None]:
    """Reset the root logger after each test to prevent handler leaks."""
    root = logging.getLogger()
    original_handlers = root.handlers[:]
    original_level = root.level
    yield
    root.handlers = original_handlers
    root.setLevel(original_level)
