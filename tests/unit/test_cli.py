"""Unit tests for the CLI entrypoint.

Tests cover: valid file invocation, implicit ``replay`` subcommand,
missing arguments, nonexistent file, directory path, negative spacing,
invalid configuration, and the --verbose flag.
"""

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from live_coach.__main__ import build_parser, main

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _make_transcript(tmp_path: Path, name: str = "call.txt") -> Path:
    """Create a short role-play transcript and return its path."""
    transcript = tmp_path / name
    transcript.write_text(
        "[Rep]: What made you look into pest control?\n"
        "[Homeowner]: Ants, but it's too expensive.\n",
        encoding="utf-8",
    )
    return transcript


# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------


class TestCLI:
    """Tests for ``live_coach.__main__.main``."""

    def test_valid_file_prints_report(
        self, tmp_path: Path, clean_env: None, capsys: pytest.CaptureFixture[str]
    ) -> None:
        exit_code = main([str(_make_transcript(tmp_path))])

        out = capsys.readouterr().out
        assert exit_code == 0
        assert "--- LIVE FEEDBACK ---" in out
        assert "Great use of open-ended questions!" in out
        assert 'Price objection detected: "I can\'t afford it" or similar' in out

    def test_explicit_replay_subcommand(
        self, tmp_path: Path, clean_env: None, capsys: pytest.CaptureFixture[str]
    ) -> None:
        exit_code = main(["replay", str(_make_transcript(tmp_path)), "--trainee", "rep"])

        assert exit_code == 0
        assert "Trainee: rep" in capsys.readouterr().out

    def test_missing_argument_exits_2(self, clean_env: None) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main([])

        assert exc_info.value.code == 2

    def test_nonexistent_file(
        self, tmp_path: Path, clean_env: None, capsys: pytest.CaptureFixture[str]
    ) -> None:
        exit_code = main([str(tmp_path / "nope.txt")])

        assert exit_code == 1
        assert "File not found" in capsys.readouterr().err

    def test_directory_rejected(
        self, tmp_path: Path, clean_env: None, capsys: pytest.CaptureFixture[str]
    ) -> None:
        exit_code = main([str(tmp_path)])

        assert exit_code == 1
        assert "Not a file" in capsys.readouterr().err

    def test_negative_spacing_rejected(
        self, tmp_path: Path, clean_env: None, capsys: pytest.CaptureFixture[str]
    ) -> None:
        exit_code = main([str(_make_transcript(tmp_path)), "--spacing", "-1"])

        assert exit_code == 1
        assert "--spacing" in capsys.readouterr().err

    def test_invalid_config(
        self,
        tmp_path: Path,
        clean_env: None,
        monkeypatch: pytest.MonkeyPatch,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        monkeypatch.setenv("COACH_COOLDOWN_SECONDS", "soon")

        exit_code = main([str(_make_transcript(tmp_path))])

        assert exit_code == 1
        assert "COACH_COOLDOWN_SECONDS" in capsys.readouterr().err

    def test_invalid_log_level(
        self,
        tmp_path: Path,
        clean_env: None,
        monkeypatch: pytest.MonkeyPatch,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        monkeypatch.setenv("LOG_LEVEL", "CHATTY")

        exit_code = main([str(_make_transcript(tmp_path))])

        assert exit_code == 1
        assert "Invalid log level" in capsys.readouterr().err

    def test_verbose_sets_debug(self, tmp_path: Path, clean_env: None) -> None:
        main([str(_make_transcript(tmp_path)), "-v"])

        assert logging.getLogger().level == logging.DEBUG


class TestBuildParser:
    def test_defaults(self) -> None:
        args = build_parser().parse_args(["replay", "call.txt"])

        assert args.trainee == "Rep"
        assert args.spacing == 5.0
        assert args.verbose is False
