"""Entry point for ``python -m live_coach``.

Replays a recorded role-play transcript through the live coaching engine
and prints the feedback the trainee would have seen.  Uses stdlib
:mod:`argparse` for argument parsing.

Subcommands:
    replay -- Default. Replay a transcript and print the coaching report.

Exit codes:
    0 -- Replay completed (including conversations with no feedback).
    1 -- An error occurred (file not found, unreadable, config error).
    2 -- Argument parsing error (handled by argparse).
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from live_coach.config import ConfigError, load_settings
from live_coach.log import setup_logging
from live_coach.replay import run_replay
from live_coach.report import print_session_report


def build_parser() -> argparse.ArgumentParser:
    """Build the CLI argument parser with its subcommands."""
    parser = argparse.ArgumentParser(
        prog="live-coach",
        description="Replay a sales role-play transcript through the live coaching engine.",
    )

    subparsers = parser.add_subparsers(dest="command")

    replay_parser = subparsers.add_parser(
        "replay",
        help="Replay a transcript and print the coaching report.",
    )
    replay_parser.add_argument(
        "transcript_file",
        type=str,
        help="Path to a [Speaker]: text transcript file.",
    )
    replay_parser.add_argument(
        "--trainee",
        type=str,
        default="Rep",
        help="Speaker name of the trainee (default: Rep).",
    )
    replay_parser.add_argument(
        "--spacing",
        type=float,
        default=5.0,
        help="Seconds between consecutive turns (default: 5).",
    )
    replay_parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        default=False,
        help="Enable debug-level logging.",
    )

    return parser


def _resolve_command(parser: argparse.ArgumentParser, argv: list[str]) -> argparse.Namespace:
    """Parse *argv*, prepending ``replay`` when no subcommand is given."""
    if not argv:
        argv = ["replay"]
    elif argv[0] not in {"replay", "-h", "--help"}:
        argv = ["replay", *argv]
    return parser.parse_args(argv)


def _handle_replay(args: argparse.Namespace) -> int:
    transcript_path = Path(args.transcript_file)

    if not transcript_path.exists():
        print(f"Error: File not found: {transcript_path}", file=sys.stderr)
        return 1
    if not transcript_path.is_file():
        print(f"Error: Not a file: {transcript_path}", file=sys.stderr)
        return 1
    if args.spacing < 0:
        print("Error: --spacing must not be negative", file=sys.stderr)
        return 1

    try:
        settings = load_settings()
    except ConfigError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    if not args.verbose:
        try:
            setup_logging(settings.log_level)
        except ValueError as exc:
            print(f"Error: {exc}", file=sys.stderr)
            return 1

    try:
        result = run_replay(
            transcript_path=transcript_path,
            trainee=args.trainee,
            settings=settings,
            spacing_seconds=args.spacing,
        )
    except (FileNotFoundError, PermissionError, UnicodeDecodeError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    print_session_report(result)
    return 0


def main(argv: list[str] | None = None) -> int:
    """Run the live-coach CLI and return its exit code."""
    parser = build_parser()
    args = _resolve_command(parser, argv if argv is not None else sys.argv[1:])

    setup_logging("DEBUG" if getattr(args, "verbose", False) else "INFO")

    return _handle_replay(args)


if __name__ == "__main__":
    raise SystemExit(main())
