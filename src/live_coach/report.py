"""Console report for a replayed coaching session.

Renders a :class:`~live_coach.replay.ReplayResult` as structured console
output: transcript metadata, the feedback feed as the trainee would have
seen it, the final metrics, and a summary.

:func:`format_session_report` returns the formatted string;
:func:`print_session_report` writes it to stdout.
"""

from __future__ import annotations

import sys
from datetime import datetime

from live_coach.models.feedback import FeedbackItem, Severity
from live_coach.models.metrics import SessionMetrics
from live_coach.replay import ReplayResult

_BANNER_WIDTH = 60
_SEPARATOR = "=" * _BANNER_WIDTH

_SEVERITY_MARKERS = {
    Severity.POSITIVE: "+",
    Severity.NEUTRAL: "*",
    Severity.NEEDS_IMPROVEMENT: "!",
}


def format_session_report(result: ReplayResult) -> str:
    """Render *result* as a multi-line report."""
    lines: list[str] = [_SEPARATOR, "  LIVE CONVERSATION COACH", _SEPARATOR]

    _append_transcript(lines, result)
    _append_feedback(lines, result)
    _append_metrics(lines, result.record.metrics)
    _append_summary(lines, result)
    lines.append(_SEPARATOR)

    return "\n".join(lines)


def print_session_report(result: ReplayResult) -> None:
    sys.stdout.write(format_session_report(result) + "\n")


def _append_transcript(lines: list[str], result: ReplayResult) -> None:
    lines.append("")
    lines.append("--- TRANSCRIPT ---")
    lines.append(f"  File: {result.transcript_path}")
    lines.append(f"  Trainee: {result.trainee}")
    speakers = ", ".join(result.speakers_found) if result.speakers_found else "none"
    lines.append(f"  Speakers: {speakers}")
    lines.append(f"  Turns: {len(result.record.turns)} of {result.utterance_count} utterance(s)")


def _append_feedback(lines: list[str], result: ReplayResult) -> None:
    lines.append("")
    lines.append("--- LIVE FEEDBACK ---")

    feedback = result.record.feedback
    if not feedback:
        lines.append("  No coaching feedback for this conversation.")
        return

    origin = result.record.turns[0].arrived_at if result.record.turns else None
    for item in feedback:
        lines.append(_format_item(item, origin))


def _format_item(item: FeedbackItem, origin: datetime | None) -> str:
    marker = _SEVERITY_MARKERS.get(item.severity, "?")
    offset = _format_offset(item.timestamp, origin)
    return f"  [{marker}] {offset} turn {item.turn_sequence:>3}  {item.message}"


def _format_offset(timestamp: datetime, origin: datetime | None) -> str:
    """Format *timestamp* as ``MM:SS`` since the first turn."""
    if origin is None:
        return "--:--"
    seconds = max(0, int((timestamp - origin).total_seconds()))
    return f"{seconds // 60:02d}:{seconds % 60:02d}"


def _append_metrics(lines: list[str], metrics: SessionMetrics) -> None:
    lines.append("")
    lines.append("--- METRICS ---")
    lines.append(f"  Talk-time ratio: {metrics.talk_time_ratio}% trainee")
    lines.append(f"  Objections raised: {metrics.objection_count}")
    techniques = ", ".join(sorted(metrics.techniques_used)) or "none"
    lines.append(f"  Techniques used: {techniques}")


def _append_summary(lines: list[str], result: ReplayResult) -> None:
    record = result.record
    counts = {severity: 0 for severity in Severity}
    for item in record.feedback:
        counts[item.severity] += 1

    lines.append("")
    lines.append("--- SUMMARY ---")
    lines.append(f"  Feedback items: {len(record.feedback)}")
    lines.append(
        f"    positive: {counts[Severity.POSITIVE]}, "
        f"neutral: {counts[Severity.NEUTRAL]}, "
        f"needs improvement: {counts[Severity.NEEDS_IMPROVEMENT]}"
    )

    status = record.connection
    connection_line = f"  Connection: {status.state.value}"
    if status.end_reason:
        connection_line += f" (ended: {status.end_reason})"
    if status.last_error is not None:
        connection_line += f" (error: {status.last_error})"
    lines.append(connection_line)

    lines.append(f"  Warnings: {len(result.warnings)}")
    for warning in result.warnings:
        lines.append(f"    - {warning}")

    lines.append(f"  Replay duration: {result.duration_seconds:.1f}s")
