"""Parser for recorded role-play transcripts.

Reads text in the format ``[Speaker]: dialogue text`` into a
:class:`~live_coach.models.transcript.TranscriptParseResult` so a recorded
conversation can be replayed through the coaching engine.
"""

from __future__ import annotations

import re
from pathlib import Path

from live_coach.models.transcript import ParseWarning, TranscriptParseResult, Utterance

# [Speaker Name]: dialogue text -- non-greedy so the label stops at the first ']'.
_SPEAKER_LINE_RE = re.compile(r"^\[(.+?)\]:\s*(.*)$")


def parse_transcript(text: str, source: str = "<string>") -> TranscriptParseResult:
    """Parse a transcript string into speaker turns.

    Any non-blank line that does not start with a speaker label continues
    the previous utterance.  Lines before the first speaker, and lines
    with an empty label, are reported as warnings and skipped.

    Args:
        text: Raw transcript text.
        source: Label for the transcript origin (e.g. a file path).

    Returns:
        Parsed utterances, speakers in first-appearance order, and warnings.
    """
    utterances: list[Utterance] = []
    warnings: list[ParseWarning] = []

    speaker: str | None = None
    parts: list[str] = []
    start_line = 0

    def flush() -> None:
        if speaker is not None:
            utterances.append(Utterance(speaker, "\n".join(parts), start_line))

    for line_number, raw_line in enumerate(text.splitlines(), start=1):
        if not raw_line.strip():
            continue

        match = _SPEAKER_LINE_RE.match(raw_line)
        if match is None:
            if speaker is not None:
                parts.append(raw_line.strip())
            else:
                warnings.append(
                    ParseWarning(line_number, "Line has no speaker label and no prior speaker", raw_line)
                )
            continue

        flush()
        label = match.group(1).strip()
        if not label:
            warnings.append(ParseWarning(line_number, "Empty speaker name", raw_line))
            speaker, parts, start_line = None, [], 0
            continue

        speaker, parts, start_line = label, [match.group(2).rstrip()], line_number

    flush()

    return TranscriptParseResult(
        utterances=utterances,
        speakers=list(dict.fromkeys(u.speaker for u in utterances)),
        warnings=warnings,
        source=source,
    )


def parse_transcript_file(file_path: str | Path) -> TranscriptParseResult:
    """Read a UTF-8 transcript file and parse it.

    Raises:
        FileNotFoundError: If *file_path* does not exist.
    """
    path = Path(file_path)
    if not path.exists():
        raise FileNotFoundError(f"Transcript file not found: {path}")
    return parse_transcript(path.read_text(encoding="utf-8"), source=str(path))
