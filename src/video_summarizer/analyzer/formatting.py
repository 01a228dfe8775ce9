"""Normalization of AI output and transcript text utilities."""

import re
from typing import Sequence

from ..interfaces import TranscriptSegment

# Whitelisted preambles, anchored at the start of the text.
_PREAMBLES = [
    re.compile(r"^here(?:'|’)?s?\s+(?:is\s+)?a\s+summary\s*:?", re.I),
    re.compile(r"^summary\s*:", re.I),
    re.compile(r"^here\s+are\s+the\s+key\s+points\s*:?", re.I),
    re.compile(r"^key\s+points\s*:", re.I),
]
_LINE_BREAK_TAG = re.compile(r"<br\s*/?>|</br>", re.I)
_TRAILING_SPACE = re.compile(r"[ \t]+\n")
_EXTRA_NEWLINES = re.compile(r"\n{3,}")
_SENTENCE_END = re.compile(r"[.!?]$")
_CAPITALIZED = re.compile(r"^[A-Z]")


def _format_once(text: str) -> str:
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    text = _LINE_BREAK_TAG.sub("\n", text).strip()
    for pattern in _PREAMBLES:
        text = pattern.sub("", text, count=1).strip()
    text = _TRAILING_SPACE.sub("\n", text)
    text = _EXTRA_NEWLINES.sub("\n\n", text)
    return text.strip()


def format_summary(raw: str) -> str:
    """Strip AI preambles and normalize spacing. Idempotent."""
    text = raw or ""
    while True:
        formatted = _format_once(text)
        if formatted == text:
            return formatted
        text = formatted


def split_paragraphs(text: str) -> list[str]:
    """Split formatted text on blank lines."""
    return [p.strip() for p in re.split(r"\n\s*\n", text) if p.strip()]


def convert_transcript_to_paragraphs(
    segments: Sequence[TranscriptSegment], min_length: int = 100
) -> list[str]:
    """Group caption segments into readable paragraphs.

    A paragraph is closed on a pause longer than two seconds, once it ends a
    sentence, or when the next segment starts with a capital letter.
    Paragraphs shorter than ``min_length`` are merged into the following one.
    """
    ordered = sorted(segments, key=lambda s: s.offset_seconds)
    paragraphs: list[str] = []
    current = ""
    last_offset = 0.0

    for i, segment in enumerate(ordered):
        text = segment.text.strip()
        gap = segment.offset_seconds - last_offset
        next_segment = ordered[i + 1] if i + 1 < len(ordered) else None
        new_paragraph = (
            gap > 2
            or bool(_SENTENCE_END.search(current.strip()))
            or (next_segment is not None and bool(_CAPITALIZED.match(next_segment.text.strip())))
        )

        if new_paragraph and current.strip():
            paragraphs.append(current.strip())
            current = text
        else:
            current = f"{current} {text}" if current else text

        last_offset = segment.offset_seconds

    if current.strip():
        paragraphs.append(current.strip())

    merged: list[str] = []
    pending = ""
    for paragraph in paragraphs:
        if pending and len(pending) < min_length:
            pending = f"{pending} {paragraph}"
        elif pending:
            merged.append(pending)
            pending = paragraph
        else:
            pending = paragraph
    if pending:
        merged.append(pending)
    return merged


def truncate_text(text: str, max_length: int) -> str:
    """Cut text to the last full sentence that fits in ``max_length``."""
    if len(text) <= max_length:
        return text

    truncated = text[:max_length]
    last_break = max(truncated.rfind("."), truncated.rfind("!"), truncated.rfind("?"))
    return text[: last_break + 1] if last_break > 0 else truncated + "..."
