"""YouTube URL to video ID resolution."""

import re
from dataclasses import dataclass

_ID = r"([A-Za-z0-9_-]{11})"

# Checked in order; the first capture wins.
_PATTERNS = [
    re.compile(r"(?:youtube\.com|youtube-nocookie\.com)/watch\?(?:[^#]*&)?v=" + _ID + r"(?![A-Za-z0-9_-])", re.I),
    re.compile(r"youtu\.be/" + _ID + r"(?![A-Za-z0-9_-])", re.I),
    re.compile(r"(?:youtube\.com|youtube-nocookie\.com)/embed/" + _ID + r"(?![A-Za-z0-9_-])", re.I),
    re.compile(r"youtube\.com/shorts/" + _ID + r"(?![A-Za-z0-9_-])", re.I),
    re.compile(r"youtube\.com/(?:v|live)/" + _ID + r"(?![A-Za-z0-9_-])", re.I),
    re.compile(r"^" + _ID + r"$"),
]


@dataclass(frozen=True)
class Resolution:
    """Result of resolving user input to a video ID."""

    video_id: str | None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.video_id is not None


def resolve(value: object) -> Resolution:
    """Resolve a URL or bare ID. Never raises."""
    if not isinstance(value, str) or not value.strip():
        return Resolution(video_id=None, error="YouTube URL is required")

    text = value.strip()
    for pattern in _PATTERNS:
        match = pattern.search(text)
        if match:
            return Resolution(video_id=match.group(1))

    return Resolution(video_id=None, error=f"Invalid YouTube URL: {text}")


def extract_video_id(url: str) -> str | None:
    """Extract YouTube video ID from URL."""
    return resolve(url).video_id
