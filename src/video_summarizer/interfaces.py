"""Domain types and Protocols for dependency injection and testing."""

from dataclasses import dataclass
from datetime import datetime
from typing import Protocol


@dataclass(frozen=True)
class TranscriptSegment:
    """A single timed caption line."""

    text: str
    offset_seconds: float
    duration_seconds: float = 0.0


@dataclass
class Transcript:
    """Timed caption segments for a video."""

    video_id: str
    segments: list[TranscriptSegment]
    source: str = "unknown"
    language: str | None = None

    def ordered_segments(self) -> list[TranscriptSegment]:
        """Segments sorted by ascending offset."""
        return sorted(self.segments, key=lambda s: s.offset_seconds)

    def text(self) -> str:
        """Concatenated transcript text in offset order."""
        return " ".join(
            s.text.strip() for s in self.ordered_segments() if s.text.strip()
        )


PLACEHOLDER_TITLE = "Video Title Unavailable"
PLACEHOLDER_CHANNEL = "Channel information unavailable"


@dataclass
class VideoMetadata:
    """Video metadata from a metadata provider."""

    video_id: str
    title: str
    thumbnail_url: str
    channel_title: str | None = None
    published_at: str | None = None
    duration_iso: str | None = None
    degraded: bool = False

    @classmethod
    def placeholder(cls, video_id: str) -> "VideoMetadata":
        """Deterministic stand-in used when every metadata lookup fails."""
        return cls(
            video_id=video_id,
            title=PLACEHOLDER_TITLE,
            thumbnail_url=thumbnail_url_for(video_id),
            channel_title=PLACEHOLDER_CHANNEL,
            degraded=True,
        )

    def to_dict(self) -> dict:
        return {
            "video_id": self.video_id,
            "title": self.title,
            "thumbnail_url": self.thumbnail_url,
            "channel_title": self.channel_title,
            "published_at": self.published_at,
            "duration_iso": self.duration_iso,
            "degraded": self.degraded,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "VideoMetadata":
        return cls(
            video_id=data["video_id"],
            title=data.get("title") or PLACEHOLDER_TITLE,
            thumbnail_url=data.get("thumbnail_url") or thumbnail_url_for(data["video_id"]),
            channel_title=data.get("channel_title"),
            published_at=data.get("published_at"),
            duration_iso=data.get("duration_iso"),
            degraded=bool(data.get("degraded", False)),
        )


def thumbnail_url_for(video_id: str) -> str:
    return f"https://img.youtube.com/vi/{video_id}/maxresdefault.jpg"


@dataclass
class SummaryResult:
    """A formatted summary and the path that produced it."""

    text: str
    provider: str  # primary, secondary, basic
    provider_name: str  # gemini, groq, basic
    summary_type: str
    generated_at: datetime
    degraded: bool = False


@dataclass
class QuotaRemaining:
    """Remaining requests in each quota window."""

    daily: int
    minute: int

    def after_request(self) -> "QuotaRemaining":
        return QuotaRemaining(daily=max(self.daily - 1, 0), minute=max(self.minute - 1, 0))


@dataclass
class QuotaDecision:
    """Outcome of an admission check."""

    allowed: bool
    remaining: QuotaRemaining
    reason: str | None = None
    fail_open: bool = False


class TranscriptProvider(Protocol):
    """Protocol for a single upstream caption provider."""

    name: str

    def fetch(self, video_id: str) -> Transcript:
        """Fetch the raw transcript for a video."""
        ...


class MetadataProvider(Protocol):
    """Protocol for a video metadata provider."""

    def fetch(self, video_id: str) -> VideoMetadata:
        """Fetch video metadata, raising on failure."""
        ...
