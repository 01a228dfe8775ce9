"""SQLModel data models for video summarizer."""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import JSON, Column, UniqueConstraint
from sqlmodel import Field, SQLModel


def utcnow() -> datetime:
    """Timezone-aware UTC timestamp, as stored in every datetime column."""
    return datetime.now(timezone.utc)


class CachedTranscript(SQLModel, table=True):
    """Decoded transcript cached per video."""

    video_id: str = Field(primary_key=True)
    segments: list = Field(default_factory=list, sa_column=Column(JSON))
    source: str = "unknown"
    language: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)
    expires_at: datetime = Field(index=True)


class CachedMetadata(SQLModel, table=True):
    """Video metadata cached per video."""

    video_id: str = Field(primary_key=True)
    payload: dict = Field(default_factory=dict, sa_column=Column(JSON))
    created_at: datetime = Field(default_factory=utcnow)
    expires_at: datetime = Field(index=True)


class CachedSummary(SQLModel, table=True):
    """Formatted summary cached per (user, video, summary type)."""

    __table_args__ = (UniqueConstraint("user_id", "video_id", "summary_type"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: str = Field(index=True)
    video_id: str = Field(index=True)
    summary_type: str  # short, comprehensive
    summary: str
    provider: str  # primary, secondary, basic
    provider_name: str  # gemini, groq, basic
    degraded: bool = Field(default=False)
    video_metadata: dict = Field(default_factory=dict, sa_column=Column(JSON))
    created_at: datetime = Field(default_factory=utcnow)
    expires_at: datetime = Field(index=True)


class UsageEvent(SQLModel, table=True):
    """Append-only usage record used for quota windows."""

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: str = Field(index=True)
    video_id: str
    action: str = Field(default="summarize")
    timestamp: datetime = Field(default_factory=utcnow, index=True)
    counted: bool = Field(default=True)  # False once reset by support


class UserAccount(SQLModel, table=True):
    """Minimal user record: the subscription tier."""

    user_id: str = Field(primary_key=True)
    tier: str = Field(default="free")
    updated_at: datetime = Field(default_factory=utcnow)
