"""Time-bounded caches for transcripts, metadata and summaries."""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, NamedTuple

from sqlalchemy import delete
from sqlalchemy.engine import Engine
from sqlmodel import select

from ..config import settings
from ..interfaces import SummaryResult, Transcript, TranscriptSegment, VideoMetadata
from .database import get_session
from .models import CachedMetadata, CachedSummary, CachedTranscript, utcnow
from .result import StorageResult, attempt

logger = logging.getLogger(__name__)


class SummaryKey(NamedTuple):
    user_id: str
    video_id: str
    summary_type: str


@dataclass
class CachedSummaryHit:
    """A live summary cache entry."""

    id: int
    summary: SummaryResult
    metadata: VideoMetadata
    created_at: datetime


class _TTLCache:
    """Shared expiry handling. Expired rows read exactly like misses."""

    model = None

    def __init__(
        self,
        ttl: timedelta,
        engine: Engine | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.ttl = ttl
        self.engine = engine
        self.clock = clock

    def _expiry(self, now: datetime, ttl: timedelta | None) -> datetime:
        return now + (ttl if ttl is not None else self.ttl)

    def _live(self, row) -> bool:
        return row is not None and self.clock() < row.expires_at

    def purge_expired(self) -> StorageResult[int]:
        """Delete rows past their expiry."""

        def _purge() -> int:
            with get_session(self.engine) as session:
                result = session.execute(delete(self.model).where(self.model.expires_at <= self.clock()))
                session.commit()
                return result.rowcount or 0

        return attempt(f"purge {self.model.__tablename__}", _purge)


class TranscriptCache(_TTLCache):
    """Transcripts keyed by video ID, shared across users."""

    model = CachedTranscript

    def __init__(self, ttl: timedelta | None = None, engine: Engine | None = None, clock=utcnow):
        super().__init__(ttl or timedelta(days=settings.transcript_cache_ttl_days), engine, clock)

    def get(self, video_id: str) -> StorageResult[Transcript | None]:
        def _get() -> Transcript | None:
            with get_session(self.engine) as session:
                row = session.get(CachedTranscript, video_id)
                if not self._live(row):
                    return None
                segments = [
                    TranscriptSegment(s["text"], s["offset"], s.get("duration", 0.0))
                    for s in row.segments
                ]
                return Transcript(video_id=video_id, segments=segments, source=row.source, language=row.language)

        return attempt("transcript cache get", _get)

    def put(self, transcript: Transcript, ttl: timedelta | None = None) -> StorageResult[None]:
        def _put() -> None:
            now = self.clock()
            with get_session(self.engine) as session:
                row = session.get(CachedTranscript, transcript.video_id) or CachedTranscript(
                    video_id=transcript.video_id, expires_at=now
                )
                row.segments = [
                    {"text": s.text, "offset": s.offset_seconds, "duration": s.duration_seconds}
                    for s in transcript.ordered_segments()
                ]
                row.source = transcript.source
                row.language = transcript.language
                row.created_at = now
                row.expires_at = self._expiry(now, ttl)
                session.add(row)
                session.commit()
            logger.debug("Transcript cached video_id=%s segments=%d", transcript.video_id, len(transcript.segments))

        return attempt("transcript cache put", _put)


class MetadataCache(_TTLCache):
    """Video metadata keyed by video ID. Placeholder metadata is never stored."""

    model = CachedMetadata

    def __init__(self, ttl: timedelta | None = None, engine: Engine | None = None, clock=utcnow):
        super().__init__(ttl or timedelta(days=settings.metadata_cache_ttl_days), engine, clock)

    def get(self, video_id: str) -> StorageResult[VideoMetadata | None]:
        def _get() -> VideoMetadata | None:
            with get_session(self.engine) as session:
                row = session.get(CachedMetadata, video_id)
                return VideoMetadata.from_dict(row.payload) if self._live(row) else None

        return attempt("metadata cache get", _get)

    def put(self, metadata: VideoMetadata, ttl: timedelta | None = None) -> StorageResult[None]:
        if metadata.degraded:
            return StorageResult()

        def _put() -> None:
            now = self.clock()
            with get_session(self.engine) as session:
                row = session.get(CachedMetadata, metadata.video_id) or CachedMetadata(
                    video_id=metadata.video_id, expires_at=now
                )
                row.payload = metadata.to_dict()
                row.created_at = now
                row.expires_at = self._expiry(now, ttl)
                session.add(row)
                session.commit()

        return attempt("metadata cache put", _put)


class SummaryCache(_TTLCache):
    """Summaries keyed per user, video and summary type."""

    model = CachedSummary

    def __init__(self, ttl: timedelta | None = None, engine: Engine | None = None, clock=utcnow):
        super().__init__(ttl or timedelta(days=settings.summary_cache_ttl_days), engine, clock)

    @staticmethod
    def _select(session, key: SummaryKey):
        return session.exec(
            select(CachedSummary).where(
                CachedSummary.user_id == key.user_id,
                CachedSummary.video_id == key.video_id,
                CachedSummary.summary_type == key.summary_type,
            )
        ).first()

    def get(self, key: SummaryKey) -> StorageResult[CachedSummaryHit | None]:
        def _get() -> CachedSummaryHit | None:
            with get_session(self.engine) as session:
                row = self._select(session, key)
                if not self._live(row):
                    return None
                return CachedSummaryHit(
                    id=row.id,
                    summary=SummaryResult(
                        text=row.summary,
                        provider=row.provider,
                        provider_name=row.provider_name,
                        summary_type=row.summary_type,
                        generated_at=row.created_at,
                        degraded=row.degraded,
                    ),
                    metadata=VideoMetadata.from_dict(row.video_metadata),
                    created_at=row.created_at,
                )

        return attempt("summary cache get", _get)

    def put(
        self,
        key: SummaryKey,
        summary: SummaryResult,
        metadata: VideoMetadata,
        ttl: timedelta | None = None,
    ) -> StorageResult[None]:
        def _put() -> None:
            now = self.clock()
            with get_session(self.engine) as session:
                row = self._select(session, key) or CachedSummary(
                    user_id=key.user_id,
                    video_id=key.video_id,
                    summary_type=key.summary_type,
                    summary="",
                    provider="",
                    provider_name="",
                    expires_at=now,
                )
                row.summary = summary.text
                row.provider = summary.provider
                row.provider_name = summary.provider_name
                row.degraded = summary.degraded
                row.video_metadata = metadata.to_dict()
                row.created_at = now
                row.expires_at = self._expiry(now, ttl)
                session.add(row)
                session.commit()
            logger.info("Summary cached user_id=%s video_id=%s type=%s", *key)

        return attempt("summary cache put", _put)

    def delete(self, summary_id: int, user_id: str) -> StorageResult[bool]:
        """Delete a cached summary, only if it belongs to ``user_id``."""

        def _delete() -> bool:
            with get_session(self.engine) as session:
                row = session.get(CachedSummary, summary_id)
                if row is None or row.user_id != user_id:
                    return False
                session.delete(row)
                session.commit()
                return True

        return attempt("summary cache delete", _delete)
