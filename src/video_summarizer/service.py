"""Video Summarizer Service - Core business logic."""

import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor, wait
from concurrent.futures import TimeoutError as FutureTimeout
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Callable, Literal, Union

from sqlalchemy.engine import Engine

from .analyzer.fallback import FallbackOrchestrator, FallbackStage, basic_summary
from .analyzer.formatting import format_summary
from .analyzer.summarizer import SUMMARY_TYPES
from .config import settings
from .ingestion.exceptions import NoTranscriptAvailable, TranscriptProviderUnavailable, TransientUpstreamError
from .ingestion.metadata import MetadataSource
from .ingestion.transcript import TranscriptSource
from .ingestion.video_id import resolve
from .interfaces import QuotaDecision, QuotaRemaining, SummaryResult, Transcript, VideoMetadata
from .quota import DAILY_LIMIT_EXCEEDED, QuotaGate
from .storage.cache import CachedSummaryHit, MetadataCache, SummaryCache, SummaryKey, TranscriptCache
from .storage.ledger import UsageLedger, UsageRecorder
from .storage.models import utcnow
from .storage.result import StorageResult, fail_open

logger = logging.getLogger(__name__)


class ErrorKind(str, Enum):
    INVALID_URL = "invalid_url"
    INVALID_REQUEST = "invalid_request"
    NOT_AUTHENTICATED = "not_authenticated"
    QUOTA_EXCEEDED = "quota_exceeded"
    TRANSCRIPT_UNAVAILABLE = "transcript_unavailable"
    INTERNAL_ERROR = "internal_error"


# Causes attached to TRANSCRIPT_UNAVAILABLE
NO_CAPTIONS = "no_captions"
UPSTREAM_UNAVAILABLE = "upstream_unavailable"


@dataclass
class SummarizeSuccess:
    """Completed summarization. ``degraded`` marks the basic-summary path."""

    video_id: str
    summary: str
    metadata: VideoMetadata
    provider: str
    provider_name: str
    summary_type: str
    timestamp: datetime
    limits: QuotaRemaining
    cached: bool = False
    degraded: bool = False
    kind: Literal["ok"] = "ok"


@dataclass
class SummarizeFailure:
    """A request that could not be served."""

    error: ErrorKind
    message: str
    reason: str | None = None
    remaining: QuotaRemaining | None = None
    cause: str | None = None
    kind: Literal["error"] = "error"


SummarizeOutcome = Union[SummarizeSuccess, SummarizeFailure]


@dataclass
class _Inputs:
    transcript: Transcript
    metadata: VideoMetadata
    transcript_cached: bool
    metadata_cached: bool


class BackgroundWriter:
    """Fire-and-forget executor for cache and usage writes.

    Failures are logged. ``drain`` waits for everything submitted so far and
    ``close`` drains before shutting the pool down.
    """

    def __init__(self, max_workers: int = 2):
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="summarizer-writer")
        self._pending: set[Future] = set()
        self._lock = threading.Lock()

    def submit(self, label: str, fn: Callable, *args) -> Future:
        future = self._executor.submit(self._run, label, fn, *args)
        with self._lock:
            self._pending.add(future)
        future.add_done_callback(self._discard)
        return future

    def _discard(self, future: Future) -> None:
        with self._lock:
            self._pending.discard(future)

    @staticmethod
    def _run(label: str, fn: Callable, *args):
        try:
            result = fn(*args)
        except Exception:
            logger.exception("Background write failed: %s", label)
            return None
        if isinstance(result, StorageResult):
            return fail_open(result, None, write=label)
        return result

    def drain(self, timeout: float | None = None) -> None:
        with self._lock:
            pending = list(self._pending)
        if pending:
            wait(pending, timeout=timeout)

    def close(self) -> None:
        self.drain()
        self._executor.shutdown(wait=True)


class SummarizationService:
    """Service layer for the summarization pipeline."""

    def __init__(
        self,
        engine: Engine | None = None,
        transcript_source: TranscriptSource | None = None,
        metadata_source: MetadataSource | None = None,
        orchestrator: FallbackOrchestrator | None = None,
        ledger: UsageLedger | None = None,
        transcript_cache: TranscriptCache | None = None,
        metadata_cache: MetadataCache | None = None,
        summary_cache: SummaryCache | None = None,
        writer: BackgroundWriter | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.clock = clock
        self.transcript_source = transcript_source or TranscriptSource()
        self.metadata_source = metadata_source or MetadataSource()
        self.orchestrator = orchestrator or FallbackOrchestrator()
        self.ledger = ledger or UsageLedger(engine, clock=clock)
        self.quota = QuotaGate(self.ledger, clock=clock)
        self.recorder = UsageRecorder(self.ledger)
        self.transcript_cache = transcript_cache or TranscriptCache(engine=engine, clock=clock)
        self.metadata_cache = metadata_cache or MetadataCache(engine=engine, clock=clock)
        self.summary_cache = summary_cache or SummaryCache(engine=engine, clock=clock)
        self.writer = writer or BackgroundWriter()
        self._pool = ThreadPoolExecutor(max_workers=4, thread_name_prefix="summarizer-fetch")

    def summarize(
        self,
        user_id: str,
        tier: str,
        url: str,
        summary_type: str = "short",
    ) -> SummarizeOutcome:
        """
        Full summarization pipeline.

        Args:
            user_id: Authenticated user making the request
            tier: User's subscription tier (free, pro, max)
            url: YouTube URL or bare video ID
            summary_type: "short" or "comprehensive"

        Returns:
            SummarizeSuccess, possibly degraded, or SummarizeFailure. Never
            raises.
        """
        try:
            return self._summarize(user_id, tier, url, summary_type)
        except Exception:
            logger.exception("Summarization failed user_id=%s url=%s", user_id, url)
            return SummarizeFailure(
                error=ErrorKind.INTERNAL_ERROR,
                message="An unexpected error occurred while summarizing the video",
            )

    def _summarize(self, user_id: str, tier: str, url: str, summary_type: str) -> SummarizeOutcome:
        if not user_id:
            return SummarizeFailure(error=ErrorKind.NOT_AUTHENTICATED, message="Authentication required")
        if summary_type not in SUMMARY_TYPES:
            return SummarizeFailure(
                error=ErrorKind.INVALID_REQUEST,
                message=f"Unknown summary type: {summary_type}",
            )

        # Step 1: Resolve the video
        resolution = resolve(url)
        if not resolution.ok:
            return SummarizeFailure(error=ErrorKind.INVALID_URL, message=resolution.error)
        video_id = resolution.video_id

        # Step 2: Admission, before any cache or AI work
        decision = self.quota.check(user_id, tier)
        if not decision.allowed:
            logger.info("Quota exceeded user_id=%s tier=%s reason=%s", user_id, tier, decision.reason)
            return SummarizeFailure(
                error=ErrorKind.QUOTA_EXCEEDED,
                message=_quota_message(decision),
                reason=decision.reason,
                remaining=decision.remaining,
            )

        # Step 3: Per-user summary cache. A hit still counts against quota.
        key = SummaryKey(user_id, video_id, summary_type)
        hit = fail_open(self.summary_cache.get(key), None, user_id=user_id, video_id=video_id)
        if hit is not None:
            logger.info("Summary cache hit user_id=%s video_id=%s type=%s", *key)
            self.writer.submit("usage record", self.recorder.record, user_id, video_id, "summarize_cached")
            return SummarizeSuccess(
                video_id=video_id,
                summary=hit.summary.text,
                metadata=hit.metadata,
                provider=hit.summary.provider,
                provider_name=hit.summary.provider_name,
                summary_type=summary_type,
                timestamp=hit.created_at,
                limits=decision.remaining.after_request(),
                cached=True,
                degraded=hit.summary.degraded,
            )

        # Step 4: Transcript and metadata, concurrently
        inputs = self._fetch_inputs(video_id)
        if isinstance(inputs, SummarizeFailure):
            return inputs

        # Step 5: Summarize with fallback, then format
        text = inputs.transcript.text()
        result = self.orchestrator.generate_with_fallback(
            text, inputs.metadata, summary_type, self.preferred_provider(tier)
        )
        formatted = format_summary(result.text)
        role, name, degraded = result.provider_role, result.provider_name, result.degraded
        if not formatted:
            logger.warning("Formatted summary is empty, using basic summary video_id=%s", video_id)
            formatted = format_summary(basic_summary(text, inputs.metadata))
            role, name, degraded = FallbackStage.BASIC.value, "basic", True

        summary = SummaryResult(
            text=formatted,
            provider=role,
            provider_name=name,
            summary_type=summary_type,
            generated_at=self.clock(),
            degraded=degraded,
        )

        # Step 6: Off the critical path
        self.writer.submit("summary cache", self.summary_cache.put, key, summary, inputs.metadata)
        self.writer.submit("usage record", self.recorder.record, user_id, video_id, "summarize")
        if not inputs.transcript_cached:
            self.writer.submit("transcript cache", self.transcript_cache.put, inputs.transcript)
        if not inputs.metadata_cached:
            self.writer.submit("metadata cache", self.metadata_cache.put, inputs.metadata)

        logger.info(
            "Summarized video_id=%s user_id=%s provider=%s degraded=%s",
            video_id, user_id, name, degraded,
        )
        return SummarizeSuccess(
            video_id=video_id,
            summary=summary.text,
            metadata=inputs.metadata,
            provider=summary.provider,
            provider_name=summary.provider_name,
            summary_type=summary_type,
            timestamp=summary.generated_at,
            limits=decision.remaining.after_request(),
            degraded=summary.degraded,
        )

    def _fetch_inputs(self, video_id: str) -> _Inputs | SummarizeFailure:
        # The transcript worker stops retrying at the same deadline
        deadline = time.monotonic() + settings.transcript_timeout
        transcript_future = self._pool.submit(self._load_transcript, video_id, deadline)
        metadata_future = self._pool.submit(self._load_metadata, video_id)

        try:
            transcript, transcript_cached = transcript_future.result(timeout=settings.transcript_timeout)
        except NoTranscriptAvailable as e:
            logger.info("Transcript unavailable video_id=%s: %s", video_id, e)
            return SummarizeFailure(
                error=ErrorKind.TRANSCRIPT_UNAVAILABLE,
                message="This video has no captions available to summarize",
                cause=NO_CAPTIONS,
            )
        except (TranscriptProviderUnavailable, TransientUpstreamError, FutureTimeout) as e:
            if isinstance(e, FutureTimeout):
                # Dropped if still queued; a running fetch gives up at the deadline
                transcript_future.cancel()
                logger.error(
                    "Transcript fetch timed out after %ss video_id=%s", settings.transcript_timeout, video_id
                )
            else:
                logger.error("Transcript fetch failed video_id=%s: %s", video_id, e)
            return SummarizeFailure(
                error=ErrorKind.TRANSCRIPT_UNAVAILABLE,
                message="Could not retrieve the video transcript, please try again later",
                cause=UPSTREAM_UNAVAILABLE,
            )

        try:
            metadata, metadata_cached = metadata_future.result(timeout=settings.metadata_timeout)
        except FutureTimeout:
            logger.warning("Metadata fetch timed out video_id=%s", video_id)
            metadata, metadata_cached = VideoMetadata.placeholder(video_id), False

        return _Inputs(transcript, metadata, transcript_cached, metadata_cached)

    def _load_transcript(self, video_id: str, deadline: float | None = None) -> tuple[Transcript, bool]:
        cached = fail_open(self.transcript_cache.get(video_id), None, video_id=video_id)
        if cached is not None and cached.segments:
            logger.debug("Transcript cache hit video_id=%s", video_id)
            return cached, True
        return self.transcript_source.fetch(video_id, deadline=deadline), False

    def _load_metadata(self, video_id: str) -> tuple[VideoMetadata, bool]:
        cached = fail_open(self.metadata_cache.get(video_id), None, video_id=video_id)
        if cached is not None:
            return cached, True
        return self.metadata_source.fetch(video_id), False

    def get_transcript(self, url: str) -> Transcript:
        """Cached or freshly fetched transcript for a URL. Does not spend quota.

        Raises:
            ValueError: If the URL cannot be resolved
            NoTranscriptAvailable, TranscriptProviderUnavailable: From the source
        """
        resolution = resolve(url)
        if not resolution.ok:
            raise ValueError(resolution.error)
        transcript, cached = self._load_transcript(resolution.video_id)
        if not cached:
            self.writer.submit("transcript cache", self.transcript_cache.put, transcript)
        return transcript

    def preferred_provider(self, tier: str) -> str:
        """Provider to try first for a tier."""
        return settings.preferred_provider_by_tier.get(tier, settings.primary_provider)

    def check_cache(self, user_id: str, url: str, summary_type: str = "short") -> CachedSummaryHit | None:
        """Look up a cached summary without spending quota."""
        resolution = resolve(url)
        if not resolution.ok:
            return None
        key = SummaryKey(user_id, resolution.video_id, summary_type)
        return fail_open(self.summary_cache.get(key), None, user_id=user_id)

    def delete_summary(self, user_id: str, summary_id: int) -> StorageResult[bool]:
        """Delete one of the user's cached summaries."""
        return self.summary_cache.delete(summary_id, user_id)

    def quota_status(self, user_id: str, tier: str) -> QuotaDecision:
        return self.quota.check(user_id, tier)

    def reset_usage(self, user_id: str, since: datetime | None = None) -> StorageResult[int]:
        """Exclude a user's usage events from future quota windows."""
        result = self.ledger.reset_usage(user_id, since)
        if result.ok:
            logger.info("Usage reset user_id=%s events=%s", user_id, result.value)
        return result

    def usage_history(self, user_id: str, limit: int = 50) -> StorageResult:
        return self.ledger.events_for(user_id, limit)

    def cleanup(self) -> dict[str, int]:
        """Purge expired cache rows and usage events past retention."""
        purges = {
            "transcripts": self.transcript_cache.purge_expired(),
            "metadata": self.metadata_cache.purge_expired(),
            "summaries": self.summary_cache.purge_expired(),
            "usage_events": self.ledger.purge_older_than(),
        }
        counts = {name: fail_open(result, 0, purge=name) for name, result in purges.items()}
        logger.info("Cleanup complete %s", counts)
        return counts

    def close(self) -> None:
        """Flush pending writes and stop worker threads."""
        self.writer.close()
        self._pool.shutdown(wait=False, cancel_futures=True)


def _quota_message(decision: QuotaDecision) -> str:
    if decision.reason == DAILY_LIMIT_EXCEEDED:
        return "Daily summary limit reached. Upgrade your plan or try again tomorrow."
    return "Too many requests. Please wait a minute before trying again."
