"""Shared fakes for the test suite."""

from datetime import datetime, timedelta, timezone

from sqlalchemy.pool import StaticPool
from sqlmodel import create_engine

from video_summarizer.analyzer.fallback import FallbackOrchestrator
from video_summarizer.analyzer.provider import AIProvider
from video_summarizer.ingestion.metadata import MetadataSource
from video_summarizer.ingestion.throttle import RequestWindow, upstream_retrying
from video_summarizer.ingestion.transcript import TranscriptSource
from video_summarizer.interfaces import Transcript, TranscriptSegment, VideoMetadata, thumbnail_url_for
from video_summarizer.service import SummarizationService
from video_summarizer.storage.database import init_db

VIDEO_ID = "jNQXAC9IVRw"
VIDEO_URL = f"https://youtu.be/{VIDEO_ID}"


def memory_engine():
    """Fresh in-memory SQLite database shared across threads."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(engine)
    return engine


class MutableClock:
    def __init__(self, start: datetime = datetime(2026, 3, 10, 12, 0, 0, tzinfo=timezone.utc)):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


def no_wait_retrying(max_retries: int = 3, sleeps: list | None = None):
    """Retry factory that records backoff delays instead of sleeping."""
    record = sleeps if sleeps is not None else []
    return lambda: upstream_retrying(max_retries=max_retries, base_delay=1.0, sleep=record.append)


def open_window() -> RequestWindow:
    return RequestWindow(max_requests=10_000)


def make_transcript(video_id: str = VIDEO_ID, lines=None) -> Transcript:
    lines = lines or [
        (0.0, "All right, so here we are in front of the elephants."),
        (4.0, "The cool thing about these guys is that they have really long trunks."),
        (8.0, "And that's cool."),
        (10.0, "And that's pretty much all there is to say."),
    ]
    return Transcript(
        video_id=video_id,
        segments=[TranscriptSegment(text, offset, 2.0) for offset, text in lines],
        source="fake",
        language="en",
    )


def make_metadata(video_id: str = VIDEO_ID) -> VideoMetadata:
    return VideoMetadata(
        video_id=video_id,
        title="Me at the zoo",
        thumbnail_url=thumbnail_url_for(video_id),
        channel_title="jawed",
        published_at="2005-04-24T03:31:52Z",
        duration_iso="PT19S",
    )


class FakeProvider(AIProvider):
    """AI provider returning a canned response or raising."""

    def __init__(self, name: str, response: str = "- Elephants have long trunks\n- That's cool", error: Exception | None = None):
        self.name = name
        self.response = response
        self.error = error
        self.calls: list[str] = []

    def generate(self, prompt: str, system: str | None = None, max_tokens: int | None = None) -> str:
        self.calls.append(prompt)
        if self.error is not None:
            raise self.error
        return self.response


class FakeTranscriptProvider:
    """Returns queued results in order; the last one repeats."""

    def __init__(self, *results, name: str = "fake"):
        self.name = name
        self.results = list(results) or [make_transcript()]
        self.calls = 0

    def fetch(self, video_id: str) -> Transcript:
        self.calls += 1
        result = self.results[min(self.calls, len(self.results)) - 1]
        if isinstance(result, Exception):
            raise result
        return result


class FakeMetadataProvider:
    def __init__(self, *results):
        self.results = list(results) or [make_metadata()]
        self.calls = 0

    def fetch(self, video_id: str) -> VideoMetadata:
        self.calls += 1
        result = self.results[min(self.calls, len(self.results)) - 1]
        if isinstance(result, Exception):
            raise result
        return result


class Pipeline:
    """A SummarizationService wired to fakes and an in-memory database."""

    def __init__(self, transcript_results=(), metadata_results=(), providers=None, engine=None, clock=None):
        self.engine = engine or memory_engine()
        self.clock = clock or MutableClock()
        self.transcripts = FakeTranscriptProvider(*transcript_results)
        self.metadata = FakeMetadataProvider(*metadata_results)
        if providers is None:
            providers = [FakeProvider("gemini"), FakeProvider("groq")]
        self.providers = {p.name: p for p in providers}
        self.service = SummarizationService(
            engine=self.engine,
            transcript_source=TranscriptSource([self.transcripts], window=open_window(), retrying=no_wait_retrying()),
            metadata_source=MetadataSource(self.metadata, window=open_window(), retrying=no_wait_retrying()),
            orchestrator=FallbackOrchestrator(providers=self.providers),
            clock=self.clock,
        )

    def summarize(self, tier: str = "pro", url: str = VIDEO_URL, user_id: str = "user-1", summary_type: str = "short"):
        outcome = self.service.summarize(user_id, tier, url, summary_type)
        self.service.writer.drain()
        return outcome

    def ai_calls(self) -> int:
        return sum(len(p.calls) for p in self.providers.values())

    def usage_count(self, user_id: str = "user-1") -> int:
        return self.service.ledger.count_since(user_id, datetime(2000, 1, 1, tzinfo=timezone.utc)).value

    def close(self) -> None:
        self.service.close()
