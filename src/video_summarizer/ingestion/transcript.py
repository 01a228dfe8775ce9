"""Transcript retrieval with retry, throttling and provider fallback."""

import html
import json
import logging
import re
import time
import xml.etree.ElementTree as ET
from typing import Callable, Sequence

import requests
from tenacity import Retrying
from youtube_transcript_api import (
    CouldNotRetrieveTranscript,
    NoTranscriptFound,
    TranscriptsDisabled,
    VideoUnavailable,
    YouTubeRequestFailed,
    YouTubeTranscriptApi,
)

from ..config import settings
from ..interfaces import Transcript, TranscriptProvider, TranscriptSegment
from . import http
from .exceptions import NoTranscriptAvailable, TranscriptProviderUnavailable, TransientUpstreamError
from .throttle import RequestWindow, get_request_window, stop_at_deadline, upstream_retrying

logger = logging.getLogger(__name__)

_TAG = re.compile(r"<[^>]*>")
_WHITESPACE = re.compile(r"\s+")
_PLAYER_RESPONSE = re.compile(r"ytInitialPlayerResponse\s*=\s*")


def decode_caption_text(raw: str) -> str:
    """Strip markup, unescape HTML entities and collapse whitespace.

    Tags are removed before decoding so escaped angle brackets survive as text.
    A second unescape handles double-encoded entities such as ``&amp;#39;``.
    """
    text = _TAG.sub("", raw or "")
    text = html.unescape(html.unescape(text))
    return _WHITESPACE.sub(" ", text).strip()


def decode_segments(segments: Sequence[TranscriptSegment]) -> list[TranscriptSegment]:
    """Decode segment text, drop empty lines and sort by offset."""
    decoded = []
    for seg in segments:
        text = decode_caption_text(seg.text)
        if text:
            decoded.append(TranscriptSegment(text, float(seg.offset_seconds), float(seg.duration_seconds)))
    return sorted(decoded, key=lambda s: s.offset_seconds)


class YouTubeTranscriptApiProvider:
    """Captions via the youtube-transcript-api package."""

    name = "youtube-transcript-api"

    def __init__(self, languages: list[str] | None = None, timeout: float | None = None):
        self.languages = languages or settings.transcript_languages
        session = http.TimeoutSession(timeout or settings.upstream_timeout)
        self.api = YouTubeTranscriptApi(http_client=session)

    def fetch(self, video_id: str) -> Transcript:
        try:
            try:
                fetched = self.api.fetch(video_id, languages=self.languages)
            except NoTranscriptFound:
                # Preferred languages missing: take whatever track exists
                fetched = next(iter(self.api.list(video_id))).fetch()
        except (TranscriptsDisabled, NoTranscriptFound, VideoUnavailable, StopIteration) as e:
            raise NoTranscriptAvailable(f"No captions for {video_id}: {type(e).__name__}") from e
        except YouTubeRequestFailed as e:
            raise TransientUpstreamError(f"YouTube request failed: {e}") from e
        except CouldNotRetrieveTranscript as e:
            raise TranscriptProviderUnavailable(f"{type(e).__name__} for {video_id}") from e
        except requests.RequestException as e:
            raise TransientUpstreamError(f"Request failed: {type(e).__name__}: {e}") from e

        segments = [
            TranscriptSegment(s.text, float(s.start), float(s.duration))
            for s in fetched.snippets
        ]
        return Transcript(
            video_id=video_id,
            segments=segments,
            source=self.name,
            language=getattr(fetched, "language_code", None),
        )


class CaptionTrackProvider:
    """Captions scraped from the watch page's caption track listing."""

    name = "caption-track"
    watch_url = "https://www.youtube.com/watch?v={video_id}"

    def __init__(self, languages: list[str] | None = None, session: requests.Session | None = None):
        self.languages = languages or settings.transcript_languages
        self.session = session or http.TimeoutSession(settings.upstream_timeout)

    def fetch(self, video_id: str) -> Transcript:
        page = http.get(self.session, self.watch_url.format(video_id=video_id))
        if page.status_code != 200:
            raise TranscriptProviderUnavailable(f"Watch page returned {page.status_code}")

        player = self._player_response(page.text)
        status = (player.get("playabilityStatus") or {}).get("status")
        if status == "ERROR":
            raise NoTranscriptAvailable(f"Video {video_id} is unavailable")

        tracks = (
            player.get("captions", {})
            .get("playerCaptionsTracklistRenderer", {})
            .get("captionTracks")
        )
        if not tracks:
            raise NoTranscriptAvailable(f"No captions available for {video_id}")

        track = self._pick_track(tracks)
        response = http.get(self.session, track["baseUrl"], headers={"Accept": "text/xml"})
        if response.status_code != 200 or not response.text.strip():
            raise TranscriptProviderUnavailable(f"Caption track download failed ({response.status_code})")

        return Transcript(
            video_id=video_id,
            segments=self._parse_timedtext(response.text),
            source=self.name,
            language=track.get("languageCode"),
        )

    def _player_response(self, page_html: str) -> dict:
        match = _PLAYER_RESPONSE.search(page_html)
        if not match:
            raise TranscriptProviderUnavailable("Could not find player response")
        try:
            player, _ = json.JSONDecoder().raw_decode(page_html, match.end())
        except json.JSONDecodeError as e:
            raise TranscriptProviderUnavailable(f"Malformed player response: {e}") from e
        return player

    def _pick_track(self, tracks: list[dict]) -> dict:
        for lang in self.languages:
            for track in tracks:
                if track.get("languageCode") == lang:
                    return track
        return tracks[0]

    def _parse_timedtext(self, xml_text: str) -> list[TranscriptSegment]:
        try:
            root = ET.fromstring(xml_text)
        except ET.ParseError as e:
            raise TranscriptProviderUnavailable(f"Malformed caption XML: {e}") from e

        segments = []
        for node in root.iter("text"):
            segments.append(
                TranscriptSegment(
                    text="".join(node.itertext()),
                    offset_seconds=float(node.get("start", 0)),
                    duration_seconds=float(node.get("dur", 0)),
                )
            )
        return segments


class TranscriptSource:
    """Fetch a decoded transcript, trying each provider in order.

    Transient errors are retried per provider. A provider that is unavailable
    (or exhausts its retries) hands over to the next one. A missing-captions
    answer is terminal. With a ``deadline`` (a ``time.monotonic`` value) retries
    and remaining providers are abandoned once it passes.
    """

    def __init__(
        self,
        providers: Sequence[TranscriptProvider] | None = None,
        window: RequestWindow | None = None,
        retrying: Callable[[], Retrying] = upstream_retrying,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.providers = list(providers) if providers is not None else default_transcript_providers()
        self.window = window or get_request_window()
        self._retrying = retrying
        self._clock = clock

    def fetch(self, video_id: str, deadline: float | None = None) -> Transcript:
        last_error: Exception | None = None

        for provider in self.providers:
            if deadline is not None and self._clock() >= deadline:
                logger.warning(
                    "Transcript deadline passed, skipping remaining providers video_id=%s provider=%s",
                    video_id, provider.name,
                )
                break
            try:
                raw = self._retrying_until(deadline)(self._call, provider, video_id)
            except NoTranscriptAvailable:
                logger.info("No transcript available video_id=%s provider=%s", video_id, provider.name)
                raise
            except (TranscriptProviderUnavailable, TransientUpstreamError, ValueError, KeyError) as e:
                # Malformed provider payloads count as an unavailable provider
                logger.warning(
                    "Transcript provider failed video_id=%s provider=%s error=%s",
                    video_id, provider.name, e,
                )
                last_error = e
                continue

            segments = decode_segments(raw.segments)
            if not segments:
                raise NoTranscriptAvailable(f"Transcript for {video_id} is empty")

            logger.info(
                "Fetched transcript video_id=%s provider=%s segments=%d",
                video_id, provider.name, len(segments),
            )
            return Transcript(video_id=video_id, segments=segments, source=raw.source, language=raw.language)

        raise TranscriptProviderUnavailable(
            f"All transcript providers failed for {video_id}: {last_error or 'deadline passed'}"
        )

    def _retrying_until(self, deadline: float | None) -> Retrying:
        retrying = self._retrying()
        if deadline is None:
            return retrying
        return retrying.copy(stop=retrying.stop | stop_at_deadline(deadline, self._clock))

    def _call(self, provider: TranscriptProvider, video_id: str) -> Transcript:
        self.window.acquire()
        return provider.fetch(video_id)


def default_transcript_providers() -> list[TranscriptProvider]:
    return [YouTubeTranscriptApiProvider(), CaptionTrackProvider()]
