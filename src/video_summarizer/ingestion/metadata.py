"""Video metadata from the YouTube Data API with a placeholder fallback."""

import logging
from typing import Callable

import requests
from tenacity import Retrying

from ..config import settings
from ..interfaces import MetadataProvider, VideoMetadata, thumbnail_url_for
from . import http
from .exceptions import MetadataAuthError, TransientUpstreamError, VideoNotFound
from .throttle import RequestWindow, get_request_window, upstream_retrying

logger = logging.getLogger(__name__)

VIDEOS_ENDPOINT = "https://www.googleapis.com/youtube/v3/videos"


class YouTubeDataApiProvider:
    """videos.list lookup (snippet + contentDetails)."""

    def __init__(self, api_key: str | None = None, session: requests.Session | None = None):
        self.api_key = settings.youtube_api_key if api_key is None else api_key
        self.session = session or http.TimeoutSession(settings.upstream_timeout)

    def fetch(self, video_id: str) -> VideoMetadata:
        if not self.api_key:
            raise MetadataAuthError("YouTube API key is not configured")

        response = http.get(
            self.session,
            VIDEOS_ENDPOINT,
            params={"id": video_id, "part": "snippet,contentDetails", "key": self.api_key},
            headers={"Referer": settings.app_url, "Accept": "application/json"},
        )
        if response.status_code in (401, 403):
            raise MetadataAuthError(f"YouTube API returned {response.status_code}")
        if response.status_code == 404:
            raise VideoNotFound(video_id)
        if response.status_code != 200:
            raise TransientUpstreamError(f"YouTube API returned {response.status_code}")

        items = response.json().get("items") or []
        if not items:
            raise VideoNotFound(video_id)

        snippet = items[0].get("snippet", {})
        details = items[0].get("contentDetails", {})
        thumbnails = snippet.get("thumbnails", {})
        thumb = (thumbnails.get("high") or thumbnails.get("default") or {}).get("url")

        return VideoMetadata(
            video_id=video_id,
            title=snippet.get("title") or "Untitled",
            thumbnail_url=thumb or thumbnail_url_for(video_id),
            channel_title=snippet.get("channelTitle"),
            published_at=snippet.get("publishedAt"),
            duration_iso=details.get("duration"),
        )


class MetadataSource:
    """Metadata lookup that always returns a value."""

    def __init__(
        self,
        provider: MetadataProvider | None = None,
        window: RequestWindow | None = None,
        retrying: Callable[[], Retrying] = upstream_retrying,
    ):
        self.provider = provider or YouTubeDataApiProvider()
        self.window = window or get_request_window()
        self._retrying = retrying

    def fetch(self, video_id: str) -> VideoMetadata:
        try:
            return self._retrying()(self._call, video_id)
        except MetadataAuthError as e:
            logger.error("Metadata provider rejected request video_id=%s error=%s", video_id, e)
        except VideoNotFound:
            logger.warning("Metadata not found video_id=%s", video_id)
        except TransientUpstreamError as e:
            logger.error("Metadata fetch failed after retries video_id=%s error=%s", video_id, e)
        except (ValueError, KeyError) as e:
            logger.error("Malformed metadata response video_id=%s error=%s", video_id, e)
        except Exception:
            logger.exception("Metadata provider failed video_id=%s", video_id)

        return VideoMetadata.placeholder(video_id)

    def _call(self, video_id: str) -> VideoMetadata:
        self.window.acquire()
        return self.provider.fetch(video_id)
