"""Ingestion module for resolving videos and fetching transcripts/metadata."""

from .metadata import MetadataSource
from .transcript import TranscriptSource
from .video_id import extract_video_id, resolve

__all__ = [
    "MetadataSource",
    "TranscriptSource",
    "extract_video_id",
    "resolve",
]
