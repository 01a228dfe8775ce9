"""Video Summarizer - YouTube video summarization using Gemini/Groq AI."""

__version__ = "0.1.0"

from .interfaces import SummaryResult, Transcript, TranscriptSegment, VideoMetadata
from .service import ErrorKind, SummarizationService, SummarizeFailure, SummarizeSuccess

__all__ = [
    "SummaryResult",
    "Transcript",
    "TranscriptSegment",
    "VideoMetadata",
    "ErrorKind",
    "SummarizationService",
    "SummarizeFailure",
    "SummarizeSuccess",
]
