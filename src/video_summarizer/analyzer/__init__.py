"""Analyzer module for AI-powered video summarization."""

from .fallback import FallbackOrchestrator, FallbackResult, FallbackStage, basic_summary
from .formatting import convert_transcript_to_paragraphs, format_summary, split_paragraphs, truncate_text
from .provider import AIProvider, get_providers, reset_providers
from .summarizer import SUMMARY_TYPES, SummaryGenerator, build_summary_prompt

__all__ = [
    "AIProvider",
    "get_providers",
    "reset_providers",
    "FallbackOrchestrator",
    "FallbackResult",
    "FallbackStage",
    "basic_summary",
    "SummaryGenerator",
    "SUMMARY_TYPES",
    "build_summary_prompt",
    "format_summary",
    "split_paragraphs",
    "convert_transcript_to_paragraphs",
    "truncate_text",
]
