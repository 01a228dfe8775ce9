"""Prompt construction and a single AI summarization call."""

import logging
import re
from typing import Literal

from ..config import settings
from ..interfaces import VideoMetadata
from . import prompts
from .exceptions import AIProviderError, MalformedResponseError
from .provider import AIProvider

logger = logging.getLogger(__name__)

SummaryType = Literal["short", "comprehensive"]
SUMMARY_TYPES = ("short", "comprehensive")

_LINE_BREAKS = re.compile(r"\r\n|\n|\r")


def metadata_context(metadata: VideoMetadata) -> str:
    """CONTEXT block listing only known, non-placeholder fields."""
    if metadata.degraded:
        return ""

    lines = []
    if metadata.title:
        lines.append(f"Title: {metadata.title}")
    if metadata.channel_title:
        lines.append(f"Channel: {metadata.channel_title}")
    if metadata.duration_iso:
        lines.append(f"Duration: {metadata.duration_iso}")
    if not lines:
        return ""
    return "CONTEXT:\n" + "\n".join(lines) + "\n\n"


def build_summary_prompt(transcript: str, metadata: VideoMetadata, summary_type: str) -> str:
    """Deterministic prompt for a transcript and summary type."""
    if summary_type not in prompts.SUMMARY_TASKS:
        raise ValueError(f"Unknown summary type: {summary_type}")

    return prompts.SUMMARY_PROMPT.format(
        context=metadata_context(metadata),
        transcript=_LINE_BREAKS.sub(" ", transcript).strip(),
        task=prompts.SUMMARY_TASKS[summary_type],
        guidelines=prompts.FORMAT_GUIDELINES,
    )


class SummaryGenerator:
    """Turns transcript text into summary text with one provider.

    Errors are not handled here: every failure surfaces as an AIProviderError
    for the caller to act on.
    """

    def generate(
        self,
        transcript: str,
        metadata: VideoMetadata,
        summary_type: str,
        provider: AIProvider,
    ) -> str:
        prompt = build_summary_prompt(transcript, metadata, summary_type)
        max_tokens = (
            settings.short_max_tokens if summary_type == "short" else settings.comprehensive_max_tokens
        )
        logger.info(
            "Generating summary video_id=%s provider=%s type=%s",
            metadata.video_id, provider.name, summary_type,
        )

        try:
            text = provider.generate(prompt, system=prompts.SYSTEM_SUMMARIZER, max_tokens=max_tokens)
        except AIProviderError:
            raise
        except Exception as e:
            raise AIProviderError(f"{provider.name} failed: {type(e).__name__}: {e}") from e

        if not isinstance(text, str) or not text.strip():
            raise MalformedResponseError(f"{provider.name} returned an empty summary")

        logger.info(
            "Summary generated video_id=%s provider=%s length=%d",
            metadata.video_id, provider.name, len(text),
        )
        return text
