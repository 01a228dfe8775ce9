"""Provider fallback chain: preferred AI, other AI, then a basic extract."""

import logging
import re
from dataclasses import dataclass, field
from enum import Enum

from ..config import settings
from ..interfaces import VideoMetadata
from . import prompts
from .provider import AIProvider, get_providers
from .summarizer import SummaryGenerator

logger = logging.getLogger(__name__)

_SENTENCE_END = re.compile(r"(?<=[.!?])\s+")


class FallbackStage(Enum):
    PRIMARY = "primary"
    SECONDARY = "secondary"
    BASIC = "basic"


# Each failed stage hands over to the next; BASIC cannot fail.
NEXT_STAGE = {
    FallbackStage.PRIMARY: FallbackStage.SECONDARY,
    FallbackStage.SECONDARY: FallbackStage.BASIC,
}


@dataclass
class FallbackResult:
    text: str
    provider_role: str  # primary, secondary, basic
    provider_name: str  # gemini, groq, basic
    degraded: bool = False
    errors: list[str] = field(default_factory=list)


def basic_summary(transcript: str, metadata: VideoMetadata, sentences: int | None = None) -> str:
    """Extractive summary from the title and the opening sentences."""
    count = settings.basic_summary_sentences if sentences is None else sentences
    parts = [s.strip() for s in _SENTENCE_END.split(transcript.strip()) if s.strip()]
    preview = " ".join(parts[:count]) or "No transcript text was available."
    title = metadata.title if metadata.title and not metadata.degraded else "Video Summary"
    return prompts.BASIC_SUMMARY.format(title=title, preview=preview, length=len(transcript))


class FallbackOrchestrator:
    """Runs the PRIMARY -> SECONDARY -> BASIC chain. Never raises."""

    def __init__(
        self,
        providers: dict[str, AIProvider] | None = None,
        generator: SummaryGenerator | None = None,
    ):
        self.providers = providers if providers is not None else get_providers()
        self.generator = generator or SummaryGenerator()

    def provider_for(self, stage: FallbackStage, preferred: str) -> AIProvider | None:
        if stage is FallbackStage.PRIMARY:
            return self.providers.get(preferred)
        if stage is FallbackStage.SECONDARY:
            for name, provider in self.providers.items():
                if name != preferred:
                    return provider
        return None

    def generate_with_fallback(
        self,
        transcript: str,
        metadata: VideoMetadata,
        summary_type: str = "short",
        preferred_provider: str | None = None,
    ) -> FallbackResult:
        preferred = preferred_provider or settings.primary_provider
        errors: list[str] = []
        stage = FallbackStage.PRIMARY

        while stage is not FallbackStage.BASIC:
            provider = self.provider_for(stage, preferred)
            if provider is None:
                errors.append(f"{stage.value}: no provider configured")
                stage = NEXT_STAGE[stage]
                continue

            try:
                text = self.generator.generate(transcript, metadata, summary_type, provider)
            except Exception as e:
                logger.error(
                    "AI provider failed stage=%s provider=%s video_id=%s error=%s",
                    stage.value, provider.name, metadata.video_id, e,
                )
                errors.append(f"{stage.value} ({provider.name}): {e}")
                stage = NEXT_STAGE[stage]
                continue

            if errors:
                logger.warning(
                    "Summary served by %s provider video_id=%s earlier_errors=%s",
                    stage.value, metadata.video_id, "; ".join(errors),
                )
            return FallbackResult(
                text=text,
                provider_role=stage.value,
                provider_name=provider.name,
                errors=errors,
            )

        logger.error(
            "All AI providers failed, returning basic summary video_id=%s errors=%s",
            metadata.video_id, "; ".join(errors),
        )
        return FallbackResult(
            text=basic_summary(transcript, metadata),
            provider_role=FallbackStage.BASIC.value,
            provider_name="basic",
            degraded=True,
            errors=errors,
        )
