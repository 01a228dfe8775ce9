"""Gemini API provider with rate limiting and retry logic."""

import time

from google import genai
from google.genai import types
from tenacity import retry, retry_if_exception, stop_after_attempt, wait_exponential

from ..config import settings
from .exceptions import GeminiAPIError, MalformedResponseError, ProviderNotConfigured
from .provider import AIProvider


def _should_retry(exception: Exception) -> bool:
    """Determine if we should retry based on exception type."""
    if isinstance(exception, (GeminiAPIError, MalformedResponseError)):
        return False
    error_str = str(exception).lower()
    non_retryable = ["api_key", "invalid", "unauthorized", "forbidden", "quota", "permission"]
    return not any(term in error_str for term in non_retryable)


class GeminiProvider(AIProvider):
    """Gemini API provider with rate limiting."""

    name = "gemini"

    def __init__(self):
        if not settings.gemini_api_key:
            raise ProviderNotConfigured("GEMINI_API_KEY environment variable not set")

        self.client = genai.Client(
            api_key=settings.gemini_api_key,
            http_options=types.HttpOptions(timeout=int(settings.ai_timeout * 1000)),
        )
        self.model = settings.gemini_model
        self._last_request_time: float = 0

    def _wait_for_rate_limit(self) -> None:
        """Wait if necessary to respect rate limits."""
        elapsed = time.time() - self._last_request_time
        if elapsed < settings.gemini_request_interval:
            time.sleep(settings.gemini_request_interval - elapsed)

    @retry(
        stop=stop_after_attempt(settings.ai_max_attempts),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        retry=retry_if_exception(_should_retry),
        reraise=True,
    )
    def generate(self, prompt: str, system: str | None = None, max_tokens: int | None = None) -> str:
        """Generate text from a prompt."""
        self._wait_for_rate_limit()

        try:
            config = types.GenerateContentConfig(
                system_instruction=system,
                max_output_tokens=max_tokens,
                temperature=0.3,
            )

            response = self.client.models.generate_content(
                model=self.model,
                contents=prompt,
                config=config,
            )

            self._last_request_time = time.time()

        except Exception as e:
            if not _should_retry(e):
                raise GeminiAPIError(f"Gemini generation error: {e}") from e
            raise

        text = response.text
        if not text or not text.strip():
            raise MalformedResponseError("Gemini returned an empty response")
        return text
