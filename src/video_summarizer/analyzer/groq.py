"""Groq API provider for text generation."""

import time

from groq import Groq
from tenacity import retry, retry_if_exception, stop_after_attempt, wait_exponential

from ..config import settings
from .exceptions import GroqAPIError, MalformedResponseError, ProviderNotConfigured
from .provider import AIProvider


def _should_retry(exception: Exception) -> bool:
    """Determine if we should retry based on exception type."""
    if isinstance(exception, (GroqAPIError, MalformedResponseError)):
        return False

    error_str = str(exception).lower()
    # Common Groq error messages/types that shouldn't be retried
    non_retryable = [
        "api_key",
        "invalid",
        "unauthorized",
        "forbidden",
        "quota",
        "not found",
        "bad request",
        "400",
        "401",
        "403",
    ]
    return not any(term in error_str for term in non_retryable)


class GroqProvider(AIProvider):
    """Groq API provider using Llama models."""

    name = "groq"

    def __init__(self):
        if not settings.groq_api_key:
            raise ProviderNotConfigured("GROQ_API_KEY environment variable not set")

        self.client = Groq(api_key=settings.groq_api_key, timeout=settings.ai_timeout, max_retries=0)
        self._last_request_time: float = 0

    def _wait_for_rate_limit(self) -> None:
        """Wait if necessary to respect rate limits."""
        elapsed = time.time() - self._last_request_time
        if elapsed < settings.groq_request_interval:
            time.sleep(settings.groq_request_interval - elapsed)

    @retry(
        stop=stop_after_attempt(settings.ai_max_attempts),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        retry=retry_if_exception(_should_retry),
        reraise=True,
    )
    def generate(self, prompt: str, system: str | None = None, max_tokens: int | None = None) -> str:
        """Generate text using Llama."""
        self._wait_for_rate_limit()

        try:
            messages = []
            if system:
                messages.append({"role": "system", "content": system})
            messages.append({"role": "user", "content": prompt})

            response = self.client.chat.completions.create(
                model=settings.groq_text_model,
                messages=messages,
                max_tokens=max_tokens or 4096,
                temperature=0.3,
            )

            self._last_request_time = time.time()

        except Exception as e:
            if not _should_retry(e):
                raise GroqAPIError(f"Groq generation error: {e}") from e
            raise

        if not response.choices or not (response.choices[0].message.content or "").strip():
            raise MalformedResponseError("Groq returned an empty response")
        return response.choices[0].message.content
