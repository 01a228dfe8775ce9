"""AI provider abstraction layer."""

import logging
from abc import ABC, abstractmethod

from ..config import settings
from .exceptions import ProviderNotConfigured

logger = logging.getLogger(__name__)


class AIProvider(ABC):
    """Abstract base class for AI providers."""

    name: str = "unknown"

    @abstractmethod
    def generate(self, prompt: str, system: str | None = None, max_tokens: int | None = None) -> str:
        """Generate text from a prompt."""
        pass


def build_provider(name: str) -> AIProvider:
    """Create a provider by name. Raises ProviderNotConfigured without a key."""
    if name == "groq":
        from .groq import GroqProvider
        return GroqProvider()
    if name == "gemini":
        from .gemini import GeminiProvider
        return GeminiProvider()
    raise ProviderNotConfigured(f"Unknown AI provider: {name}")


# Provider instances, keyed by name
_providers: dict[str, AIProvider] | None = None


def get_providers() -> dict[str, AIProvider]:
    """Get or create every configured provider, primary first."""
    global _providers

    if _providers is None:
        _providers = {}
        for name in (settings.primary_provider, settings.secondary_provider):
            if not name or name in _providers:
                continue
            try:
                _providers[name] = build_provider(name)
            except ProviderNotConfigured as e:
                logger.warning("AI provider %s unavailable: %s", name, e)

    return _providers


def reset_providers() -> None:
    """Reset the providers (useful when switching configuration)."""
    global _providers
    _providers = None
