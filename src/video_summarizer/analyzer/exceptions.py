class AIProviderError(Exception):
    """Base class for AI provider failures."""

    pass


class ProviderNotConfigured(AIProviderError):
    """Raised when a provider has no API key."""

    pass


class MalformedResponseError(AIProviderError):
    """Raised when a provider returns an empty or unusable response."""

    pass


class GeminiAPIError(AIProviderError):
    """Raised when Gemini API returns an error."""

    pass


class GroqAPIError(AIProviderError):
    """Raised when Groq API returns an error."""

    pass
