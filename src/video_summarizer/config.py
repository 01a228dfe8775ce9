"""Configuration settings for video summarizer."""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel
from pydantic_settings import BaseSettings, SettingsConfigDict


class TierLimits(BaseModel):
    """Per-tier usage ceilings."""

    daily: int
    minute: int


def _default_tier_limits() -> dict[str, TierLimits]:
    return {
        "free": TierLimits(daily=3, minute=1),
        "pro": TierLimits(daily=20, minute=3),
        "max": TierLimits(daily=100, minute=10),
    }


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Provider selection
    primary_provider: Literal["gemini", "groq"] = "gemini"
    secondary_provider: Literal["gemini", "groq"] | None = "groq"
    # Tier -> provider override, e.g. {"max": "groq"}
    preferred_provider_by_tier: dict[str, Literal["gemini", "groq"]] = {}

    # Gemini API
    gemini_api_key: str = ""
    gemini_model: str = "gemini-2.0-flash"
    gemini_request_interval: float = 1.0  # seconds between requests

    # Groq API
    groq_api_key: str = ""
    groq_text_model: str = "llama-3.3-70b-versatile"
    groq_request_interval: float = 0.5  # seconds between requests

    ai_timeout: float = 60.0  # seconds per AI call
    ai_max_attempts: int = 2
    short_max_tokens: int = 600
    comprehensive_max_tokens: int = 2048

    # YouTube Data API (metadata)
    youtube_api_key: str = ""
    app_url: str = "https://localhost"

    # Admin routes (usage reset, tier changes) are disabled while empty
    admin_token: str = ""

    # Upstream fetching
    upstream_timeout: float = 15.0  # seconds per HTTP call
    upstream_max_retries: int = 3
    upstream_retry_base_delay: float = 1.0  # seconds, doubled per attempt
    upstream_requests_per_minute: int = 60
    transcript_languages: list[str] = ["en"]

    # Pipeline
    transcript_timeout: float = 90.0  # bound on the whole transcript fetch
    metadata_timeout: float = 30.0
    basic_summary_sentences: int = 3

    # Caching (days)
    transcript_cache_ttl_days: int = 30
    summary_cache_ttl_days: int = 7
    metadata_cache_ttl_days: int = 1

    # Quotas
    tier_limits: dict[str, TierLimits] = _default_tier_limits()
    default_tier: str = "free"
    usage_retention_days: int = 30

    # Paths
    db_path: Path = Path("data/video_summarizer.db")

    # Logging
    log_level: str = "INFO"

    @property
    def database_path(self) -> Path:
        """Get absolute database path."""
        return self.db_path.resolve()


settings = Settings()
