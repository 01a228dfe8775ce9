from datetime import datetime
from typing import Literal

from pydantic import BaseModel


class SummarizeRequest(BaseModel):
    url: str
    summary_type: Literal["short", "comprehensive"] = "short"


class MetadataResponse(BaseModel):
    video_id: str
    title: str
    thumbnail_url: str
    channel_title: str | None = None
    published_at: str | None = None
    duration_iso: str | None = None
    degraded: bool = False


class LimitsResponse(BaseModel):
    daily: int
    minute: int


class SummarizeResponse(BaseModel):
    video_id: str
    summary: str
    metadata: MetadataResponse
    provider: str
    provider_name: str
    summary_type: str
    timestamp: datetime
    cached: bool
    degraded: bool
    limits: LimitsResponse


class ErrorResponse(BaseModel):
    error: str
    message: str
    reason: str | None = None
    remaining: LimitsResponse | None = None


class CachedSummaryResponse(BaseModel):
    id: int
    video_id: str
    summary: str
    summary_type: str
    provider: str
    provider_name: str
    degraded: bool
    metadata: MetadataResponse
    created_at: datetime


class QuotaResponse(BaseModel):
    user_id: str
    tier: str
    daily_limit: int
    minute_limit: int
    remaining_daily: int
    remaining_minute: int


class UsageEventResponse(BaseModel):
    video_id: str
    action: str
    timestamp: datetime
    counted: bool


class ResetUsageResponse(BaseModel):
    user_id: str
    reset_events: int


class SetTierRequest(BaseModel):
    tier: str


class TierResponse(BaseModel):
    user_id: str
    tier: str
