"""FastAPI routes for video summarizer API."""

import secrets
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Header, HTTPException, Query, Response

from video_summarizer.api.schemas import (
    CachedSummaryResponse,
    ErrorResponse,
    LimitsResponse,
    MetadataResponse,
    QuotaResponse,
    ResetUsageResponse,
    SetTierRequest,
    SummarizeRequest,
    SummarizeResponse,
    TierResponse,
    UsageEventResponse,
)

from .. import __version__
from ..config import settings
from ..interfaces import VideoMetadata
from ..logs import configure_logging
from ..quota import MINUTE_LIMIT_EXCEEDED
from ..service import NO_CAPTIONS, ErrorKind, SummarizationService, SummarizeFailure
from ..storage.accounts import UserTierStore
from ..storage.database import init_db
from ..storage.result import fail_open

_service: SummarizationService | None = None


def get_service() -> SummarizationService:
    """Get or create the shared SummarizationService."""
    global _service
    if _service is None:
        _service = SummarizationService()
    return _service


def get_tier_store() -> UserTierStore:
    return UserTierStore()


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    init_db()
    yield
    # Pending cache and usage writes are flushed, not dropped
    if _service is not None:
        _service.close()


app = FastAPI(
    title="Video Summarizer API",
    description="YouTube video summarization using Gemini/Groq AI",
    version=__version__,
    lifespan=lifespan,
)

_STATUS = {
    ErrorKind.INVALID_URL: 400,
    ErrorKind.INVALID_REQUEST: 400,
    ErrorKind.NOT_AUTHENTICATED: 401,
    ErrorKind.QUOTA_EXCEEDED: 429,
    ErrorKind.INTERNAL_ERROR: 500,
}


def require_user(x_user_id: str | None = Header(default=None)) -> str:
    """Caller identity, set by the authenticating proxy."""
    if not x_user_id:
        raise HTTPException(
            status_code=401,
            detail=ErrorResponse(error=ErrorKind.NOT_AUTHENTICATED.value, message="Authentication required").model_dump(),
        )
    return x_user_id


def require_admin(x_admin_token: str | None = Header(default=None)) -> None:
    """Admin routes need the configured token; with none configured they are off."""
    if not settings.admin_token or not x_admin_token or not secrets.compare_digest(x_admin_token.encode(), settings.admin_token.encode()):
        raise HTTPException(status_code=403, detail="Admin access required")


def _metadata_response(metadata: VideoMetadata) -> MetadataResponse:
    return MetadataResponse(**metadata.to_dict())


def _raise_failure(failure: SummarizeFailure) -> None:
    if failure.error is ErrorKind.TRANSCRIPT_UNAVAILABLE:
        status = 404 if failure.cause == NO_CAPTIONS else 502
    else:
        status = _STATUS[failure.error]

    headers = None
    if failure.error is ErrorKind.QUOTA_EXCEEDED:
        headers = {"Retry-After": "60" if failure.reason == MINUTE_LIMIT_EXCEEDED else "3600"}

    remaining = None
    if failure.remaining is not None:
        remaining = LimitsResponse(daily=failure.remaining.daily, minute=failure.remaining.minute)

    raise HTTPException(
        status_code=status,
        detail=ErrorResponse(
            error=failure.error.value,
            message=failure.message,
            reason=failure.reason,
            remaining=remaining,
        ).model_dump(),
        headers=headers,
    )


@app.get("/")
async def root():
    """API root endpoint."""
    return {"message": "Video Summarizer API", "version": __version__}


@app.post("/summarize", response_model=SummarizeResponse)
def summarize(
    request: SummarizeRequest,
    user_id: str = Depends(require_user),
    service: SummarizationService = Depends(get_service),
    tiers: UserTierStore = Depends(get_tier_store),
):
    """
    Summarize a YouTube video.

    Runs the full pipeline synchronously in the worker thread pool. Degraded
    summaries are successful responses with ``degraded: true``.
    """
    outcome = service.summarize(user_id, tiers.tier_for(user_id), request.url, request.summary_type)
    if isinstance(outcome, SummarizeFailure):
        _raise_failure(outcome)

    return SummarizeResponse(
        video_id=outcome.video_id,
        summary=outcome.summary,
        metadata=_metadata_response(outcome.metadata),
        provider=outcome.provider,
        provider_name=outcome.provider_name,
        summary_type=outcome.summary_type,
        timestamp=outcome.timestamp,
        cached=outcome.cached,
        degraded=outcome.degraded,
        limits=LimitsResponse(daily=outcome.limits.daily, minute=outcome.limits.minute),
    )


@app.get("/summaries/cached", response_model=CachedSummaryResponse)
def cached_summary(
    url: str = Query(...),
    summary_type: str = Query("short"),
    user_id: str = Depends(require_user),
    service: SummarizationService = Depends(get_service),
):
    """Return a cached summary without spending quota."""
    hit = service.check_cache(user_id, url, summary_type)
    if hit is None:
        raise HTTPException(status_code=404, detail="No cached summary")

    return CachedSummaryResponse(
        id=hit.id,
        video_id=hit.metadata.video_id,
        summary=hit.summary.text,
        summary_type=hit.summary.summary_type,
        provider=hit.summary.provider,
        provider_name=hit.summary.provider_name,
        degraded=hit.summary.degraded,
        metadata=_metadata_response(hit.metadata),
        created_at=hit.created_at,
    )


@app.delete("/summaries/{summary_id}", status_code=204)
def delete_summary(
    summary_id: int,
    user_id: str = Depends(require_user),
    service: SummarizationService = Depends(get_service),
):
    """Delete one of the caller's cached summaries."""
    result = service.delete_summary(user_id, summary_id)
    if not result.ok:
        raise HTTPException(status_code=500, detail=result.error.message)
    if not result.value:
        raise HTTPException(status_code=404, detail="Summary not found")
    return Response(status_code=204)


@app.get("/quota", response_model=QuotaResponse)
def quota(
    user_id: str = Depends(require_user),
    service: SummarizationService = Depends(get_service),
    tiers: UserTierStore = Depends(get_tier_store),
):
    """Remaining requests in the current day and minute."""
    tier = tiers.tier_for(user_id)
    limits = service.quota.limits_for(tier)
    decision = service.quota_status(user_id, tier)
    return QuotaResponse(
        user_id=user_id,
        tier=tier,
        daily_limit=limits.daily,
        minute_limit=limits.minute,
        remaining_daily=decision.remaining.daily,
        remaining_minute=decision.remaining.minute,
    )


@app.get("/usage", response_model=list[UsageEventResponse])
def usage(
    limit: int = Query(50, ge=1, le=500),
    user_id: str = Depends(require_user),
    service: SummarizationService = Depends(get_service),
):
    """The caller's most recent usage events."""
    events = fail_open(service.usage_history(user_id, limit), [], user_id=user_id)
    return [
        UsageEventResponse(video_id=e.video_id, action=e.action, timestamp=e.timestamp, counted=e.counted)
        for e in events
    ]


@app.post("/admin/usage/{user_id}/reset", response_model=ResetUsageResponse, dependencies=[Depends(require_admin)])
def reset_usage(user_id: str, service: SummarizationService = Depends(get_service)):
    """Stop counting a user's usage events toward quota."""
    result = service.reset_usage(user_id)
    if not result.ok:
        raise HTTPException(status_code=500, detail=result.error.message)
    return ResetUsageResponse(user_id=user_id, reset_events=result.value)


@app.put("/admin/users/{user_id}/tier", response_model=TierResponse, dependencies=[Depends(require_admin)])
def set_tier(user_id: str, request: SetTierRequest, tiers: UserTierStore = Depends(get_tier_store)):
    """Set a user's subscription tier."""
    try:
        result = tiers.set_tier(user_id, request.tier)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if not result.ok:
        raise HTTPException(status_code=500, detail=result.error.message)
    return TierResponse(user_id=user_id, tier=request.tier)
