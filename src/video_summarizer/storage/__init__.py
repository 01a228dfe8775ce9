"""Storage module for caches, the usage ledger and user tiers."""

from .accounts import UserTierStore
from .cache import MetadataCache, SummaryCache, SummaryKey, TranscriptCache
from .database import get_engine, get_session, init_db
from .ledger import UsageLedger, UsageRecorder
from .models import CachedMetadata, CachedSummary, CachedTranscript, UsageEvent, UserAccount

__all__ = [
    "get_engine",
    "get_session",
    "init_db",
    "MetadataCache",
    "SummaryCache",
    "SummaryKey",
    "TranscriptCache",
    "UsageLedger",
    "UsageRecorder",
    "UserTierStore",
    "CachedMetadata",
    "CachedSummary",
    "CachedTranscript",
    "UsageEvent",
    "UserAccount",
]
