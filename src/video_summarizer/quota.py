"""Tier-aware admission control over the usage ledger."""

import logging
from datetime import datetime
from typing import Callable

from .config import TierLimits, settings
from .interfaces import QuotaDecision, QuotaRemaining
from .storage.ledger import UsageLedger
from .storage.models import utcnow
from .storage.result import fail_open

logger = logging.getLogger(__name__)

DAILY_LIMIT_EXCEEDED = "daily_limit_exceeded"
MINUTE_LIMIT_EXCEEDED = "minute_limit_exceeded"


def start_of_day(now: datetime) -> datetime:
    return now.replace(hour=0, minute=0, second=0, microsecond=0)


def start_of_minute(now: datetime) -> datetime:
    return now.replace(second=0, microsecond=0)


class QuotaGate:
    """Daily and per-minute ceilings per tier.

    Counting and recording are separate steps: two concurrent requests near a
    ceiling can both be admitted before either is recorded. On a ledger error
    the request is allowed and the failure logged.
    """

    def __init__(
        self,
        ledger: UsageLedger,
        tier_limits: dict[str, TierLimits] | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.ledger = ledger
        self.tier_limits = tier_limits or settings.tier_limits
        self.clock = clock

    def limits_for(self, tier: str) -> TierLimits:
        limits = self.tier_limits.get(tier)
        if limits is None:
            logger.warning("Unknown tier %r, applying %s limits", tier, settings.default_tier)
            limits = self.tier_limits[settings.default_tier]
        return limits

    def check(self, user_id: str, tier: str) -> QuotaDecision:
        limits = self.limits_for(tier)
        now = self.clock()

        used_today = fail_open(self.ledger.count_since(user_id, start_of_day(now)), None, user_id=user_id)
        used_minute = None
        if used_today is not None:
            used_minute = fail_open(
                self.ledger.count_since(user_id, start_of_minute(now)), None, user_id=user_id
            )
        if used_today is None or used_minute is None:
            logger.warning("Quota unknown, allowing request user_id=%s tier=%s", user_id, tier)
            return QuotaDecision(
                allowed=True,
                remaining=QuotaRemaining(daily=limits.daily, minute=limits.minute),
                fail_open=True,
            )

        remaining = QuotaRemaining(
            daily=max(limits.daily - used_today, 0),
            minute=max(limits.minute - used_minute, 0),
        )
        if used_today >= limits.daily:
            return QuotaDecision(allowed=False, remaining=remaining, reason=DAILY_LIMIT_EXCEEDED)
        if used_minute >= limits.minute:
            return QuotaDecision(allowed=False, remaining=remaining, reason=MINUTE_LIMIT_EXCEEDED)
        return QuotaDecision(allowed=True, remaining=remaining)
