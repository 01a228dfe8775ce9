"""Usage ledger: append-only usage events and window counts."""

import logging
from datetime import datetime, timedelta
from typing import Callable

from sqlalchemy import delete, func, update
from sqlalchemy.engine import Engine
from sqlmodel import select

from ..config import settings
from .database import get_session
from .models import UsageEvent, utcnow
from .result import StorageResult, attempt, fail_open

logger = logging.getLogger(__name__)


class UsageLedger:
    """Narrow accessor over the usage event table."""

    def __init__(self, engine: Engine | None = None, clock: Callable[[], datetime] = utcnow):
        self.engine = engine
        self.clock = clock

    def append(self, user_id: str, video_id: str, action: str = "summarize") -> StorageResult[int]:
        def _append() -> int:
            with get_session(self.engine) as session:
                event = UsageEvent(user_id=user_id, video_id=video_id, action=action, timestamp=self.clock())
                session.add(event)
                session.commit()
                session.refresh(event)
                return event.id

        return attempt("usage append", _append)

    def count_since(self, user_id: str, since: datetime) -> StorageResult[int]:
        """Count counted events for a user in [since, now]."""

        def _count() -> int:
            with get_session(self.engine) as session:
                statement = select(func.count()).select_from(UsageEvent).where(
                    UsageEvent.user_id == user_id,
                    UsageEvent.counted == True,  # noqa: E712
                    UsageEvent.timestamp >= since,
                    UsageEvent.timestamp <= self.clock(),
                )
                return session.exec(statement).one()

        return attempt("usage count", _count)

    def reset_usage(self, user_id: str, since: datetime | None = None) -> StorageResult[int]:
        """Stop counting a user's events without deleting them."""

        def _reset() -> int:
            with get_session(self.engine) as session:
                statement = update(UsageEvent).where(
                    UsageEvent.user_id == user_id, UsageEvent.counted == True  # noqa: E712
                )
                if since is not None:
                    statement = statement.where(UsageEvent.timestamp >= since)
                result = session.execute(statement.values(counted=False))
                session.commit()
                return result.rowcount or 0

        return attempt("usage reset", _reset)

    def events_for(self, user_id: str, limit: int = 50) -> StorageResult[list[UsageEvent]]:
        """Most recent events for a user, newest first."""

        def _events() -> list[UsageEvent]:
            with get_session(self.engine) as session:
                statement = (
                    select(UsageEvent)
                    .where(UsageEvent.user_id == user_id)
                    .order_by(UsageEvent.timestamp.desc())
                    .limit(limit)
                )
                return list(session.exec(statement).all())

        return attempt("usage history", _events)

    def purge_older_than(self, days: int | None = None) -> StorageResult[int]:
        """Delete events outside the retention period."""
        days = settings.usage_retention_days if days is None else days
        cutoff = self.clock() - timedelta(days=days)

        def _purge() -> int:
            with get_session(self.engine) as session:
                result = session.execute(delete(UsageEvent).where(UsageEvent.timestamp < cutoff))
                session.commit()
                return result.rowcount or 0

        return attempt("usage purge", _purge)


class UsageRecorder:
    """Best-effort usage recording; never raises."""

    def __init__(self, ledger: UsageLedger):
        self.ledger = ledger

    def record(self, user_id: str, video_id: str, action: str = "summarize") -> None:
        event_id = fail_open(
            self.ledger.append(user_id, video_id, action), None, user_id=user_id, video_id=video_id
        )
        if event_id is not None:
            logger.debug("Usage recorded user_id=%s video_id=%s event_id=%s", user_id, video_id, event_id)
