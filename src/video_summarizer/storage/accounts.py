"""User tier lookup."""

from sqlalchemy.engine import Engine

from ..config import settings
from .database import get_session
from .models import UserAccount, utcnow
from .result import StorageResult, attempt, fail_open


class UserTierStore:
    """Reads and writes the tier stored for a user."""

    def __init__(self, engine: Engine | None = None):
        self.engine = engine

    def get_tier(self, user_id: str) -> StorageResult[str | None]:
        def _get() -> str | None:
            with get_session(self.engine) as session:
                account = session.get(UserAccount, user_id)
                return account.tier if account else None

        return attempt("tier lookup", _get)

    def tier_for(self, user_id: str) -> str:
        """Tier for a user; unknown users and lookup failures get the default tier."""
        return fail_open(self.get_tier(user_id), None, user_id=user_id) or settings.default_tier

    def set_tier(self, user_id: str, tier: str) -> StorageResult[None]:
        if tier not in settings.tier_limits:
            raise ValueError(f"Unknown tier: {tier}")

        def _set() -> None:
            with get_session(self.engine) as session:
                account = session.get(UserAccount, user_id) or UserAccount(user_id=user_id)
                account.tier = tier
                account.updated_at = utcnow()
                session.add(account)
                session.commit()

        return attempt("tier update", _set)
