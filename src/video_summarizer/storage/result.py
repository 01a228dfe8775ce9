"""Typed results for storage operations.

Storage failures never fail a summarization. Every accessor returns a
``StorageResult`` and callers decide, through ``fail_open``, what value stands
in for an unreachable store.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Generic, TypeVar

from sqlalchemy.exc import SQLAlchemyError

T = TypeVar("T")

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StorageError:
    """Describes a failed storage operation."""

    operation: str
    message: str


@dataclass(frozen=True)
class StorageResult(Generic[T]):
    value: T | None = None
    error: StorageError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def attempt(operation: str, fn: Callable[..., T], *args, **kwargs) -> StorageResult[T]:
    """Run a storage call, capturing database errors as a StorageError."""
    try:
        return StorageResult(value=fn(*args, **kwargs))
    except (SQLAlchemyError, OSError) as e:
        return StorageResult(error=StorageError(operation=operation, message=str(e)))


def fail_open(result: StorageResult[T], default: T, **context) -> T:
    """Unwrap a result, logging the error and substituting ``default``."""
    if result.ok:
        return result.value
    details = " ".join(f"{k}={v}" for k, v in context.items())
    logger.error(
        "Storage operation %s failed, continuing without it: %s %s",
        result.error.operation, result.error.message, details,
    )
    return default
