"""Database engine and session management."""

from contextlib import contextmanager
from typing import Generator

from sqlalchemy.engine import Engine
from sqlmodel import SQLModel, Session, create_engine

from ..config import settings

# Create engine lazily
_engine: Engine | None = None


def get_engine() -> Engine:
    """Get or create database engine."""
    global _engine
    if _engine is None:
        settings.database_path.parent.mkdir(parents=True, exist_ok=True)
        _engine = create_engine(
            f"sqlite:///{settings.database_path}",
            echo=False,
            connect_args={"check_same_thread": False},
        )
    return _engine


def init_db(engine: Engine | None = None) -> None:
    """Initialize database tables."""
    SQLModel.metadata.create_all(engine or get_engine())


@contextmanager
def get_session(engine: Engine | None = None) -> Generator[Session, None, None]:
    """Get database session context manager."""
    with Session(engine or get_engine()) as session:
        yield session
