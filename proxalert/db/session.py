"""Database session management."""

from __future__ import annotations

from typing import Any

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from proxalert.core.config import settings


def engine_options(database_url: str, timeout: float) -> dict[str, Any]:
    """Keyword arguments for create_engine with a bounded wait on the database."""
    if database_url.startswith("sqlite"):
        # Engine work runs on worker threads, so SQLite must allow cross-thread use.
        # `timeout` is how long a writer waits on a locked database.
        return {"connect_args": {"check_same_thread": False, "timeout": timeout}}
    return {
        "pool_timeout": timeout,
        "connect_args": {"connect_timeout": max(1, int(timeout))},
    }


engine = create_engine(
    settings.database_url,
    pool_pre_ping=True,
    echo=settings.debug,
    **engine_options(settings.database_url, settings.db_timeout_seconds),
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
    """Dependency for FastAPI to get DB session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
