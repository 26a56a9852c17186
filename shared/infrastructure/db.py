"""
Database configuration and session management.
Uses SQLAlchemy 2.0 patterns.
"""

import os
from collections.abc import Generator
from contextlib import contextmanager
from typing import Any

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session

from shared.config.settings import DATABASE_URL


def _calculate_pool_size() -> int:
    """
    Pool size from CPU cores: (2 * cores) + 1, capped at 20.
    """
    cores = os.cpu_count() or 4
    return min(cores * 2 + 1, 20)


def engine_options(url: str) -> dict[str, Any]:
    """Engine keyword arguments appropriate for the database behind ``url``."""
    if url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}
    return {
        "pool_pre_ping": True,
        "pool_size": _calculate_pool_size(),
        "max_overflow": 15,
        "pool_timeout": 30,
        "pool_recycle": 1800,
    }


engine = create_engine(DATABASE_URL, echo=False, **engine_options(DATABASE_URL))

SessionLocal = sessionmaker(
    bind=engine,
    autoflush=False,
    autocommit=False,
    expire_on_commit=False,
)


def get_db() -> Generator[Session, None, None]:
    """
    FastAPI dependency for database sessions.

    Usage:
        def get_foo_service(db: Session = Depends(get_db)) -> FooService:
            return FooService(db)

    The session is closed after the request completes.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def get_db_context() -> Generator[Session, None, None]:
    """
    Context manager for database sessions outside of FastAPI.

    Usage:
        with get_db_context() as db:
            FooService(db).count(None, None)
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def safe_commit(db: Session) -> None:
    """
    Commit, rolling back before re-raising if the commit fails.
    """
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
