"""
db/session.py

Lazily created SQLAlchemy engine and request-scoped sessions.

Nothing connects at import time, so modules that only need the ORM models
or the pure scoring code import cleanly without a database.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Generator, Iterator
from contextlib import contextmanager
from dataclasses import dataclass

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from db.config import resolve_database_url

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EnginePoolSettings:
    echo: bool = False
    pool_size: int = 5
    max_overflow: int = 10
    pool_recycle: int = 1800

    @classmethod
    def from_env(cls) -> "EnginePoolSettings":
        return cls(
            echo=(os.getenv("SQL_ECHO") or "").strip().lower() in {"1", "true", "yes", "on"},
            pool_size=_int_env("DB_POOL_SIZE", cls.pool_size),
            max_overflow=_int_env("DB_MAX_OVERFLOW", cls.max_overflow),
            pool_recycle=_int_env("DB_POOL_RECYCLE", cls.pool_recycle),
        )


def _int_env(name: str, default: int) -> int:
    try:
        return int(os.environ[name])
    except (KeyError, ValueError):
        return default


def create_db_engine(pool: EnginePoolSettings | None = None) -> Engine:
    """
    PostgreSQL engine for tracker and QC tables.

    Raises:
        RuntimeError: If no URL is configured or it is not PostgreSQL.
    """

    database_url = resolve_database_url()
    if not database_url.startswith("postgresql"):
        raise RuntimeError("Only PostgreSQL URLs are supported.")

    pool = pool or EnginePoolSettings.from_env()
    logger.info(
        "Creating database engine pool_size=%s max_overflow=%s",
        pool.pool_size,
        pool.max_overflow,
    )
    return create_engine(
        database_url,
        echo=pool.echo,
        pool_pre_ping=True,
        pool_recycle=pool.pool_recycle,
        pool_size=pool.pool_size,
        max_overflow=pool.max_overflow,
    )


_engine: Engine | None = None
_session_factory: sessionmaker | None = None


def get_engine() -> Engine:
    global _engine
    if _engine is None:
        _engine = create_db_engine()
    return _engine


def SessionLocal() -> Session:
    """Open a new session bound to the shared engine."""
    global _session_factory
    if _session_factory is None:
        _session_factory = sessionmaker(
            bind=get_engine(),
            class_=Session,
            autoflush=False,
            expire_on_commit=False,
        )
    return _session_factory()


def get_db() -> Generator[Session, None, None]:
    """
    FastAPI dependency yielding one session per request.

    Services commit; the session is always closed here.
    """

    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def session_scope() -> Iterator[Session]:
    """
    Session for scripts: rolled back if the block raises, always closed.

    Services still decide when to commit.
    """

    db = SessionLocal()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
