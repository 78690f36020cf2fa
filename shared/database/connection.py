"""
Database engine and session management for the FitLog record store.

Engines and session factories are built explicitly and handed to the
repositories; nothing here connects at import time.
"""

import logging
from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import QueuePool, StaticPool


logger = logging.getLogger(__name__)

DEFAULT_DATABASE_URL = "sqlite:///fitlog.db"

# Base class for all models
Base = declarative_base()


def build_engine(database_url: str | None = None, echo: bool = False) -> Engine:
    """Create an engine for ``database_url``.

    SQLite URLs get a thread-tolerant connection; ``sqlite://`` and
    ``:memory:`` URLs share one connection so every session sees the same
    in-memory database.
    """
    url = database_url or DEFAULT_DATABASE_URL
    if url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
        return create_engine(url, echo=echo, **kwargs)

    return create_engine(
        url,
        poolclass=QueuePool,
        pool_size=5,
        max_overflow=10,
        pool_pre_ping=True,
        pool_recycle=3600,
        echo=echo,
    )


def build_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)


@contextmanager
def session_scope(factory: sessionmaker) -> Generator[Session, None, None]:
    """
    Context manager for database sessions.
    Rolls back on error and always closes the session.
    """
    db = factory()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def test_connection(engine: Engine) -> bool:
    """Test database connectivity"""
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.warning(f"Database connectivity check failed: {e}")
        return False


def create_all_tables(engine: Engine) -> None:
    """Create all tables defined in models"""
    from . import models  # noqa: F401  registers the tables on Base
    Base.metadata.create_all(bind=engine)


def drop_all_tables(engine: Engine) -> None:
    """Drop all tables (use with caution!)"""
    from . import models  # noqa: F401
    Base.metadata.drop_all(bind=engine)
