"""SQLAlchemy engine and session management.

Provides a factory for engines (SQLite by default, any SQLAlchemy URL
works), a session factory, schema creation, and a context manager for
scoped sessions that commits on success and rolls back on error.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine as sa_create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from .models import Base

logger = logging.getLogger(__name__)


def create_engine(url: str, *, echo: bool = False) -> Engine:
    """Create and return a new SQLAlchemy :class:`Engine`.

    Args:
        url: Database connection URL, e.g. ``sqlite:///data/catalog.db``.
        echo: If ``True``, log all emitted SQL statements.

    SQLite connections are shared across threads (the stores serialize
    writes themselves); an in-memory SQLite URL gets a single static
    connection so every session sees the same database.
    """
    kwargs: dict = {}
    if url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        if url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool

    engine = sa_create_engine(url, echo=echo, **kwargs)
    logger.info("Created engine for %s", url.split("@")[-1])
    return engine


def create_session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, expire_on_commit=False)


def create_all(engine: Engine) -> None:
    """Create all tables defined in the ORM metadata."""
    Base.metadata.create_all(engine)
    logger.info("Database tables created / verified.")


@contextmanager
def session_scope(factory: sessionmaker[Session]) -> Iterator[Session]:
    """Yield a session scoped to the caller's block.

    Usage::

        with session_scope(factory) as session:
            session.add(record)

    The session is committed on successful exit and rolled back on
    exception. It is always closed afterwards.
    """
    session = factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
