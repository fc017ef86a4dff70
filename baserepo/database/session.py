"""
Engine and session handling for repositories.

Nothing connects at import time. The shared engine is built from
``settings.database_url`` the first time it is asked for, and
``dispose_engine()`` drops it so the next call rebuilds it (e.g. after the
URL changes in tests).

Usage:
    with get_db_context() as db:
        PostRepository(db, autocommit=False).create({"title": "Hello"})
"""

import os
from contextlib import contextmanager
from typing import Generator, Optional

from sqlalchemy import Engine, MetaData, create_engine, event
from sqlalchemy.engine import make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from baserepo.config import settings
from baserepo.core.logging import get_logger

logger = get_logger(__name__)

_engine: Optional[Engine] = None
_session_factory: Optional[sessionmaker] = None


def create_db_engine(database_url: Optional[str] = None, echo: Optional[bool] = None) -> Engine:
    """
    Build a new engine.

    SQLite URLs get foreign keys enforced on every connection. In-memory
    databases share one connection (StaticPool) so every session sees the
    same tables; file databases get their directory created and WAL mode.

    Args:
        database_url: Defaults to settings.database_url
        echo: Log SQL; defaults to settings.app_debug
    """
    url = make_url(database_url or settings.database_url)
    echo = settings.app_debug if echo is None else echo

    if url.get_backend_name() != "sqlite":
        engine = create_engine(url, echo=echo)
    else:
        in_memory = url.database in (None, "", ":memory:")
        if not in_memory:
            db_dir = os.path.dirname(url.database)
            if db_dir:
                os.makedirs(db_dir, exist_ok=True)

        engine = create_engine(
            url,
            echo=echo,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool if in_memory else None,
        )
        event.listen(engine, "connect", _sqlite_pragmas(wal=not in_memory))

    logger.debug("Created engine for %s", url.render_as_string(hide_password=True))
    return engine


def _sqlite_pragmas(wal: bool):
    def on_connect(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        if wal:
            cursor.execute("PRAGMA journal_mode=WAL")
        cursor.close()
    return on_connect


def get_engine() -> Engine:
    """Return the shared engine, creating it from settings on first use."""
    global _engine
    if _engine is None:
        _engine = create_db_engine()
    return _engine


def get_session_factory() -> sessionmaker:
    """Return the sessionmaker bound to the shared engine."""
    global _session_factory
    if _session_factory is None:
        _session_factory = sessionmaker(bind=get_engine(), autoflush=False)
    return _session_factory


def dispose_engine() -> None:
    """Close the shared engine's connections and forget it."""
    global _engine, _session_factory
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _session_factory = None


@contextmanager
def get_db_context() -> Generator[Session, None, None]:
    """Session that commits on success and rolls back on any exception."""
    db = get_session_factory()()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def get_db() -> Generator[Session, None, None]:
    """Session generator for dependency-injection frameworks; the caller commits."""
    db = get_session_factory()()
    try:
        yield db
    finally:
        db.close()


def _metadata(metadata: Optional[MetaData]) -> MetaData:
    if metadata is not None:
        return metadata
    from baserepo.models.base import Base
    return Base.metadata


def create_all_tables(engine: Optional[Engine] = None, metadata: Optional[MetaData] = None) -> None:
    """Create every table registered on metadata (default: Base.metadata)."""
    _metadata(metadata).create_all(bind=engine or get_engine())


def drop_all_tables(engine: Optional[Engine] = None, metadata: Optional[MetaData] = None) -> None:
    """Drop every table registered on metadata (default: Base.metadata)."""
    _metadata(metadata).drop_all(bind=engine or get_engine())
