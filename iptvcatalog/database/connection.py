"""
Database connection and session management.

Ingestion writes through a synchronous SQLAlchemy Session; the same
factory backs the FastAPI ``get_db`` dependency.
"""

import logging
from collections.abc import Generator
from typing import Any, Optional

from sqlalchemy import Engine, create_engine, event
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import QueuePool, StaticPool

from iptvcatalog.config import get_config
from iptvcatalog.database.models.base import Base

logger = logging.getLogger(__name__)

_sync_engine: Optional[Engine] = None
_sync_session_factory: Optional[sessionmaker] = None


def _get_pool_kwargs(url: str) -> dict[str, Any]:
    """Get pool configuration for the database type."""
    if "sqlite" in url:
        # Single shared connection; the app and the ingestion task use one file
        return {
            "poolclass": StaticPool,
            "connect_args": {"check_same_thread": False},
        }

    return {
        "poolclass": QueuePool,
        "pool_size": 10,
        "max_overflow": 20,
        "pool_timeout": 60,
        "pool_recycle": 3600,  # 1 hour
        "pool_pre_ping": True,
    }


def enable_sqlite_foreign_keys(engine: Engine) -> None:
    """Turn on FK enforcement (and ON DELETE CASCADE) for every SQLite connection."""
    if engine.dialect.name != "sqlite":
        return

    @event.listens_for(engine, "connect")
    def on_connect(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def init_sync_db(url: str | None = None) -> None:
    """Initialize the database engine and create tables."""
    global _sync_engine, _sync_session_factory

    config = get_config()
    database_url = url or config.database.url
    pool_kwargs = _get_pool_kwargs(database_url)

    _sync_engine = create_engine(
        database_url,
        echo=config.database.echo,
        **pool_kwargs,
    )
    enable_sqlite_foreign_keys(_sync_engine)

    _sync_session_factory = sessionmaker(
        _sync_engine,
        class_=Session,
        expire_on_commit=False,
    )

    Base.metadata.create_all(_sync_engine)
    logger.info(f"Database initialized: {_sync_engine.url.render_as_string(hide_password=True)}")


def get_sync_session_factory() -> sessionmaker:
    """Get the session factory, initializing the database on first use."""
    if _sync_session_factory is None:
        init_sync_db()
    return _sync_session_factory


def get_sync_session() -> Session:
    """Get a new database session. The caller closes it."""
    return get_sync_session_factory()()


def get_db() -> Generator[Session, None, None]:
    """FastAPI dependency for database sessions."""
    session = get_sync_session()
    try:
        yield session
    finally:
        session.close()


def close_db() -> None:
    """Dispose of the engine and reset the session factory."""
    global _sync_engine, _sync_session_factory

    if _sync_engine is not None:
        _sync_engine.dispose()
        logger.info("Database connections closed")
    _sync_engine = None
    _sync_session_factory = None
