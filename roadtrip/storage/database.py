"""
Async SQLAlchemy engine and session setup.
Any async dialect works; SQLite (aiosqlite) for local runs and tests,
PostgreSQL (asyncpg) in production.
"""

import logging

from sqlalchemy import event
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import StaticPool

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Declarative base for all tables."""
    pass


def create_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    """
    Create the async engine.

    SQLite only honours ON DELETE CASCADE with foreign_keys enabled per
    connection, so the pragma is set on every connect.
    """
    url = make_url(database_url)
    kwargs = {}
    if url.get_backend_name() == "sqlite" and url.database in (None, "", ":memory:"):
        # One shared connection, otherwise every connection sees its own empty database
        kwargs["poolclass"] = StaticPool
    engine = create_async_engine(database_url, echo=echo, **kwargs)

    if engine.dialect.name == "sqlite":
        @event.listens_for(engine.sync_engine, "connect")
        def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return engine


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory; objects stay readable after commit."""
    return async_sessionmaker(engine, expire_on_commit=False)


async def init_db(engine: AsyncEngine):
    """Create tables that do not exist yet."""
    # Import registers the tables on Base.metadata
    from . import models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info(f"Database ready ({engine.dialect.name})")
