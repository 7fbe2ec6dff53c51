"""
Database Infrastructure
=======================

Manages the async engine and session lifecycle for the PostgreSQL
database that holds the historical ticket table.

Uses SQLAlchemy 2.0 with asyncpg.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from helpdesk.config import Settings, settings as default_settings


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""


# Global engine and session maker
_engine: AsyncEngine | None = None
_session_maker: async_sessionmaker[AsyncSession] | None = None


def get_engine() -> AsyncEngine:
    """
    Get the database engine.

    Raises:
        RuntimeError: If engine has not been initialized
    """
    if _engine is None:
        raise RuntimeError("Database engine not initialized. Call init_database() first.")
    return _engine


def get_session_maker() -> async_sessionmaker[AsyncSession]:
    """Get the session factory created by init_database()."""
    if _session_maker is None:
        raise RuntimeError("Database not initialized. Call init_database() first.")
    return _session_maker


def init_database(config: Optional[Settings] = None) -> AsyncEngine:
    """
    Initialize the database engine and session maker.

    Should be called during application startup. Creating the engine does
    not open a connection, so this succeeds even when PostgreSQL is down.
    """
    global _engine, _session_maker

    config = config or default_settings

    # asyncpg expects ssl= rather than libpq's sslmode=
    database_url = config.database_url.replace("sslmode=", "ssl=")

    _engine = create_async_engine(
        database_url,
        echo=config.debug,
        pool_size=config.db_pool_size,
        max_overflow=config.db_max_overflow,
        pool_pre_ping=True,
    )
    _session_maker = async_sessionmaker(
        bind=_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
    return _engine


async def close_database() -> None:
    """Dispose of pooled connections. Called during application shutdown."""
    global _engine, _session_maker

    if _engine is not None:
        await _engine.dispose()
        _engine = None
        _session_maker = None


@asynccontextmanager
async def get_session_context() -> AsyncGenerator[AsyncSession, None]:
    """
    Async context manager for one unit of work.

    Commits on success and rolls back on any exception.

    Usage:
        async with get_session_context() as session:
            result = await session.execute(select(HistoricalTicketModel))
    """
    async with get_session_maker()() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def create_tables() -> None:
    """
    Create all database tables.

    Development convenience only; the embedding column is added
    separately by the store once the vector extension exists.
    """
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
