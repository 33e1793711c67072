"""Async SQLAlchemy engine and session factory for the sync tables.

Provides:
- Base: Declarative base for the field map and object map tables
- get_engine(): Lazily created async engine singleton
- get_sessionmaker(): Session factory consumed by SqlRecordStore
- init_db() / close_db(): Table creation and engine disposal
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import MetaData
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import StaticPool

from src.object_sync.config import get_settings

# ── Module-level engine (lazy init) ────────────────────────────────────────

_engine: AsyncEngine | None = None


def engine_options(url: str) -> dict[str, Any]:
    """Build create_async_engine keyword arguments for a database URL."""
    settings = get_settings()
    if url.startswith("sqlite"):
        options: dict[str, Any] = {
            "echo": settings.DATABASE_ECHO,
            "connect_args": {"check_same_thread": False},
        }
        # In-memory SQLite lives on one connection; share it across sessions
        if ":memory:" in url:
            options["poolclass"] = StaticPool
        return options

    return {
        "echo": settings.DATABASE_ECHO,
        "pool_size": settings.DATABASE_POOL_SIZE,
        "max_overflow": settings.DATABASE_MAX_OVERFLOW,
        "pool_pre_ping": True,
    }


def get_engine() -> AsyncEngine:
    """Get or create the async engine singleton."""
    global _engine
    if _engine is None:
        url = get_settings().DATABASE_URL
        _engine = create_async_engine(url, **engine_options(url))
    return _engine


# ── Declarative Base ────────────────────────────────────────────────────────

sync_metadata = MetaData()


class Base(DeclarativeBase):
    """Base class for the sync mapping tables."""

    metadata = sync_metadata


# ── Session Factory ─────────────────────────────────────────────────────────


def get_sessionmaker() -> async_sessionmaker[AsyncSession]:
    """Session factory bound to the engine singleton."""
    return async_sessionmaker(get_engine(), expire_on_commit=False)


# ── Database Initialization ─────────────────────────────────────────────────


async def init_db() -> None:
    """Create the sync tables if they don't exist."""
    # Registers the mapped tables on sync_metadata
    from src.object_sync.mapping import models  # noqa: F401

    engine = get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    """Dispose of the engine and close all connections."""
    global _engine
    if _engine:
        await _engine.dispose()
        _engine = None
