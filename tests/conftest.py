"""Shared fixtures for the mapping core tests.

Provides:
- Catalogs mirroring a small local "post" type and a remote "Contact" object
- An aiosqlite-backed SqlRecordStore over a fresh in-memory database
- A mock SyncLog for asserting operator-facing log entries
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from unittest.mock import MagicMock

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from src.object_sync.core.database import Base, engine_options
from src.object_sync.mapping.store import SqlRecordStore
from src.object_sync.mapping.sync_log import SyncLog

SQLITE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture
def local_catalog() -> list[dict]:
    return [
        {
            "key": "title",
            "methods": {
                "create": "create_post",
                "read": "get_post",
                "update": "update_post",
                "delete": "delete_post",
            },
        },
        {
            "key": "email",
            "methods": {
                "create": "create_post_meta",
                "read": "get_post_meta",
                "update": "update_post_meta",
                "delete": "delete_post_meta",
            },
        },
        {
            "key": "address",
            "methods": {
                "create": "create_post_meta",
                "read": "get_post_meta",
                "update": "update_post_meta",
                "delete": "delete_post_meta",
            },
        },
    ]


@pytest.fixture
def remote_catalog() -> list[dict]:
    return [
        {"name": "Name", "updateable": True},
        {"name": "Email", "updateable": True},
        {"name": "MailingStreet", "updateable": True},
        {"name": "MailingCity", "updateable": True},
        {"name": "CreatedDate", "updateable": False},
    ]


@pytest.fixture
def sync_log() -> MagicMock:
    return MagicMock(spec=SyncLog)


@pytest_asyncio.fixture
async def session_factory() -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """Session factory over a fresh in-memory SQLite database."""
    engine = create_async_engine(SQLITE_URL, **engine_options(SQLITE_URL))
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, expire_on_commit=False)
    await engine.dispose()


@pytest.fixture
def store(session_factory) -> SqlRecordStore:
    return SqlRecordStore(session_factory)
