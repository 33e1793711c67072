"""SQLAlchemy record store -- async Core statements over the sync tables.

Uses an async_sessionmaker so each operation runs in its own short session.
Constraint violations are reported as UniqueViolationError so the object map
repository can resolve duplicate links; every other database error becomes a
PersistenceError.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

import structlog
from sqlalchemy import Column, MetaData, Table, delete, insert, select, true, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.object_sync.core.database import sync_metadata
from src.object_sync.mapping import models  # noqa: F401 -- registers tables
from src.object_sync.mapping.errors import PersistenceError, UniqueViolationError
from src.object_sync.mapping.store.base import RecordStore

logger = structlog.get_logger(__name__)

_UNIQUE_MARKERS = ("unique", "duplicate")


def _is_unique_violation(exc: IntegrityError) -> bool:
    """Tell uniqueness failures apart from NOT NULL / foreign key failures."""
    message = str(exc.orig).lower()
    return any(marker in message for marker in _UNIQUE_MARKERS)


class SqlRecordStore(RecordStore):
    """RecordStore backed by a relational database through SQLAlchemy.

    Args:
        session_factory: async_sessionmaker producing AsyncSession instances.
        metadata: MetaData holding the table definitions. Defaults to the
            sync tables.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        metadata: MetaData = sync_metadata,
    ) -> None:
        self._session_factory = session_factory
        self._metadata = metadata

    def _table(self, name: str) -> Table:
        try:
            return self._metadata.tables[name]
        except KeyError:
            raise PersistenceError(f"Unknown table: {name}") from None

    @staticmethod
    def _column(table: Table, name: str) -> Column:
        try:
            return table.c[name]
        except KeyError:
            raise PersistenceError(f"Unknown column {name} on {table.name}") from None

    def _conditions(
        self,
        table: Table,
        where: Mapping[str, Any] | None,
        starts_with: Mapping[str, str] | None = None,
    ) -> list[Any]:
        clauses = [self._column(table, key) == value for key, value in (where or {}).items()]
        for key, prefix in (starts_with or {}).items():
            # autoescape keeps "_" in the prefix from acting as a LIKE wildcard
            clauses.append(self._column(table, key).startswith(prefix, autoescape=True))
        return clauses

    async def _write(self, table: Table, stmt: Any) -> Any:
        async with self._session_factory() as session:
            try:
                result = await session.execute(stmt)
                await session.commit()
            except IntegrityError as exc:
                await session.rollback()
                if _is_unique_violation(exc):
                    raise UniqueViolationError(table.name, message=str(exc.orig)) from exc
                raise PersistenceError(f"Write to {table.name} failed: {exc.orig}") from exc
            except SQLAlchemyError as exc:
                await session.rollback()
                logger.error("sql_store.write_failed", table=table.name, error=str(exc))
                raise PersistenceError(f"Write to {table.name} failed: {exc}") from exc
            return result

    async def insert(self, table: str, row: Mapping[str, Any]) -> int:
        tbl = self._table(table)
        for key in row:
            self._column(tbl, key)
        result = await self._write(tbl, insert(tbl).values(**row))
        return int(result.inserted_primary_key[0])

    async def update(
        self, table: str, row: Mapping[str, Any], match: Mapping[str, Any]
    ) -> int:
        tbl = self._table(table)
        for key in row:
            self._column(tbl, key)
        stmt = update(tbl).where(*self._conditions(tbl, match) or [true()]).values(**row)
        result = await self._write(tbl, stmt)
        return result.rowcount

    async def delete(self, table: str, match: Mapping[str, Any]) -> int:
        tbl = self._table(table)
        stmt = delete(tbl).where(*self._conditions(tbl, match) or [true()])
        result = await self._write(tbl, stmt)
        return result.rowcount

    async def select(
        self,
        table: str,
        where: Mapping[str, Any] | None = None,
        order_by: Sequence[str] = (),
        starts_with: Mapping[str, str] | None = None,
    ) -> list[dict[str, Any]]:
        tbl = self._table(table)
        stmt = (
            select(tbl)
            .where(*self._conditions(tbl, where, starts_with) or [true()])
            .order_by(*[self._column(tbl, name) for name in order_by])
        )
        async with self._session_factory() as session:
            try:
                result = await session.execute(stmt)
            except SQLAlchemyError as exc:
                logger.error("sql_store.select_failed", table=table, error=str(exc))
                raise PersistenceError(f"Read from {table} failed: {exc}") from exc
            return [dict(row) for row in result.mappings().all()]

    async def describe_columns(self, table: str) -> list[str]:
        return [column.name for column in self._table(table).columns]
