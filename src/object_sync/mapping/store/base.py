"""Record store abstract base class -- the persistence surface the repositories consume.

Every storage backend implements this ABC. Stores work on plain row dicts
keyed by column name and know nothing about field maps or links; the
repositories own serialization and result handling.

Stores raise PersistenceError on failure and UniqueViolationError when a
uniqueness constraint rejects a write.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from typing import Any


class RecordStore(ABC):
    """Abstract interface for table-level storage operations.

    Methods:
        insert: Insert one row, return its generated integer id.
        update: Update rows matching `match`, return the affected row count.
        delete: Delete rows matching `match`, return the affected row count.
        select: Equality/prefix filtered, ordered read.
        describe_columns: Column names of a table.
    """

    @abstractmethod
    async def insert(self, table: str, row: Mapping[str, Any]) -> int:
        """Insert a row, return its id."""
        ...

    @abstractmethod
    async def update(
        self, table: str, row: Mapping[str, Any], match: Mapping[str, Any]
    ) -> int:
        """Update rows matching all `match` columns, return affected count."""
        ...

    @abstractmethod
    async def delete(self, table: str, match: Mapping[str, Any]) -> int:
        """Delete rows matching all `match` columns, return affected count."""
        ...

    @abstractmethod
    async def select(
        self,
        table: str,
        where: Mapping[str, Any] | None = None,
        order_by: Sequence[str] = (),
        starts_with: Mapping[str, str] | None = None,
    ) -> list[dict[str, Any]]:
        """Fetch rows where every `where` column equals its value and every
        `starts_with` column begins with its literal prefix, in `order_by` order."""
        ...

    @abstractmethod
    async def describe_columns(self, table: str) -> list[str]:
        """Return the column names of a table."""
        ...
