"""Record stores -- pluggable persistence surface for the mapping repositories.

- RecordStore: Abstract table-level interface
- SqlRecordStore: Async SQLAlchemy implementation (PostgreSQL, SQLite)
"""

from src.object_sync.mapping.store.base import RecordStore
from src.object_sync.mapping.store.sql import SqlRecordStore

__all__ = [
    "RecordStore",
    "SqlRecordStore",
]
