"""Tests for the RecordStore implementations.

Runs SqlRecordStore against a fresh in-memory SQLite database (aiosqlite)
built from the same metadata as the production tables.
"""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from src.object_sync.mapping.errors import PersistenceError, UniqueViolationError
from src.object_sync.mapping.models import FIELD_MAP_TABLE, OBJECT_MAP_TABLE

NOW = datetime(2026, 3, 1, tzinfo=timezone.utc)


def _row(**overrides) -> dict:
    defaults = {
        "local_id": "1",
        "local_object_type": "post",
        "remote_id": "003A",
        "created": NOW,
        "object_updated": NOW,
    }
    defaults.update(overrides)
    return defaults


# ── Writes ─────────────────────────────────────────────────────────────────


class TestRecordStoreWrites:
    async def test_insert_assigns_ids(self, store):
        first = await store.insert(OBJECT_MAP_TABLE, _row())
        second = await store.insert(OBJECT_MAP_TABLE, _row(remote_id="003B"))

        assert second == first + 1

    async def test_unique_violation(self, store):
        await store.insert(OBJECT_MAP_TABLE, _row())

        with pytest.raises(UniqueViolationError):
            await store.insert(OBJECT_MAP_TABLE, _row(local_id="2"))

    async def test_not_null_is_plain_persistence_error(self, store):
        with pytest.raises(PersistenceError) as exc_info:
            await store.insert(OBJECT_MAP_TABLE, _row(remote_id=None))

        assert not isinstance(exc_info.value, UniqueViolationError)

    async def test_unknown_column_rejected(self, store):
        with pytest.raises(PersistenceError):
            await store.insert(OBJECT_MAP_TABLE, _row(bogus="x"))

    async def test_unknown_table_rejected(self, store):
        with pytest.raises(PersistenceError):
            await store.select("no_such_table")

    async def test_update_and_delete_rowcounts(self, store):
        row_id = await store.insert(OBJECT_MAP_TABLE, _row())

        assert await store.update(OBJECT_MAP_TABLE, {"local_id": "9"}, {"id": row_id}) == 1
        assert await store.update(OBJECT_MAP_TABLE, {"local_id": "9"}, {"id": 404}) == 0
        assert await store.delete(OBJECT_MAP_TABLE, {"id": row_id}) == 1
        assert await store.delete(OBJECT_MAP_TABLE, {"id": row_id}) == 0

    async def test_json_columns_round_trip(self, store):
        row_id = await store.insert(
            FIELD_MAP_TABLE,
            {
                "label": "Post",
                "name": "post",
                "local_object_type": "post",
                "remote_object_type": "Contact",
                "default_remote_subtype": "default",
                "allowed_remote_subtypes": ["012A"],
                "fields": [{"local_field": {"label": "title"}}],
                "sync_triggers": ["local_create"],
                "push_async": False,
                "push_drafts": True,
                "weight": 3,
            },
        )

        rows = await store.select(FIELD_MAP_TABLE, {"id": row_id})

        assert rows[0]["fields"] == [{"local_field": {"label": "title"}}]
        assert rows[0]["allowed_remote_subtypes"] == ["012A"]
        assert rows[0]["push_drafts"] is True


# ── Reads ──────────────────────────────────────────────────────────────────


class TestRecordStoreReads:
    async def test_select_where_and_order(self, store):
        await store.insert(OBJECT_MAP_TABLE, _row(remote_id="B", local_id="2"))
        await store.insert(OBJECT_MAP_TABLE, _row(remote_id="A", local_id="1"))
        await store.insert(OBJECT_MAP_TABLE, _row(remote_id="C", local_object_type="user"))

        rows = await store.select(
            OBJECT_MAP_TABLE, {"local_object_type": "post"}, order_by=["remote_id"]
        )

        assert [row["remote_id"] for row in rows] == ["A", "B"]

    async def test_starts_with_escapes_wildcards(self, store):
        await store.insert(OBJECT_MAP_TABLE, _row(remote_id="tmp_remote_1"))
        await store.insert(OBJECT_MAP_TABLE, _row(remote_id="tmpAremote_2"))
        await store.insert(OBJECT_MAP_TABLE, _row(remote_id="x_tmp_remote_3"))

        rows = await store.select(OBJECT_MAP_TABLE, starts_with={"remote_id": "tmp_remote_"})

        assert [row["remote_id"] for row in rows] == ["tmp_remote_1"]

    async def test_describe_columns(self, store):
        columns = await store.describe_columns(OBJECT_MAP_TABLE)

        assert "remote_id" in columns
        assert "action" not in columns


class TestRowIsolation:
    async def test_rows_are_copied(self, store):
        row = {
            "label": "Post",
            "name": "post",
            "local_object_type": "post",
            "remote_object_type": "Contact",
            "default_remote_subtype": "default",
            "allowed_remote_subtypes": [],
            "fields": [],
            "sync_triggers": [],
            "push_async": False,
            "push_drafts": False,
            "weight": 0,
        }
        row_id = await store.insert(FIELD_MAP_TABLE, row)
        row["fields"].append("mutated")

        selected = await store.select(FIELD_MAP_TABLE, {"id": row_id})
        selected[0]["fields"].append("mutated")

        assert (await store.select(FIELD_MAP_TABLE))[0]["fields"] == []
