"""Object map repository -- runtime links between local and remote records.

Each link ties one local record (local_object_type, local_id) to one remote
record (remote_id). While a create is in flight on either side, the id that
system has not returned yet is a temporary placeholder from
generate_temporary_id(); links still holding one after the executor finishes
are reported by failed_links().

Creation is idempotent per remote id: the unique constraint on remote_id
rejects the second insert and the repository resolves it to the existing link.
"""

from __future__ import annotations

import uuid
from collections.abc import Mapping
from datetime import datetime, timezone
from enum import Enum
from typing import Any

import structlog
from pydantic import BaseModel, ValidationError

from src.object_sync.mapping.errors import (
    AmbiguousLinkError,
    DuplicateLinkError,
    InvalidTemporaryLinkError,
    PersistenceError,
    UniqueViolationError,
)
from src.object_sync.mapping.models import OBJECT_MAP_TABLE
from src.object_sync.mapping.schemas import (
    PENDING_ACTION,
    PULL_TEMP_PREFIX,
    PUSH_TEMP_PREFIX,
    FailedLinks,
    LinkStatus,
    ObjectMapCreate,
    ObjectMapRead,
    ObjectMapUpdate,
    OperationResult,
    SyncOperation,
)
from src.object_sync.mapping.store.base import RecordStore
from src.object_sync.mapping.sync_log import LogSeverity, StructlogSyncLog, SyncLog

logger = structlog.get_logger(__name__)

# Transient create-time keys accepted alongside the table columns.
TRANSIENT_KEYS = frozenset({"action"})

_ORDERING = ("object_updated", "created", "id")

_TEMP_PREFIXES = {
    SyncOperation.PUSH: PUSH_TEMP_PREFIX,
    SyncOperation.PULL: PULL_TEMP_PREFIX,
}


def _as_fields(link_fields: BaseModel | Mapping[str, Any]) -> dict[str, Any]:
    if isinstance(link_fields, BaseModel):
        return link_fields.model_dump(exclude_unset=True)
    return dict(link_fields)


def _plain(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value


class ObjectMapRepository:
    """Async operations for object map links.

    Args:
        store: RecordStore holding the object map table.
        sync_log: Operator-facing log for link anomalies. Defaults to
            StructlogSyncLog.
    """

    def __init__(self, store: RecordStore, sync_log: SyncLog | None = None) -> None:
        self._store = store
        self._sync_log = sync_log or StructlogSyncLog()

    # ── Temporary Ids ───────────────────────────────────────────────────

    @staticmethod
    def generate_temporary_id(direction: SyncOperation | str) -> str:
        """Unique placeholder id for a create that has not resolved yet.

        Args:
            direction: "push" yields a remote placeholder, "pull" a local one.
        """
        return f"{_TEMP_PREFIXES[SyncOperation(direction)]}{uuid.uuid4().hex}"

    # ── Writes ──────────────────────────────────────────────────────────

    async def _columns(self) -> set[str]:
        return set(await self._store.describe_columns(OBJECT_MAP_TABLE))

    async def create_object_map(
        self, link_fields: ObjectMapCreate | Mapping[str, Any]
    ) -> OperationResult:
        """Persist a new link.

        Keys that are neither table columns nor transient keys are dropped.
        A push placeholder in remote_id is refused unless action is "pending".
        A second link for an already linked remote id resolves to the existing
        row and is reported with duplicate=True.

        Returns:
            OperationResult with the link id (new or existing), or a failure.
        """
        fields = _as_fields(link_fields)
        try:
            columns = await self._columns()
        except PersistenceError as exc:
            return OperationResult.failed(exc)

        action = fields.get("action")
        row = {
            key: _plain(value)
            for key, value in fields.items()
            if key in columns and key != "id" and key not in TRANSIENT_KEYS
        }

        remote_id = str(row.get("remote_id") or "")
        if remote_id.startswith(PUSH_TEMP_PREFIX) and action != PENDING_ACTION:
            error = InvalidTemporaryLinkError(
                row.get("local_object_type"), row.get("local_id"), remote_id
            )
            self._sync_log.log(
                str(error),
                detail=(
                    "The remote create has not returned a permanent id; "
                    "pass action='pending' to store the placeholder."
                ),
                severity=LogSeverity.ERROR,
                status=LinkStatus.ERROR,
                local_object_type=row.get("local_object_type"),
                local_id=row.get("local_id"),
                remote_id=remote_id,
            )
            return OperationResult.failed(error)

        now = datetime.now(timezone.utc)
        row["created"] = now
        row.setdefault("object_updated", now)

        try:
            link_id = await self._store.insert(OBJECT_MAP_TABLE, row)
        except UniqueViolationError as exc:
            return await self._resolve_duplicate(remote_id, exc)
        except PersistenceError as exc:
            logger.error("objectmap.create_failed", remote_id=remote_id, error=str(exc))
            return OperationResult.failed(exc)

        logger.info(
            "objectmap.created",
            link_id=link_id,
            local_object_type=row.get("local_object_type"),
            pending=action == PENDING_ACTION,
        )
        return OperationResult.ok(link_id)

    async def _resolve_duplicate(
        self, remote_id: str, violation: UniqueViolationError
    ) -> OperationResult:
        existing = await self.load_by_remote(remote_id) if remote_id else None
        if existing is None:
            logger.error("objectmap.create_failed", remote_id=remote_id, error=str(violation))
            return OperationResult.failed(violation)

        duplicate = DuplicateLinkError(remote_id, existing.id)
        self._sync_log.log(
            str(duplicate),
            severity=LogSeverity.NOTICE,
            status=LinkStatus.SUCCESS,
            remote_id=remote_id,
            link_id=existing.id,
        )
        return OperationResult.ok(existing.id, duplicate=True, detail=str(duplicate))

    async def update_object_map(
        self, link_fields: ObjectMapUpdate | Mapping[str, Any], link_id: int
    ) -> OperationResult:
        """Update a link, stamping object_updated when the caller omits it.

        Returns:
            OperationResult; fails when the write fails or the link is gone.
        """
        fields = _as_fields(link_fields)
        try:
            columns = await self._columns()
            row = {
                key: _plain(value)
                for key, value in fields.items()
                if key in columns and key != "id"
            }
            if row.get("object_updated") is None:
                row["object_updated"] = datetime.now(timezone.utc)

            updated = await self._store.update(OBJECT_MAP_TABLE, row, {"id": link_id})
            if updated == 0:
                raise PersistenceError(f"Object map {link_id} does not exist")
        except PersistenceError as exc:
            logger.warning("objectmap.update_failed", link_id=link_id, error=str(exc))
            return OperationResult.failed(exc)

        logger.debug("objectmap.updated", link_id=link_id, fields=sorted(row))
        return OperationResult.ok(link_id)

    async def delete_object_map(self, link_id: int) -> OperationResult:
        """Delete a link. Fails when no row was removed."""
        try:
            deleted = await self._store.delete(OBJECT_MAP_TABLE, {"id": link_id})
            if deleted != 1:
                raise PersistenceError(f"Object map {link_id} does not exist")
        except PersistenceError as exc:
            logger.warning("objectmap.delete_failed", link_id=link_id, error=str(exc))
            return OperationResult.failed(exc)

        logger.info("objectmap.deleted", link_id=link_id)
        return OperationResult.ok(link_id)

    # ── Reads ───────────────────────────────────────────────────────────

    @staticmethod
    def _decode(rows: list[dict[str, Any]]) -> list[ObjectMapRead]:
        links: list[ObjectMapRead] = []
        for row in rows:
            try:
                links.append(ObjectMapRead.model_validate(row))
            except ValidationError as exc:
                logger.error("objectmap.decode_failed", link_id=row.get("id"), error=str(exc))
        return links

    async def _select(
        self,
        where: Mapping[str, Any] | None = None,
        starts_with: Mapping[str, str] | None = None,
    ) -> list[ObjectMapRead]:
        try:
            rows = await self._store.select(
                OBJECT_MAP_TABLE,
                {key: _plain(value) for key, value in (where or {}).items()},
                order_by=_ORDERING,
                starts_with=starts_with,
            )
        except PersistenceError as exc:
            logger.error("objectmap.select_failed", error=str(exc))
            return []
        return self._decode(rows)

    async def get_object_maps(
        self, conditions: Mapping[str, Any] | None = None
    ) -> list[ObjectMapRead]:
        """Links matching column equality conditions, oldest change first."""
        return await self._select(conditions)

    async def load_by_local(
        self, local_object_type: str, local_id: str
    ) -> ObjectMapRead | None:
        """Link for a local record, or None."""
        links = await self._select(
            {"local_object_type": local_object_type, "local_id": str(local_id)}
        )
        return links[0] if links else None

    async def load_by_remote(self, remote_id: str) -> ObjectMapRead | None:
        """Link for a remote record, or None.

        Several links for one remote id should not exist; when they do, the
        anomaly is logged and the first by repository ordering is returned.
        """
        links = await self._select({"remote_id": remote_id})
        if len(links) > 1:
            ambiguous = AmbiguousLinkError(
                remote_id, [(link.local_object_type, link.local_id) for link in links]
            )
            self._sync_log.log(
                str(ambiguous),
                detail=ambiguous.detail,
                severity=LogSeverity.NOTICE,
                status=LinkStatus.SUCCESS,
                remote_id=remote_id,
                link_ids=[link.id for link in links],
            )
        return links[0] if links else None

    async def failed_links(self) -> FailedLinks:
        """Links whose create never resolved, bucketed by executor."""
        return FailedLinks(
            push_errors=await self._select(starts_with={"remote_id": PUSH_TEMP_PREFIX}),
            pull_errors=await self._select(starts_with={"local_id": PULL_TEMP_PREFIX}),
        )

    async def failed_link(self, link_id: int) -> ObjectMapRead | None:
        """Single link by id, for inspecting one entry of failed_links()."""
        links = await self._select({"id": link_id})
        return links[0] if links else None
