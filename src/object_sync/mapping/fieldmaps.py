"""Field map repository -- async CRUD for mapping definitions.

Provides FieldMapRepository on top of a RecordStore. Posted definitions are
validated, their field rules resolved against the caller's catalogs, and the
structured collections (rules, triggers, allowed subtypes) serialized via
pydantic model_dump(mode="json"). Loads decode straight back into FieldMapRead.

Also provides the derived queries mapped_field_labels() and
mapped_record_subtypes() used by pull executors to build their remote queries.
"""

from __future__ import annotations

import re
import unicodedata
from collections.abc import Iterable, Mapping
from datetime import datetime, timezone
from typing import Any

import structlog
from pydantic import ValidationError

from src.object_sync.mapping.errors import (
    IncompleteFieldRuleError,
    MappingError,
    PersistenceError,
)
from src.object_sync.mapping.fields import FieldDescriptorResolver
from src.object_sync.mapping.models import FIELD_MAP_TABLE
from src.object_sync.mapping.schemas import (
    NAME_LENGTH,
    REMOTE_SUBTYPE_FIELD,
    FieldDirection,
    FieldMapDefinition,
    FieldMapRead,
    LocalCatalogEntry,
    OperationResult,
    RemoteCatalogEntry,
)
from src.object_sync.mapping.store.base import RecordStore
from src.object_sync.mapping.sync_log import LogSeverity, StructlogSyncLog, SyncLog

logger = structlog.get_logger(__name__)

LocalCatalog = Iterable[LocalCatalogEntry | Mapping[str, Any]]
RemoteCatalog = Iterable[RemoteCatalogEntry | Mapping[str, Any]]


# ── Serialization Helpers ───────────────────────────────────────────────────


def slugify(label: str, max_length: int = NAME_LENGTH) -> str:
    """URL-safe machine name for a field map label."""
    normalized = unicodedata.normalize("NFKD", label).encode("ascii", "ignore").decode("ascii")
    slug = re.sub(r"[^a-z0-9]+", "-", normalized.lower()).strip("-")
    return slug[:max_length].rstrip("-")


def _definition_to_row(
    definition: FieldMapDefinition, resolver: FieldDescriptorResolver
) -> dict[str, Any]:
    """Build a field map row from a validated definition."""
    rules = resolver.resolve_rules(definition.fields)
    if not rules:
        logger.warning(
            "fieldmap.no_usable_fields",
            label=definition.label,
            posted=len(definition.fields),
        )
    prematch_count = sum(1 for rule in rules if rule.is_prematch)
    if prematch_count > 1:
        logger.warning(
            "fieldmap.multiple_prematch_fields",
            label=definition.label,
            count=prematch_count,
        )

    return {
        "label": definition.label,
        "name": slugify(definition.label),
        "local_object_type": definition.local_object_type,
        "remote_object_type": definition.remote_object_type,
        "fields": [rule.model_dump(mode="json") for rule in rules],
        "allowed_remote_subtypes": list(definition.allowed_remote_subtypes),
        "default_remote_subtype": definition.default_remote_subtype,
        "pull_trigger_field": definition.pull_trigger_field,
        "sync_triggers": [trigger.value for trigger in definition.sync_triggers],
        "push_async": definition.push_async,
        "push_drafts": definition.push_drafts,
        "weight": definition.weight,
    }


def _row_to_fieldmap(row: Mapping[str, Any]) -> FieldMapRead | None:
    """Decode a stored row; None when the stored document no longer validates."""
    try:
        return FieldMapRead.model_validate(dict(row))
    except ValidationError as exc:
        logger.error("fieldmap.decode_failed", fieldmap_id=row.get("id"), error=str(exc))
        return None


# ── Derived Queries ─────────────────────────────────────────────────────────


def mapped_record_subtypes(mapping: FieldMapRead) -> list[str]:
    """Remote subtypes a mapping is restricted to; empty when it applies to all."""
    if mapping.applies_universally:
        return []
    return [subtype for subtype in mapping.allowed_remote_subtypes if subtype]


def mapped_field_labels(
    mapping: FieldMapRead,
    directions: Iterable[FieldDirection | str] | None = None,
    subtype_field: str = REMOTE_SUBTYPE_FIELD,
) -> set[str]:
    """Remote field labels a mapping touches in the given directions.

    Multi-valued remote fields contribute every sub-label. When the mapping is
    restricted to specific subtypes, the subtype field is included so pulls
    can filter on it.
    """
    wanted = {FieldDirection(direction) for direction in directions or ()}
    labels: set[str] = set()
    for rule in mapping.fields:
        if wanted and rule.direction not in wanted:
            continue
        labels.update(target.label for target in rule.remote_field.targets())

    if mapped_record_subtypes(mapping):
        labels.add(subtype_field)
    return labels


# ── Repository ──────────────────────────────────────────────────────────────


class FieldMapRepository:
    """Async CRUD operations for field map definitions.

    Writes return OperationResult; reads return None (or an empty list) when
    nothing matches or the store fails.

    Args:
        store: RecordStore holding the field map table.
        sync_log: Operator-facing log. Defaults to StructlogSyncLog.
    """

    def __init__(self, store: RecordStore, sync_log: SyncLog | None = None) -> None:
        self._store = store
        self._sync_log = sync_log or StructlogSyncLog()

    def _prepare(
        self,
        definition: FieldMapDefinition | Mapping[str, Any],
        local_catalog: LocalCatalog,
        remote_catalog: RemoteCatalog,
    ) -> dict[str, Any]:
        try:
            validated = FieldMapDefinition.model_validate(definition)
        except ValidationError as exc:
            raise IncompleteFieldRuleError(f"Invalid field map definition: {exc}") from exc
        try:
            resolver = FieldDescriptorResolver(local_catalog, remote_catalog)
        except ValidationError as exc:
            raise IncompleteFieldRuleError(f"Invalid field catalog entry: {exc}") from exc
        return _definition_to_row(validated, resolver)

    async def create_fieldmap(
        self,
        definition: FieldMapDefinition | Mapping[str, Any],
        local_catalog: LocalCatalog = (),
        remote_catalog: RemoteCatalog = (),
    ) -> OperationResult:
        """Validate, resolve and persist a new field map.

        Args:
            definition: Posted definition (schema or dict).
            local_catalog: Local field catalog used to bind accessor methods.
            remote_catalog: Remote field catalog used to flag updatable fields.

        Returns:
            OperationResult with the new id, or a validation/persistence failure.
        """
        try:
            row = self._prepare(definition, local_catalog, remote_catalog)
            now = datetime.now(timezone.utc)
            row["created"] = now
            row["updated"] = now
            fieldmap_id = await self._store.insert(FIELD_MAP_TABLE, row)
        except MappingError as exc:
            logger.warning("fieldmap.create_failed", error=exc.code, detail=str(exc))
            return OperationResult.failed(exc)

        logger.info("fieldmap.created", fieldmap_id=fieldmap_id, name=row["name"])
        return OperationResult.ok(fieldmap_id)

    async def get_fieldmap(self, fieldmap_id: int) -> FieldMapRead | None:
        """Get a field map by ID."""
        try:
            rows = await self._store.select(FIELD_MAP_TABLE, {"id": fieldmap_id})
        except PersistenceError as exc:
            logger.error("fieldmap.get_failed", fieldmap_id=fieldmap_id, error=str(exc))
            return None
        if not rows:
            return None
        return _row_to_fieldmap(rows[0])

    async def list_fieldmaps(
        self,
        conditions: Mapping[str, Any] | None = None,
        record_subtype: str | None = None,
    ) -> list[FieldMapRead]:
        """List field maps ordered by weight.

        Args:
            conditions: Column equality filters (e.g. local_object_type).
            record_subtype: When given, drop maps restricted to other subtypes.
                Maps with no allowed subtypes, or listing the default-subtype
                marker, always match.

        Returns:
            List of FieldMapRead objects.
        """
        try:
            rows = await self._store.select(
                FIELD_MAP_TABLE, dict(conditions or {}), order_by=("weight", "id")
            )
        except PersistenceError as exc:
            logger.error("fieldmap.list_failed", error=str(exc))
            return []

        fieldmaps: list[FieldMapRead] = []
        for row in rows:
            fieldmap = _row_to_fieldmap(row)
            if fieldmap is None:
                continue
            if record_subtype is not None and not fieldmap.applies_to_subtype(record_subtype):
                continue
            fieldmaps.append(fieldmap)
        return fieldmaps

    async def update_fieldmap(
        self,
        fieldmap_id: int,
        definition: FieldMapDefinition | Mapping[str, Any],
        local_catalog: LocalCatalog = (),
        remote_catalog: RemoteCatalog = (),
    ) -> OperationResult:
        """Replace a field map's definition.

        Returns:
            OperationResult; fails when the definition is invalid, the write
            fails, or no field map has this id.
        """
        try:
            row = self._prepare(definition, local_catalog, remote_catalog)
            row["updated"] = datetime.now(timezone.utc)
            updated = await self._store.update(FIELD_MAP_TABLE, row, {"id": fieldmap_id})
            if updated == 0:
                raise PersistenceError(f"Field map {fieldmap_id} does not exist")
        except MappingError as exc:
            logger.warning(
                "fieldmap.update_failed",
                fieldmap_id=fieldmap_id,
                error=exc.code,
                detail=str(exc),
            )
            return OperationResult.failed(exc)

        logger.info("fieldmap.updated", fieldmap_id=fieldmap_id)
        return OperationResult.ok(fieldmap_id)

    async def delete_fieldmap(self, fieldmap_id: int) -> OperationResult:
        """Delete a field map. Fails when no row was removed."""
        try:
            deleted = await self._store.delete(FIELD_MAP_TABLE, {"id": fieldmap_id})
            if deleted != 1:
                raise PersistenceError(f"Field map {fieldmap_id} does not exist")
        except PersistenceError as exc:
            self._sync_log.log(
                f"Field map {fieldmap_id} could not be deleted",
                detail=str(exc),
                severity=LogSeverity.WARNING,
            )
            return OperationResult.failed(exc)

        logger.info("fieldmap.deleted", fieldmap_id=fieldmap_id)
        return OperationResult.ok(fieldmap_id)
