"""Pydantic schemas for the mapping core -- triggers, field rules, field maps, object maps.

Defines all structured types shared by the repositories and the translation engine:
- Enums: TriggerOrigin, SyncTrigger, FieldDirection, SyncOperation, LinkStatus
- Catalogs: LocalCatalogEntry, RemoteCatalogEntry (consumed from the field UIs)
- Field rules: LocalFieldMethods, LocalField, RemoteFieldEntry, RemoteField, FieldRule
- Field maps: FieldRuleInput, FieldMapDefinition (posted), FieldMapRead (stored)
- Object maps: ObjectMapCreate, ObjectMapUpdate, ObjectMapRead
- Results: OperationResult, FailedLinks

Field rules, triggers and allowed subtypes are stored as structured JSON via
model_dump(mode="json") and decoded once at load via model_validate().
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator

from src.object_sync.mapping.errors import MappingError

# ── Constants ───────────────────────────────────────────────────────────────

# Subtype marker meaning "this mapping applies regardless of remote subtype" when
# listed in allowed_remote_subtypes. Also the default subtype for new remote records.
DEFAULT_REMOTE_SUBTYPE = "default"

# Remote field carrying the record subtype; requested on pull when a mapping
# restricts subtypes.
REMOTE_SUBTYPE_FIELD = "RecordTypeId"

# Max length for a field map name.
NAME_LENGTH = 128

# Temporary identifier prefixes. A push writes into the remote system, so the
# remote id is the placeholder; a pull writes locally, so the local id is.
PUSH_TEMP_PREFIX = "tmp_remote_"
PULL_TEMP_PREFIX = "tmp_local_"

# Transient action marking a link that intentionally carries a temporary id.
PENDING_ACTION = "pending"


# ── Enums ───────────────────────────────────────────────────────────────────


class TriggerOrigin(str, Enum):
    """Which system initiated a sync event."""

    LOCAL = "local"
    REMOTE = "remote"


class SyncTrigger(str, Enum):
    """The six events that can fire a field map."""

    LOCAL_CREATE = "local_create"
    LOCAL_UPDATE = "local_update"
    LOCAL_DELETE = "local_delete"
    REMOTE_CREATE = "remote_create"
    REMOTE_UPDATE = "remote_update"
    REMOTE_DELETE = "remote_delete"

    @property
    def origin(self) -> TriggerOrigin:
        """Origin set this trigger belongs to."""
        if self in LOCAL_TRIGGERS:
            return TriggerOrigin.LOCAL
        return TriggerOrigin.REMOTE

    @property
    def bit(self) -> int:
        """Legacy bit flag for this trigger."""
        return _TRIGGER_BITS[self]

    @classmethod
    def from_bit(cls, bit: int) -> SyncTrigger:
        for trigger, value in _TRIGGER_BITS.items():
            if value == bit:
                return trigger
        raise ValueError(f"Unknown sync trigger bit: {bit:#06x}")

    @classmethod
    def from_mask(cls, mask: int) -> list[SyncTrigger]:
        """Decode a legacy trigger bitmask into trigger members (declaration order)."""
        return [trigger for trigger in cls if mask & _TRIGGER_BITS[trigger]]

    @staticmethod
    def to_mask(triggers: Any) -> int:
        """Encode trigger members as a legacy bitmask."""
        mask = 0
        for trigger in triggers:
            mask |= SyncTrigger(trigger).bit
        return mask


LOCAL_TRIGGERS = frozenset(
    {SyncTrigger.LOCAL_CREATE, SyncTrigger.LOCAL_UPDATE, SyncTrigger.LOCAL_DELETE}
)
REMOTE_TRIGGERS = frozenset(
    {SyncTrigger.REMOTE_CREATE, SyncTrigger.REMOTE_UPDATE, SyncTrigger.REMOTE_DELETE}
)

_TRIGGER_BITS: dict[SyncTrigger, int] = {
    SyncTrigger.LOCAL_CREATE: 0x0001,
    SyncTrigger.LOCAL_UPDATE: 0x0002,
    SyncTrigger.LOCAL_DELETE: 0x0004,
    SyncTrigger.REMOTE_CREATE: 0x0008,
    SyncTrigger.REMOTE_UPDATE: 0x0010,
    SyncTrigger.REMOTE_DELETE: 0x0020,
}


class FieldDirection(str, Enum):
    """Which way values flow for a single field rule."""

    LOCAL_TO_REMOTE = "local_to_remote"
    REMOTE_TO_LOCAL = "remote_to_local"
    SYNC = "sync"

    def accepts(self, origin: TriggerOrigin) -> bool:
        """Whether a trigger from `origin` should move values along this direction."""
        return self in _DIRECTIONS_BY_ORIGIN[origin]


_DIRECTIONS_BY_ORIGIN: dict[TriggerOrigin, frozenset[FieldDirection]] = {
    TriggerOrigin.LOCAL: frozenset({FieldDirection.LOCAL_TO_REMOTE, FieldDirection.SYNC}),
    TriggerOrigin.REMOTE: frozenset({FieldDirection.REMOTE_TO_LOCAL, FieldDirection.SYNC}),
}


class SyncOperation(str, Enum):
    """Executor operation that may need a temporary identifier."""

    PUSH = "push"
    PULL = "pull"


class LinkStatus(str, Enum):
    """Outcome of the most recent sync attempt for a link."""

    SUCCESS = "success"
    ERROR = "error"


# ── Field Catalogs ──────────────────────────────────────────────────────────


class LocalFieldMethods(BaseModel):
    """Local-side accessor bindings for one field."""

    create: str | None = None
    read: str | None = None
    update: str | None = None
    delete: str | None = None


class LocalCatalogEntry(BaseModel):
    """One field the local system exposes for mapping."""

    key: str
    methods: LocalFieldMethods = Field(default_factory=LocalFieldMethods)


class RemoteCatalogEntry(BaseModel):
    """One field the remote system exposes for mapping."""

    name: str
    updateable: bool = False


# ── Field Rules ─────────────────────────────────────────────────────────────


class LocalField(BaseModel):
    """Local side of a field rule."""

    label: str
    methods: LocalFieldMethods = Field(default_factory=LocalFieldMethods)


class RemoteFieldEntry(BaseModel):
    """A single remote field label and whether the remote API accepts writes to it."""

    label: str
    updateable: bool = False


class RemoteField(BaseModel):
    """Remote side of a field rule.

    Single-valued fields use `label`/`updateable`. Multi-valued fields
    (relations storing a collection of remote fields) use `entries` instead.
    """

    label: str | None = None
    updateable: bool = False
    entries: list[RemoteFieldEntry] = Field(default_factory=list)

    @property
    def is_multi_valued(self) -> bool:
        return bool(self.entries)

    def targets(self) -> list[RemoteFieldEntry]:
        """Flattened remote labels this rule reads from or writes to."""
        if self.entries:
            return list(self.entries)
        if self.label:
            return [RemoteFieldEntry(label=self.label, updateable=self.updateable)]
        return []


class FieldRule(BaseModel):
    """One persisted field correspondence inside a field map."""

    local_field: LocalField
    remote_field: RemoteField
    direction: FieldDirection = FieldDirection.SYNC
    is_key: bool = False
    is_prematch: bool = False


# ── Field Map Schemas ───────────────────────────────────────────────────────


class FieldRuleInput(BaseModel):
    """Posted field rule, before catalog resolution.

    `remote_field` is a list of names for multi-valued remote fields.
    `is_delete` marks the rule for removal; such rules are never persisted.
    """

    local_field: str = ""
    remote_field: str | list[str] = ""
    direction: FieldDirection = FieldDirection.SYNC
    is_key: bool = False
    is_prematch: bool = False
    is_delete: bool = False


def _triggers_from_input(value: Any) -> Any:
    """Accept a legacy bitmask, a list of bit values, or a list of trigger names."""
    if value is None:
        return []
    if isinstance(value, bool):
        raise ValueError("sync_triggers must be a bitmask or a list of triggers")
    if isinstance(value, int):
        return SyncTrigger.from_mask(value)
    if isinstance(value, dict):
        value = list(value.values())
    triggers: list[Any] = []
    for item in value:
        if isinstance(item, int) and not isinstance(item, bool):
            triggers.append(SyncTrigger.from_bit(item))
        elif isinstance(item, str) and item.isdigit():
            triggers.append(SyncTrigger.from_bit(int(item)))
        else:
            triggers.append(item)
    return triggers


def _subtypes_from_input(value: Any) -> Any:
    """Accept a posted dict or list of subtypes, dropping empty entries."""
    if value is None:
        return []
    if isinstance(value, dict):
        value = list(value.values())
    if isinstance(value, str):
        value = [value]
    return [item for item in value if item]


class FieldMapDefinition(BaseModel):
    """Posted field map definition (what the configuration UI submits)."""

    label: str = Field(min_length=1)
    local_object_type: str = Field(min_length=1)
    remote_object_type: str = Field(min_length=1)
    fields: list[FieldRuleInput] = Field(default_factory=list)
    allowed_remote_subtypes: list[str] = Field(default_factory=list)
    default_remote_subtype: str = DEFAULT_REMOTE_SUBTYPE
    pull_trigger_field: str | None = None
    sync_triggers: list[SyncTrigger] = Field(default_factory=list)
    push_async: bool = False
    push_drafts: bool = False
    weight: int = 0

    @field_validator("sync_triggers", mode="before")
    @classmethod
    def coerce_triggers(cls, value: Any) -> Any:
        return _triggers_from_input(value)

    @field_validator("allowed_remote_subtypes", mode="before")
    @classmethod
    def coerce_subtypes(cls, value: Any) -> Any:
        return _subtypes_from_input(value)


class FieldMapRead(BaseModel):
    """Stored field map, decoded and ready for translation."""

    id: int
    label: str
    name: str
    local_object_type: str
    remote_object_type: str
    fields: list[FieldRule] = Field(default_factory=list)
    allowed_remote_subtypes: list[str] = Field(default_factory=list)
    default_remote_subtype: str = DEFAULT_REMOTE_SUBTYPE
    pull_trigger_field: str | None = None
    sync_triggers: list[SyncTrigger] = Field(default_factory=list)
    push_async: bool = False
    push_drafts: bool = False
    weight: int = 0
    created: datetime | None = None
    updated: datetime | None = None

    @field_validator("sync_triggers", mode="before")
    @classmethod
    def coerce_triggers(cls, value: Any) -> Any:
        return _triggers_from_input(value)

    @field_validator("allowed_remote_subtypes", mode="before")
    @classmethod
    def coerce_subtypes(cls, value: Any) -> Any:
        return _subtypes_from_input(value)

    @property
    def is_usable(self) -> bool:
        """A field map with no rules cannot be translated."""
        return bool(self.fields)

    @property
    def trigger_mask(self) -> int:
        """Legacy bitmask view of sync_triggers."""
        return SyncTrigger.to_mask(self.sync_triggers)

    @property
    def applies_universally(self) -> bool:
        """No allowed subtypes, or the default-subtype marker among them."""
        allowed = self.allowed_remote_subtypes
        return not allowed or DEFAULT_REMOTE_SUBTYPE in allowed

    def fires_on(self, trigger: SyncTrigger) -> bool:
        """Whether this map is configured to run for `trigger`."""
        return SyncTrigger(trigger) in self.sync_triggers

    def applies_to_subtype(self, subtype: str) -> bool:
        return self.applies_universally or subtype in self.allowed_remote_subtypes


# ── Object Map Schemas ──────────────────────────────────────────────────────


class ObjectMapCreate(BaseModel):
    """Link creation payload. `action` is transient and never persisted."""

    local_id: str
    local_object_type: str
    remote_id: str
    last_sync: datetime | None = None
    last_sync_action: str | None = None
    last_sync_status: LinkStatus | None = None
    last_sync_message: str | None = None
    action: str | None = None


class ObjectMapUpdate(BaseModel):
    """Link update payload (all fields optional)."""

    local_id: str | None = None
    local_object_type: str | None = None
    remote_id: str | None = None
    object_updated: datetime | None = None
    last_sync: datetime | None = None
    last_sync_action: str | None = None
    last_sync_status: LinkStatus | None = None
    last_sync_message: str | None = None


class ObjectMapRead(BaseModel):
    """Stored link between one local record and one remote record."""

    id: int
    local_id: str
    local_object_type: str
    remote_id: str
    created: datetime | None = None
    object_updated: datetime | None = None
    last_sync: datetime | None = None
    last_sync_action: str | None = None
    last_sync_status: LinkStatus | None = None
    last_sync_message: str | None = None

    @property
    def is_push_pending(self) -> bool:
        """Remote create issued but never acknowledged with a permanent id."""
        return self.remote_id.startswith(PUSH_TEMP_PREFIX)

    @property
    def is_pull_pending(self) -> bool:
        """Local create issued but never acknowledged with a permanent id."""
        return self.local_id.startswith(PULL_TEMP_PREFIX)


# ── Results ─────────────────────────────────────────────────────────────────


class OperationResult(BaseModel):
    """Explicit success/failure signal returned by every repository write."""

    success: bool
    id: int | None = None
    error: str | None = None
    detail: str = ""
    duplicate: bool = False

    @classmethod
    def ok(cls, id: int | None = None, **kwargs: Any) -> OperationResult:
        return cls(success=True, id=id, **kwargs)

    @classmethod
    def failed(cls, error: MappingError) -> OperationResult:
        return cls(success=False, error=error.code, detail=str(error))


class FailedLinks(BaseModel):
    """Links whose create never resolved, split by the executor that left them."""

    push_errors: list[ObjectMapRead] = Field(default_factory=list)
    pull_errors: list[ObjectMapRead] = Field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.push_errors) + len(self.pull_errors)

    @property
    def has_failures(self) -> bool:
        return self.total > 0
