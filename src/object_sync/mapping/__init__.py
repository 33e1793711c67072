"""Mapping and reconciliation core -- field maps, object links, value translation.

Provides:
- FieldDescriptorResolver: Binds posted field keys to catalog metadata
- FieldMapRepository: Stores administrator-configured field maps
- ObjectMapRepository: Stores runtime links, temporary ids, duplicate resolution
- map_params: Translates a changed record into the opposite system's parameters
- ReconciliationAuditor: Reports links stuck on a temporary id

Push/pull executors are external callers: they load a field map, translate,
write to the other system, then record the link.
"""

from src.object_sync.mapping.auditor import ReconciliationAuditor
from src.object_sync.mapping.fieldmaps import (
    FieldMapRepository,
    mapped_field_labels,
    mapped_record_subtypes,
)
from src.object_sync.mapping.fields import FieldDescriptorResolver
from src.object_sync.mapping.objectmaps import ObjectMapRepository
from src.object_sync.mapping.sync_log import LogSeverity, StructlogSyncLog, SyncLog
from src.object_sync.mapping.translation import map_params

__all__ = [
    "FieldDescriptorResolver",
    "FieldMapRepository",
    "ObjectMapRepository",
    "ReconciliationAuditor",
    "SyncLog",
    "StructlogSyncLog",
    "LogSeverity",
    "map_params",
    "mapped_field_labels",
    "mapped_record_subtypes",
]
