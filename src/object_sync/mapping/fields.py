"""Field descriptor resolution against the local and remote field catalogs.

Posted field rules only carry field keys. Before a rule is persisted, the
local key is resolved to its create/read/update/delete method bindings and the
remote name to its updatable flag, so translation never needs the catalogs.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

import structlog

from src.object_sync.mapping.schemas import (
    FieldRule,
    FieldRuleInput,
    LocalCatalogEntry,
    LocalField,
    LocalFieldMethods,
    RemoteCatalogEntry,
    RemoteField,
    RemoteFieldEntry,
)

logger = structlog.get_logger(__name__)


def _clean(value: Any) -> str:
    return str(value).strip() if value is not None else ""


class FieldDescriptorResolver:
    """Resolves posted field keys to stored field descriptors.

    Catalog entries may be schema instances or plain dicts. When a key occurs
    more than once, the first entry wins.

    Args:
        local_catalog: Fields the local system exposes ({key, methods}).
        remote_catalog: Fields the remote system exposes ({name, updateable}).
    """

    def __init__(
        self,
        local_catalog: Iterable[LocalCatalogEntry | Mapping[str, Any]] = (),
        remote_catalog: Iterable[RemoteCatalogEntry | Mapping[str, Any]] = (),
    ) -> None:
        self._local: dict[str, LocalCatalogEntry] = {}
        for raw in local_catalog:
            entry = LocalCatalogEntry.model_validate(raw)
            self._local.setdefault(entry.key, entry)

        self._remote: dict[str, RemoteCatalogEntry] = {}
        for raw in remote_catalog:
            entry = RemoteCatalogEntry.model_validate(raw)
            self._remote.setdefault(entry.name, entry)

    def resolve_local(self, key: str) -> LocalField:
        """Resolve a local field key to its label and method bindings.

        Unknown keys resolve to empty bindings; the local writer then has no
        accessor for the field.
        """
        entry = self._local.get(key)
        if entry is None:
            logger.warning("field_resolver.unknown_local_field", key=key)
            return LocalField(label=key, methods=LocalFieldMethods())
        return LocalField(label=key, methods=entry.methods.model_copy())

    def resolve_remote(self, name: str) -> RemoteFieldEntry:
        """Resolve a remote field name to its label and updatable flag.

        Unknown names are treated as not updatable so pushes never write them.
        """
        entry = self._remote.get(name)
        if entry is None:
            logger.warning("field_resolver.unknown_remote_field", name=name)
            return RemoteFieldEntry(label=name, updateable=False)
        return RemoteFieldEntry(label=name, updateable=entry.updateable)

    def resolve_rule(self, rule: FieldRuleInput | Mapping[str, Any]) -> FieldRule | None:
        """Build a persisted FieldRule from a posted one.

        Returns None for rules marked is_delete and for incomplete rules
        (blank local label or no remote label).
        """
        posted = FieldRuleInput.model_validate(rule)
        if posted.is_delete:
            return None

        local_label = _clean(posted.local_field)
        if isinstance(posted.remote_field, list):
            remote_labels = [_clean(name) for name in posted.remote_field]
            remote_labels = [name for name in remote_labels if name]
        else:
            remote_labels = [_clean(posted.remote_field)] if _clean(posted.remote_field) else []

        if not local_label or not remote_labels:
            logger.debug(
                "field_resolver.incomplete_rule_dropped",
                local_field=local_label,
                remote_field=posted.remote_field,
            )
            return None

        if isinstance(posted.remote_field, list):
            remote = RemoteField(entries=[self.resolve_remote(name) for name in remote_labels])
        else:
            entry = self.resolve_remote(remote_labels[0])
            remote = RemoteField(label=entry.label, updateable=entry.updateable)

        return FieldRule(
            local_field=self.resolve_local(local_label),
            remote_field=remote,
            direction=posted.direction,
            is_key=posted.is_key,
            is_prematch=posted.is_prematch,
        )

    def resolve_rules(
        self, rules: Iterable[FieldRuleInput | Mapping[str, Any]]
    ) -> list[FieldRule]:
        """Resolve posted rules in order, dropping deleted and incomplete ones."""
        resolved: list[FieldRule] = []
        for rule in rules:
            field_rule = self.resolve_rule(rule)
            if field_rule is not None:
                resolved.append(field_rule)
        return resolved
