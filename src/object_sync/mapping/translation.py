"""Value translation between the local and remote systems.

map_params() turns one changed record into the parameter set to write into the
opposite system, following each field rule's direction and the origin of the
trigger. It performs no I/O and never mutates its inputs.

Output shape, local-origin trigger (writing into remote):
    {"<remote label>": value, ..., "key": {...}, "prematch": {...}}

Output shape, remote-origin trigger (writing into local):
    {"<local label>": {"value": v, "method_modify": m, "method_read": r}, ...,
     "key": {...}, "prematch": {...}}

"key" and "prematch" are side-channels for the executor: the key identifies
the counterpart for upserts, the prematch is looked up before creating.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from src.object_sync.mapping.schemas import (
    FieldMapRead,
    FieldRule,
    RemoteFieldEntry,
    SyncTrigger,
    TriggerOrigin,
)

KEY_PARAM = "key"
PREMATCH_PARAM = "prematch"


def _method_for_trigger(rule: FieldRule, trigger: SyncTrigger) -> str | None:
    methods = rule.local_field.methods
    if trigger == SyncTrigger.REMOTE_CREATE:
        return methods.create
    if trigger == SyncTrigger.REMOTE_UPDATE:
        return methods.update
    if trigger == SyncTrigger.REMOTE_DELETE:
        return methods.delete
    return None


def _map_into_remote(
    params: dict[str, Any],
    rule: FieldRule,
    source: Mapping[str, Any],
    full_payload: bool,
) -> None:
    local_label = rule.local_field.label
    value = source.get(local_label)

    # Remote APIs reject writes to non-updatable fields
    targets: list[RemoteFieldEntry] = [
        target for target in rule.remote_field.targets() if target.updateable
    ]
    for target in targets:
        params[target.label] = value

        reference = {
            "remote_field": target.label,
            "local_field": local_label,
            "value": value,
        }
        if rule.is_key:
            # Keep the key out of the body to avoid upsert errors, but tell the
            # executor which field identifies the record
            if not full_payload:
                params.pop(target.label, None)
            params[KEY_PARAM] = reference
        if rule.is_prematch:
            params[PREMATCH_PARAM] = dict(reference)


def _map_into_local(
    params: dict[str, Any],
    rule: FieldRule,
    source: Mapping[str, Any],
    trigger: SyncTrigger,
    full_payload: bool,
) -> None:
    local_label = rule.local_field.label
    methods = rule.local_field.methods
    targets = rule.remote_field.targets()
    if not targets:
        return

    if rule.remote_field.is_multi_valued:
        remote_label: str | list[str] = [target.label for target in targets]
        value: Any = [source.get(target.label) for target in targets]
    else:
        remote_label = targets[0].label
        value = source.get(remote_label)

    params[local_label] = {
        "value": value,
        "method_modify": _method_for_trigger(rule, trigger),
        "method_read": methods.read,
    }

    reference = {
        "remote_field": remote_label,
        "local_field": local_label,
        "value": value,
        "method_read": methods.read,
        "method_create": methods.create,
        "method_update": methods.update,
    }
    if rule.is_key:
        if not full_payload:
            params.pop(local_label, None)
        params[KEY_PARAM] = reference
    if rule.is_prematch:
        params[PREMATCH_PARAM] = dict(reference)


def map_params(
    mapping: FieldMapRead,
    source_record: Mapping[str, Any],
    trigger: SyncTrigger | str,
    full_payload: bool = False,
) -> dict[str, Any]:
    """Map values from a source record onto the opposite system's fields.

    Args:
        mapping: Field map whose rules drive the translation.
        source_record: Field values of the changed record, keyed by the
            source system's labels. Missing fields translate to None.
        trigger: Event that caused this sync; its origin selects which rules
            apply and which way values flow.
        full_payload: Keep key fields in the write payload as well as in
            params["key"] (for APIs that require the key column on upsert).

    Returns:
        Destination field label -> value (local-origin) or value descriptor
        (remote-origin), plus optional "key" and "prematch" entries. When
        several rules are flagged key or prematch, the last applicable one wins.
        For a remote-origin trigger, a multi-valued remote field yields a list
        "value" and, in "key" or "prematch", a list "remote_field", both in
        catalog entry order.
    """
    trigger = SyncTrigger(trigger)
    origin = trigger.origin
    params: dict[str, Any] = {}

    for rule in mapping.fields:
        if not rule.direction.accepts(origin):
            continue

        if origin == TriggerOrigin.LOCAL:
            _map_into_remote(params, rule, source_record, full_payload)
        else:
            _map_into_local(params, rule, source_record, trigger, full_payload)

    return params
