"""Unit tests for the value translation engine (map_params).

Pure-function tests: mappings are built in memory, no store involved.
"""

from __future__ import annotations

import copy
import inspect

import pytest

from src.object_sync.mapping.fields import FieldDescriptorResolver
from src.object_sync.mapping.schemas import FieldMapRead, SyncTrigger
from src.object_sync.mapping.translation import KEY_PARAM, PREMATCH_PARAM, map_params


@pytest.fixture
def build_fieldmap(local_catalog, remote_catalog):
    """Build a FieldMapRead from posted rules, resolved against the test catalogs."""
    resolver = FieldDescriptorResolver(local_catalog, remote_catalog)

    def _build(*rules: dict) -> FieldMapRead:
        return FieldMapRead(
            id=1,
            label="Post to Contact",
            name="post-to-contact",
            local_object_type="post",
            remote_object_type="Contact",
            fields=resolver.resolve_rules(rules),
        )

    return _build


# ── Local-Origin Triggers ──────────────────────────────────────────────────


class TestLocalOrigin:
    def test_sync_field_maps_to_remote_label(self, build_fieldmap):
        fieldmap = build_fieldmap({"local_field": "title", "remote_field": "Name"})

        params = map_params(fieldmap, {"title": "Jane Doe"}, SyncTrigger.LOCAL_UPDATE)

        assert params == {"Name": "Jane Doe"}

    def test_remote_to_local_rule_skipped(self, build_fieldmap):
        fieldmap = build_fieldmap(
            {"local_field": "title", "remote_field": "Name", "direction": "remote_to_local"}
        )
        assert map_params(fieldmap, {"title": "Jane"}, "local_create") == {}

    def test_non_updatable_remote_field_skipped(self, build_fieldmap):
        fieldmap = build_fieldmap({"local_field": "title", "remote_field": "CreatedDate"})
        assert map_params(fieldmap, {"title": "x"}, SyncTrigger.LOCAL_UPDATE) == {}

    def test_missing_source_value_becomes_none(self, build_fieldmap):
        fieldmap = build_fieldmap({"local_field": "title", "remote_field": "Name"})
        assert map_params(fieldmap, {}, SyncTrigger.LOCAL_CREATE) == {"Name": None}

    def test_key_moved_out_of_payload(self, build_fieldmap):
        fieldmap = build_fieldmap(
            {"local_field": "title", "remote_field": "Name"},
            {"local_field": "email", "remote_field": "Email", "is_key": True},
        )

        params = map_params(
            fieldmap, {"title": "Jane", "email": "jane@example.com"}, SyncTrigger.LOCAL_UPDATE
        )

        assert "Email" not in params
        assert params[KEY_PARAM] == {
            "remote_field": "Email",
            "local_field": "email",
            "value": "jane@example.com",
        }
        assert params["Name"] == "Jane"

    def test_full_payload_keeps_key_in_payload(self, build_fieldmap):
        fieldmap = build_fieldmap(
            {"local_field": "email", "remote_field": "Email", "is_key": True}
        )

        params = map_params(
            fieldmap, {"email": "jane@example.com"}, SyncTrigger.LOCAL_UPDATE, full_payload=True
        )

        assert params["Email"] == "jane@example.com"
        assert params[KEY_PARAM]["value"] == "jane@example.com"

    def test_prematch_stays_in_payload(self, build_fieldmap):
        fieldmap = build_fieldmap(
            {"local_field": "email", "remote_field": "Email", "is_prematch": True}
        )

        params = map_params(fieldmap, {"email": "jane@example.com"}, SyncTrigger.LOCAL_CREATE)

        assert params["Email"] == "jane@example.com"
        assert params[PREMATCH_PARAM] == {
            "remote_field": "Email",
            "local_field": "email",
            "value": "jane@example.com",
        }

    def test_last_prematch_wins(self, build_fieldmap):
        fieldmap = build_fieldmap(
            {"local_field": "email", "remote_field": "Email", "is_prematch": True},
            {"local_field": "title", "remote_field": "Name", "is_prematch": True},
        )

        params = map_params(
            fieldmap, {"email": "jane@example.com", "title": "Jane"}, SyncTrigger.LOCAL_CREATE
        )

        assert params[PREMATCH_PARAM]["remote_field"] == "Name"

    def test_multi_valued_writes_each_updatable_sub_label(self, build_fieldmap):
        fieldmap = build_fieldmap(
            {
                "local_field": "address",
                "remote_field": ["MailingStreet", "MailingCity", "CreatedDate"],
            }
        )

        params = map_params(fieldmap, {"address": "1 Main St"}, SyncTrigger.LOCAL_UPDATE)

        assert params == {"MailingStreet": "1 Main St", "MailingCity": "1 Main St"}


# ── Remote-Origin Triggers ─────────────────────────────────────────────────


class TestRemoteOrigin:
    def test_create_descriptor(self, build_fieldmap):
        fieldmap = build_fieldmap({"local_field": "title", "remote_field": "Name"})

        params = map_params(fieldmap, {"Name": "Jane Doe"}, SyncTrigger.REMOTE_CREATE)

        assert params == {
            "title": {
                "value": "Jane Doe",
                "method_modify": "create_post",
                "method_read": "get_post",
            }
        }

    @pytest.mark.parametrize(
        "trigger, method",
        [
            (SyncTrigger.REMOTE_CREATE, "create_post"),
            (SyncTrigger.REMOTE_UPDATE, "update_post"),
            (SyncTrigger.REMOTE_DELETE, "delete_post"),
        ],
    )
    def test_method_modify_follows_trigger(self, build_fieldmap, trigger, method):
        fieldmap = build_fieldmap({"local_field": "title", "remote_field": "Name"})

        params = map_params(fieldmap, {"Name": "Jane"}, trigger)

        assert params["title"]["method_modify"] == method
        assert params["title"]["method_read"] == "get_post"

    def test_local_to_remote_rule_skipped(self, build_fieldmap):
        fieldmap = build_fieldmap(
            {"local_field": "title", "remote_field": "Name", "direction": "local_to_remote"}
        )
        assert map_params(fieldmap, {"Name": "Jane"}, SyncTrigger.REMOTE_UPDATE) == {}

    def test_non_updatable_remote_field_still_pulled(self, build_fieldmap):
        fieldmap = build_fieldmap({"local_field": "title", "remote_field": "CreatedDate"})

        params = map_params(fieldmap, {"CreatedDate": "2026-01-01"}, SyncTrigger.REMOTE_UPDATE)

        assert params["title"]["value"] == "2026-01-01"

    def test_key_descriptor(self, build_fieldmap):
        fieldmap = build_fieldmap(
            {"local_field": "email", "remote_field": "Email", "is_key": True}
        )

        params = map_params(fieldmap, {"Email": "jane@example.com"}, SyncTrigger.REMOTE_UPDATE)

        assert "email" not in params
        assert params[KEY_PARAM] == {
            "remote_field": "Email",
            "local_field": "email",
            "value": "jane@example.com",
            "method_read": "get_post_meta",
            "method_create": "create_post_meta",
            "method_update": "update_post_meta",
        }

    def test_prematch_descriptor_kept_in_payload(self, build_fieldmap):
        fieldmap = build_fieldmap(
            {"local_field": "email", "remote_field": "Email", "is_prematch": True}
        )

        params = map_params(fieldmap, {"Email": "jane@example.com"}, SyncTrigger.REMOTE_CREATE)

        assert params["email"]["value"] == "jane@example.com"
        assert params[PREMATCH_PARAM]["method_create"] == "create_post_meta"

    def test_multi_valued_collects_values_in_entry_order(self, build_fieldmap):
        fieldmap = build_fieldmap(
            {"local_field": "address", "remote_field": ["MailingStreet", "MailingCity"]}
        )

        params = map_params(
            fieldmap,
            {"MailingCity": "Springfield", "MailingStreet": "1 Main St"},
            SyncTrigger.REMOTE_UPDATE,
        )

        assert params["address"]["value"] == ["1 Main St", "Springfield"]

    def test_multi_valued_key_lists_remote_labels(self, build_fieldmap):
        fieldmap = build_fieldmap(
            {
                "local_field": "address",
                "remote_field": ["MailingStreet", "MailingCity"],
                "is_key": True,
            }
        )

        params = map_params(
            fieldmap,
            {"MailingStreet": "1 Main St", "MailingCity": "Springfield"},
            SyncTrigger.REMOTE_UPDATE,
        )

        assert "address" not in params
        assert params[KEY_PARAM]["remote_field"] == ["MailingStreet", "MailingCity"]
        assert params[KEY_PARAM]["value"] == ["1 Main St", "Springfield"]


# ── Properties ─────────────────────────────────────────────────────────────


class TestTranslationProperties:
    @pytest.mark.parametrize("trigger", list(SyncTrigger))
    def test_key_value_only_in_key_channel(self, build_fieldmap, trigger):
        fieldmap = build_fieldmap(
            {"local_field": "email", "remote_field": "Email", "is_key": True}
        )
        source = {"email": "k@example.com", "Email": "k@example.com"}

        params = map_params(fieldmap, source, trigger)

        assert "Email" not in params and "email" not in params
        assert params[KEY_PARAM]["value"] == "k@example.com"

    def test_inputs_not_mutated(self, build_fieldmap):
        fieldmap = build_fieldmap(
            {"local_field": "title", "remote_field": "Name", "is_key": True},
            {"local_field": "address", "remote_field": ["MailingStreet", "MailingCity"]},
        )
        source = {"title": "Jane", "address": "1 Main St"}
        before_map = fieldmap.model_copy(deep=True)
        before_source = copy.deepcopy(source)

        map_params(fieldmap, source, SyncTrigger.LOCAL_UPDATE)
        map_params(fieldmap, source, SyncTrigger.REMOTE_UPDATE)

        assert fieldmap == before_map
        assert source == before_source

    def test_full_payload_off_by_default(self, build_fieldmap):
        assert inspect.signature(map_params).parameters["full_payload"].default is False
        fieldmap = build_fieldmap(
            {"local_field": "email", "remote_field": "Email", "is_key": True}
        )

        params = map_params(fieldmap, {"email": "k@example.com"}, SyncTrigger.LOCAL_UPDATE)

        assert "Email" not in params

    def test_empty_fieldmap_translates_to_nothing(self, build_fieldmap):
        fieldmap = build_fieldmap()
        assert not fieldmap.is_usable
        assert map_params(fieldmap, {"title": "Jane"}, SyncTrigger.LOCAL_UPDATE) == {}

    def test_trigger_accepts_string_value(self, build_fieldmap):
        fieldmap = build_fieldmap({"local_field": "title", "remote_field": "Name"})
        assert map_params(fieldmap, {"title": "Jane"}, "local_update") == {"Name": "Jane"}

    def test_unknown_trigger_rejected(self, build_fieldmap):
        with pytest.raises(ValueError):
            map_params(build_fieldmap(), {}, "sideways")
