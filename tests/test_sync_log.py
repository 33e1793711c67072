"""Tests for the structlog-backed sync log."""

from __future__ import annotations

import pytest
from structlog.testing import capture_logs

from src.object_sync.mapping.schemas import LinkStatus
from src.object_sync.mapping.sync_log import LogSeverity, StructlogSyncLog, SyncLog


class TestStructlogSyncLog:
    def test_is_a_sync_log(self):
        assert isinstance(StructlogSyncLog(), SyncLog)

    def test_sync_log_is_abstract(self):
        with pytest.raises(TypeError, match="abstract"):
            SyncLog()

    @pytest.mark.parametrize(
        "severity, level",
        [
            (LogSeverity.NOTICE, "info"),
            (LogSeverity.WARNING, "warning"),
            (LogSeverity.ERROR, "error"),
        ],
    )
    def test_severity_maps_to_level(self, severity, level):
        with capture_logs() as logs:
            StructlogSyncLog().log("Mapping notice", severity=severity)

        assert logs[0]["log_level"] == level

    def test_entry_fields(self):
        with capture_logs() as logs:
            StructlogSyncLog().log(
                "Error Mapping: temporary id",
                detail="pass action='pending'",
                severity="error",
                status=LinkStatus.ERROR,
                remote_id="tmp_remote_abc",
            )

        entry = logs[0]
        assert entry["event"] == "sync_log.entry"
        assert entry["message"] == "Error Mapping: temporary id"
        assert entry["detail"] == "pass action='pending'"
        assert entry["severity"] == "error"
        assert entry["status"] == "error"
        assert entry["remote_id"] == "tmp_remote_abc"
