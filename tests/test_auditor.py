"""Tests for ReconciliationAuditor."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest
from structlog.testing import capture_logs

from src.object_sync.mapping.auditor import ReconciliationAuditor
from src.object_sync.mapping.objectmaps import ObjectMapRepository
from src.object_sync.mapping.schemas import FailedLinks, ObjectMapRead


@pytest.fixture
def repo(store, sync_log) -> ObjectMapRepository:
    return ObjectMapRepository(store, sync_log)


class TestReconciliationAuditor:
    async def test_clean_store(self, repo):
        await repo.create_object_map(
            {"local_id": "1", "local_object_type": "post", "remote_id": "003A"}
        )

        with capture_logs() as logs:
            failed = await ReconciliationAuditor(repo).scan()

        assert not failed.has_failures
        assert logs[-1]["event"] == "auditor.no_stuck_links"

    async def test_reports_both_buckets(self, repo):
        push = await repo.create_object_map(
            {
                "local_id": "1",
                "local_object_type": "post",
                "remote_id": repo.generate_temporary_id("push"),
                "action": "pending",
            }
        )
        pull = await repo.create_object_map(
            {
                "local_id": repo.generate_temporary_id("pull"),
                "local_object_type": "post",
                "remote_id": "003B",
            }
        )

        with capture_logs() as logs:
            failed = await ReconciliationAuditor(repo).scan()

        assert failed.total == 2
        assert [link.id for link in failed.push_errors] == [push.id]
        assert [link.id for link in failed.pull_errors] == [pull.id]

        summary = logs[-1]
        assert summary["event"] == "auditor.stuck_links_found"
        assert summary["log_level"] == "warning"
        assert summary["push_link_ids"] == [push.id]
        assert summary["pull_errors"] == 1

    async def test_scan_does_not_modify_links(self):
        link = ObjectMapRead(
            id=3, local_id="tmp_local_x", local_object_type="post", remote_id="003C"
        )
        repo = AsyncMock(spec=ObjectMapRepository)
        repo.failed_links.return_value = FailedLinks(pull_errors=[link])

        failed = await ReconciliationAuditor(repo).scan()

        assert failed.pull_errors == [link]
        repo.failed_links.assert_awaited_once()
        repo.update_object_map.assert_not_called()
        repo.delete_object_map.assert_not_called()
