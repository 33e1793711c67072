"""Reconciliation auditor -- reports links stuck on a temporary identifier.

A push that never received the remote id leaves a remote placeholder behind;
a pull that never received the local id leaves a local placeholder. The
auditor only reports these. Recovery belongs to the executors' next cycle.
"""

from __future__ import annotations

import structlog

from src.object_sync.mapping.objectmaps import ObjectMapRepository
from src.object_sync.mapping.schemas import FailedLinks

logger = structlog.get_logger(__name__)


class ReconciliationAuditor:
    """Stateless scan over the object map repository.

    Args:
        object_maps: Repository to scan.
    """

    def __init__(self, object_maps: ObjectMapRepository) -> None:
        self._object_maps = object_maps

    async def scan(self) -> FailedLinks:
        """Return stuck links split into push and pull buckets."""
        failed = await self._object_maps.failed_links()

        if failed.has_failures:
            logger.warning(
                "auditor.stuck_links_found",
                push_errors=len(failed.push_errors),
                pull_errors=len(failed.pull_errors),
                push_link_ids=[link.id for link in failed.push_errors],
                pull_link_ids=[link.id for link in failed.pull_errors],
            )
        else:
            logger.info("auditor.no_stuck_links")
        return failed
