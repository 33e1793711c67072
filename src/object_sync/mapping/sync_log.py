"""Operator-facing sync log capability injected into the repositories.

Repositories report link anomalies (temporary ids, duplicate or ambiguous
links) through a SyncLog rather than a process-wide singleton, so callers
choose where those entries land. StructlogSyncLog is the default and emits
structured events at a level matching the entry severity.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any

import structlog

from src.object_sync.mapping.schemas import LinkStatus


class LogSeverity(str, Enum):
    """Severity of a sync log entry."""

    NOTICE = "notice"
    WARNING = "warning"
    ERROR = "error"


class SyncLog(ABC):
    """Abstract logging surface for sync anomalies."""

    @abstractmethod
    def log(
        self,
        message: str,
        detail: str = "",
        severity: LogSeverity = LogSeverity.NOTICE,
        status: LinkStatus = LinkStatus.SUCCESS,
        **context: Any,
    ) -> None:
        """Record one entry. `status` is the sync outcome the entry describes."""
        ...


class StructlogSyncLog(SyncLog):
    """SyncLog writing to a structlog logger.

    Args:
        logger_name: Name of the bound structlog logger.
    """

    _LEVELS = {
        LogSeverity.NOTICE: "info",
        LogSeverity.WARNING: "warning",
        LogSeverity.ERROR: "error",
    }

    def __init__(self, logger_name: str = "object_sync.sync_log") -> None:
        self._logger = structlog.get_logger(logger_name)

    def log(
        self,
        message: str,
        detail: str = "",
        severity: LogSeverity = LogSeverity.NOTICE,
        status: LinkStatus = LinkStatus.SUCCESS,
        **context: Any,
    ) -> None:
        emit = getattr(self._logger, self._LEVELS[LogSeverity(severity)])
        emit(
            "sync_log.entry",
            message=message,
            detail=detail,
            severity=LogSeverity(severity).value,
            status=LinkStatus(status).value,
            **context,
        )
