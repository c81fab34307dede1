"""Audit sink writing impressions to the process log."""

import logging

from feedwise.domain.entities import AuditEntry
from feedwise.ports.audit import AuditSinkPort

logger = logging.getLogger(__name__)


class LoggingAuditSink(AuditSinkPort):
    """Write impressions to the process log. Useful when no store is configured."""

    async def record(self, entries: list[AuditEntry]) -> None:
        for entry in entries:
            logger.info(
                "shown viewer=%s content=%d strategy=%s score=%.4f",
                entry.viewer_id,
                entry.content_id,
                entry.strategy.value,
                entry.score,
            )
