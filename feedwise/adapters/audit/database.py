"""Audit sink writing ``recommendation_logs`` rows."""

import logging

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from feedwise.domain.entities import AuditEntry
from feedwise.domain.models import RecommendationLog
from feedwise.ports.audit import AuditSinkPort

logger = logging.getLogger(__name__)


class DatabaseAuditSink(AuditSinkPort):
    """Persist one row per shown recommendation."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def record(self, entries: list[AuditEntry]) -> None:
        async with self._session_factory() as session:
            session.add_all(
                RecommendationLog(
                    user_id=entry.viewer_id,
                    post_id=entry.content_id,
                    algorithm=entry.strategy.value,
                    score=entry.score,
                    created_at=entry.shown_at,
                )
                for entry in entries
            )
            await session.commit()
        logger.debug("Inserted %d recommendation_logs rows", len(entries))
