"""Audit sink port: destination for shown-recommendation records."""

from abc import ABC, abstractmethod

from feedwise.domain.entities import AuditEntry


class AuditSinkPort(ABC):
    """Abstraction for persisting recommendation impressions."""

    @abstractmethod
    async def record(self, entries: list[AuditEntry]) -> None:
        """Persist a batch of entries. May raise; callers swallow failures."""
        ...

    async def close(self) -> None:
        """Release resources held by the sink."""
        return None
