"""Audit sink posting batches to an offline-evaluation collector."""

import logging

import httpx

from feedwise.domain.entities import AuditEntry
from feedwise.ports.audit import AuditSinkPort

logger = logging.getLogger(__name__)


class HttpAuditSink(AuditSinkPort):
    """POST ``{"entries": [...]}`` to a collector endpoint."""

    def __init__(
        self,
        url: str,
        timeout: float = 5.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._url = url
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def record(self, entries: list[AuditEntry]) -> None:
        payload = {"entries": [entry.as_dict() for entry in entries]}
        resp = await self._client.post(self._url, json=payload)
        resp.raise_for_status()
        logger.debug("Posted %d audit entries to %s", len(entries), self._url)

    async def close(self) -> None:
        await self._client.aclose()
