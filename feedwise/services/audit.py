"""Fire-and-forget audit trail of shown recommendations."""

import asyncio
import logging
from collections.abc import Sequence

from feedwise.domain.entities import AuditEntry, ScoredCandidate
from feedwise.ports.audit import AuditSinkPort
from feedwise.services.scoring import utcnow

logger = logging.getLogger(__name__)

_STOP = object()


class AuditLogger:
    """
    Bounded queue drained by a single background worker.

    ``submit`` never awaits: the request path hands over a batch and moves on.
    Sink failures are logged and swallowed. A full queue drops the batch.
    """

    def __init__(self, sink: AuditSinkPort, max_queue_size: int = 1000) -> None:
        self._sink = sink
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=max_queue_size)
        self._worker: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._worker is not None and not self._worker.done()

    def start(self) -> None:
        if self.running:
            return
        self._worker = asyncio.create_task(self._run(), name="audit-logger")
        logger.info("Audit logger started (sink=%s)", type(self._sink).__name__)

    def submit(self, viewer_id: int | None, candidates: Sequence[ScoredCandidate]) -> None:
        if not candidates:
            return
        shown_at = utcnow()
        batch = [
            AuditEntry(
                viewer_id=viewer_id,
                content_id=c.content_id,
                strategy=c.strategy,
                score=c.score,
                shown_at=shown_at,
            )
            for c in candidates
        ]
        try:
            self._queue.put_nowait(batch)
        except asyncio.QueueFull:
            logger.warning("Audit queue full; dropped %d entries", len(batch))

    async def flush(self) -> None:
        """Wait until every submitted batch has been handed to the sink."""
        await self._queue.join()

    async def _run(self) -> None:
        while True:
            batch = await self._queue.get()
            try:
                if batch is _STOP:
                    return
                await self._sink.record(batch)
                logger.debug("Recorded %d audit entries", len(batch))
            except Exception:
                logger.exception("Failed to record %d audit entries", len(batch))
            finally:
                self._queue.task_done()

    async def stop(self) -> None:
        """Drain pending batches, stop the worker and close the sink."""
        if self.running:
            await self._queue.put(_STOP)
            await self._worker
        self._worker = None
        await self._sink.close()
        logger.info("Audit logger stopped")
