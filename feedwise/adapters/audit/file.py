
"""JSON-lines file audit sink."""

import json
import logging
from pathlib import Path

import aiofiles

from feedwise.domain.entities import AuditEntry
from feedwise.ports.audit import AuditSinkPort

logger = logging.getLogger(__name__)


class JsonLinesAuditSink(AuditSinkPort):
    """Append each entry as one JSON object per line."""

    def __init__(self, path: str) -> None:
        self._path = Path(path)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        logger.info("JSONL audit sink writing to: %s", self._path.resolve())

    async def record(self, entries: list[AuditEntry]) -> None:
        lines = "".join(json.dumps(entry.as_dict()) + "\n" for entry in entries)
        async with aiofiles.open(self._path, "a", encoding="utf-8") as f:
            await f.write(lines)
        logger.debug("Appended %d audit entries to %s", len(entries), self._path)
