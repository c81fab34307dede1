"""In-memory repositories for tests, demos and offline evaluation."""

import json
from collections.abc import Callable, Iterable
from dataclasses import replace
from datetime import datetime, timedelta
from pathlib import Path

from pydantic import TypeAdapter

from feedwise.domain.entities import ContentItem, InteractionEvent, InteractionKind
from feedwise.ports.repositories import (
    ContentFilter,
    ContentOrdering,
    ContentRepositoryPort,
    InteractionRepositoryPort,
)
from feedwise.services.scoring import as_naive_utc, utcnow

_ITEMS = TypeAdapter(list[ContentItem])
_EVENTS = TypeAdapter(list[InteractionEvent])


class InMemoryContentRepository(ContentRepositoryPort):
    """Holds published items in a dict. Removed items are simply absent."""

    def __init__(self, items: Iterable[ContentItem] = ()) -> None:
        self._items: dict[int, ContentItem] = {item.id: item for item in items}

    def add(self, item: ContentItem) -> None:
        self._items[item.id] = item

    def remove(self, content_id: int) -> None:
        self._items.pop(content_id, None)

    @staticmethod
    def _matches(item: ContentItem, content_filter: ContentFilter) -> bool:
        if content_filter.published_after and item.published_at < content_filter.published_after:
            return False
        if not content_filter.tag_ids and not content_filter.category_ids:
            return True
        return bool(item.tag_ids & content_filter.tag_ids) or (
            item.category_id in content_filter.category_ids
        )

    async def find_published(
        self,
        content_filter: ContentFilter,
        exclude_ids: Iterable[int],
        limit: int,
    ) -> list[ContentItem]:
        excluded = set(exclude_ids)
        matches = [
            item
            for item in self._items.values()
            if item.id not in excluded and self._matches(item, content_filter)
        ]
        if content_filter.ordering is ContentOrdering.POPULAR:
            matches.sort(
                key=lambda i: (-i.views, -i.likes, -i.published_at.timestamp(), i.id)
            )
        else:
            matches.sort(key=lambda i: (-i.published_at.timestamp(), i.id))
        return matches[:limit]

    async def find_by_id(self, content_id: int) -> ContentItem | None:
        return self._items.get(content_id)

    async def find_by_ids(self, content_ids: Iterable[int]) -> dict[int, ContentItem]:
        return {cid: self._items[cid] for cid in content_ids if cid in self._items}


class InMemoryInteractionRepository(InteractionRepositoryPort):
    """Append-only event list filtered on read."""

    def __init__(
        self,
        events: Iterable[InteractionEvent] = (),
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._events: list[InteractionEvent] = list(events)
        self._clock = clock

    def add(self, event: InteractionEvent) -> None:
        self._events.append(event)

    async def recent_events(
        self,
        viewer_id: int,
        kind: InteractionKind,
        window_days: int,
        max_count: int,
    ) -> list[InteractionEvent]:
        since = self._clock() - timedelta(days=window_days)
        events = [
            e
            for e in self._events
            if e.viewer_id == viewer_id and e.kind is kind and e.occurred_at >= since
        ]
        events.sort(key=lambda e: e.occurred_at, reverse=True)
        return events[:max_count]


def load_seed(path: str | Path) -> tuple[list[ContentItem], list[InteractionEvent]]:
    """
    Read a demo snapshot from a JSON file.

    The file holds ``{"items": [...], "events": [...]}`` where each entry has
    the fields of ``ContentItem`` / ``InteractionEvent``. Timestamps may carry
    an offset; they are stored as naive UTC like the rest of the engine.
    """
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    items = [
        replace(item, published_at=as_naive_utc(item.published_at))
        for item in _ITEMS.validate_python(data.get("items", []))
    ]
    events = [
        replace(event, occurred_at=as_naive_utc(event.occurred_at))
        for event in _EVENTS.validate_python(data.get("events", []))
    ]
    return items, events
