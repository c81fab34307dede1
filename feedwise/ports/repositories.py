"""Repository ports: read-only access to content and interaction history."""

from abc import ABC, abstractmethod
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from feedwise.domain.entities import ContentItem, InteractionEvent, InteractionKind


class ContentOrdering(str, Enum):
    RECENT = "recent"
    POPULAR = "popular"


@dataclass(frozen=True)
class ContentFilter:
    """
    Candidate selection over published, non-deleted content.

    ``tag_ids`` and ``category_ids`` are any-of matches; when both are given
    an item qualifies if it matches either one.
    """

    tag_ids: frozenset[int] = frozenset()
    category_ids: frozenset[int] = frozenset()
    published_after: datetime | None = None
    ordering: ContentOrdering = ContentOrdering.RECENT


class ContentRepositoryPort(ABC):
    """Abstraction over the content store."""

    @abstractmethod
    async def find_published(
        self,
        content_filter: ContentFilter,
        exclude_ids: Iterable[int],
        limit: int,
    ) -> list[ContentItem]:
        """Return up to ``limit`` published items matching the filter."""
        ...

    @abstractmethod
    async def find_by_id(self, content_id: int) -> ContentItem | None:
        """Return a published item, or None if missing or removed."""
        ...

    @abstractmethod
    async def find_by_ids(self, content_ids: Iterable[int]) -> dict[int, ContentItem]:
        """Batch lookup keyed by id. Missing ids are absent from the result."""
        ...


class InteractionRepositoryPort(ABC):
    """Abstraction over the append-only interaction log."""

    @abstractmethod
    async def recent_events(
        self,
        viewer_id: int,
        kind: InteractionKind,
        window_days: int,
        max_count: int,
    ) -> list[InteractionEvent]:
        """Most-recent-first events of one kind inside the trailing window."""
        ...
