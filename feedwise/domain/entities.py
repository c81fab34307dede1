"""Read-only snapshots consumed and produced by the recommendation engine."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class RecommendationMode(str, Enum):
    """Which strategies a request asks for."""

    CONTENT = "content"
    BEHAVIORAL = "behavioral"
    TRENDING = "trending"
    HYBRID = "hybrid"


class Strategy(str, Enum):
    """Tag identifying the fetcher that nominated a candidate."""

    CONTENT_BASED = "content-based"
    BEHAVIORAL = "behavioral"
    TRENDING = "trending"


class InteractionKind(str, Enum):
    VIEW = "view"
    LIKE = "like"
    FAVORITE = "favorite"


@dataclass(frozen=True)
class AuthorSummary:
    id: int
    display_name: str
    avatar_url: str | None = None


@dataclass(frozen=True)
class CategorySummary:
    id: int
    name: str
    slug: str
    color: str | None = None


@dataclass(frozen=True)
class TagSummary:
    id: int
    name: str
    slug: str
    color: str | None = None


@dataclass(frozen=True)
class ContentItem:
    """
    Immutable snapshot of a published post.

    Counters and display fields are copied out of the content store so that
    scoring never touches a live ORM object.
    """

    id: int
    title: str
    published_at: datetime
    author: AuthorSummary
    tags: tuple[TagSummary, ...] = ()
    category: CategorySummary | None = None
    views: int = 0
    likes: int = 0
    comments: int = 0
    summary: str | None = None
    slug: str = ""
    cover_image: str | None = None
    reading_time: int = 0

    @property
    def tag_ids(self) -> frozenset[int]:
        return frozenset(tag.id for tag in self.tags)

    @property
    def category_id(self) -> int | None:
        return self.category.id if self.category else None

    def tag_names(self, tag_ids: frozenset[int] | set[int]) -> list[str]:
        """Names of this item's tags that are in ``tag_ids``, in item order."""
        return [tag.name for tag in self.tags if tag.id in tag_ids]


@dataclass(frozen=True)
class InteractionEvent:
    viewer_id: int
    content_id: int
    kind: InteractionKind
    occurred_at: datetime


@dataclass
class PreferenceProfile:
    """Per-request weighting over tags and categories. Never persisted."""

    tag_weights: dict[int, float] = field(default_factory=dict)
    category_weights: dict[int, float] = field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return not self.tag_weights and not self.category_weights

    @property
    def tag_ids(self) -> frozenset[int]:
        return frozenset(self.tag_weights)

    @property
    def category_ids(self) -> frozenset[int]:
        return frozenset(self.category_weights)


@dataclass(frozen=True)
class ScoredCandidate:
    """One nomination from a single fetcher. Score scale is strategy-local."""

    item: ContentItem
    score: float
    reason: str
    strategy: Strategy

    @property
    def content_id(self) -> int:
        return self.item.id


@dataclass(frozen=True)
class RecommendationRequest:
    reference_id: int | None = None
    viewer_id: int | None = None
    mode: RecommendationMode = RecommendationMode.HYBRID
    limit: int = 10
    exclude_ids: frozenset[int] = frozenset()


@dataclass
class RecommendationResult:
    """Ranked, deduplicated and truncated output of one request."""

    candidates: list[ScoredCandidate] = field(default_factory=list)
    incomplete: list[Strategy] = field(default_factory=list)

    @property
    def algorithms(self) -> list[str]:
        return sorted({c.strategy.value for c in self.candidates})

    def __len__(self) -> int:
        return len(self.candidates)


@dataclass(frozen=True)
class AuditEntry:
    viewer_id: int | None
    content_id: int
    strategy: Strategy
    score: float
    shown_at: datetime

    def as_dict(self) -> dict:
        return {
            "viewer_id": self.viewer_id,
            "content_id": self.content_id,
            "strategy": self.strategy.value,
            "score": round(self.score, 6),
            "shown_at": self.shown_at.isoformat(),
        }
