"""Pydantic request/response schemas."""

from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from feedwise.config import settings
from feedwise.domain.entities import (
    RecommendationMode,
    RecommendationRequest,
    ScoredCandidate,
)

# ── Request ─────────────────────────────────────────


class RecommendationQuery(BaseModel):
    """Validated query string for ``GET /recommendations``."""

    reference_id: int | None = Field(default=None, ge=1)
    viewer_id: int | None = Field(default=None, ge=1)
    mode: RecommendationMode = RecommendationMode.HYBRID
    limit: int = settings.recommendation_default_limit
    exclude_ids: frozenset[int] = frozenset()

    @field_validator("limit", mode="before")
    @classmethod
    def clamp_limit(cls, value: object) -> int:
        if value is None or value == "":
            return settings.recommendation_default_limit
        try:
            limit = int(value)
        except (TypeError, ValueError):
            raise ValueError("limit must be an integer") from None
        return min(max(limit, 1), settings.recommendation_max_limit)

    @field_validator("exclude_ids", mode="before")
    @classmethod
    def split_ids(cls, value: object) -> object:
        if value is None:
            return frozenset()
        if not isinstance(value, str):
            return value
        ids = set()
        for part in value.split(","):
            part = part.strip()
            if not part:
                continue
            if not part.isdigit():
                raise ValueError("exclude_ids must be comma-separated positive integers")
            ids.add(int(part))
        return frozenset(ids)

    def to_request(self) -> RecommendationRequest:
        return RecommendationRequest(
            reference_id=self.reference_id,
            viewer_id=self.viewer_id,
            mode=self.mode,
            limit=self.limit,
            exclude_ids=self.exclude_ids,
        )


# ── Response ────────────────────────────────────────


class AuthorOut(BaseModel):
    id: int
    display_name: str
    avatar_url: str | None = None


class CategoryOut(BaseModel):
    id: int
    name: str
    slug: str
    color: str | None = None


class TagOut(BaseModel):
    id: int
    name: str
    slug: str
    color: str | None = None


class RecommendationItem(BaseModel):
    """Public view of a recommendation. The internal score is not exposed."""

    id: int
    title: str
    summary: str | None
    slug: str
    cover_image: str | None
    views: int
    likes: int
    comments: int
    reading_time: int
    published_at: datetime
    author: AuthorOut
    category: CategoryOut | None
    tags: list[TagOut]
    reason: str
    strategy: str

    @classmethod
    def from_candidate(cls, candidate: ScoredCandidate) -> "RecommendationItem":
        item = candidate.item
        return cls(
            id=item.id,
            title=item.title,
            summary=item.summary,
            slug=item.slug,
            cover_image=item.cover_image,
            views=item.views,
            likes=item.likes,
            comments=item.comments,
            reading_time=item.reading_time,
            published_at=item.published_at,
            author=AuthorOut(
                id=item.author.id,
                display_name=item.author.display_name,
                avatar_url=item.author.avatar_url,
            ),
            category=(
                CategoryOut(
                    id=item.category.id,
                    name=item.category.name,
                    slug=item.category.slug,
                    color=item.category.color,
                )
                if item.category
                else None
            ),
            tags=[
                TagOut(id=t.id, name=t.name, slug=t.slug, color=t.color)
                for t in item.tags
            ],
            reason=candidate.reason,
            strategy=candidate.strategy.value,
        )


class QueryEcho(BaseModel):
    mode: RecommendationMode
    reference_id: int | None
    viewer_id: int | None
    limit: int
    exclude_ids: list[int]


class RecommendationsData(BaseModel):
    recommendations: list[RecommendationItem]
    total: int
    query: QueryEcho
    algorithms: list[str]


class RecommendationsResponse(BaseModel):
    success: bool = True
    data: RecommendationsData


class ErrorDetail(BaseModel):
    field: str
    message: str


class ErrorBody(BaseModel):
    code: str
    message: str
    details: list[ErrorDetail] = []


class ErrorResponse(BaseModel):
    success: bool = False
    error: ErrorBody
