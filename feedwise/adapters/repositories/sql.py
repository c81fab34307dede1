"""SQLAlchemy repositories over the platform's relational schema."""

import logging
from collections.abc import Iterable
from datetime import timedelta

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from feedwise.domain.entities import (
    AuthorSummary,
    CategorySummary,
    ContentItem,
    InteractionEvent,
    InteractionKind,
    TagSummary,
)
from feedwise.domain.models import Favorite, Like, Post, PostView, Tag
from feedwise.ports.repositories import (
    ContentFilter,
    ContentOrdering,
    ContentRepositoryPort,
    InteractionRepositoryPort,
)
from feedwise.services.scoring import utcnow

logger = logging.getLogger(__name__)

PUBLISHED = "PUBLISHED"


def to_content_item(post: Post) -> ContentItem:
    """Copy an ORM post (with author, category and tags loaded) into a snapshot."""
    category = None
    if post.category is not None:
        category = CategorySummary(
            id=post.category.id,
            name=post.category.name,
            slug=post.category.slug,
            color=post.category.color,
        )
    return ContentItem(
        id=post.id,
        title=post.title,
        summary=post.summary,
        slug=post.slug,
        cover_image=post.featured_image,
        published_at=post.published_at or post.created_at,
        author=AuthorSummary(
            id=post.author.id,
            display_name=post.author.username,
            avatar_url=post.author.avatar_url,
        ),
        category=category,
        tags=tuple(
            TagSummary(id=t.id, name=t.name, slug=t.slug, color=t.color)
            for t in sorted(post.tags, key=lambda t: t.id)
        ),
        views=post.views or 0,
        likes=post.likes_count or 0,
        comments=post.comments_count or 0,
        reading_time=post.reading_time or 0,
    )


class SQLAlchemyContentRepository(ContentRepositoryPort):
    """
    Reads published posts.

    Every call opens its own session so concurrent fetchers never share one.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    @staticmethod
    def _published():
        return select(Post).where(Post.status == PUBLISHED, Post.deleted_at.is_(None))

    async def find_published(
        self,
        content_filter: ContentFilter,
        exclude_ids: Iterable[int],
        limit: int,
    ) -> list[ContentItem]:
        published_at = func.coalesce(Post.published_at, Post.created_at)
        stmt = self._published()

        excluded = sorted(set(exclude_ids))
        if excluded:
            stmt = stmt.where(Post.id.not_in(excluded))

        matchers = []
        if content_filter.tag_ids:
            matchers.append(Post.tags.any(Tag.id.in_(sorted(content_filter.tag_ids))))
        if content_filter.category_ids:
            matchers.append(Post.category_id.in_(sorted(content_filter.category_ids)))
        if matchers:
            stmt = stmt.where(or_(*matchers))

        if content_filter.published_after is not None:
            stmt = stmt.where(published_at >= content_filter.published_after)

        if content_filter.ordering is ContentOrdering.POPULAR:
            stmt = stmt.order_by(
                Post.views.desc(), Post.likes_count.desc(), published_at.desc(), Post.id
            )
        else:
            stmt = stmt.order_by(published_at.desc(), Post.id)

        async with self._session_factory() as session:
            result = await session.execute(stmt.limit(limit))
            posts = result.scalars().unique().all()
            return [to_content_item(p) for p in posts]

    async def find_by_id(self, content_id: int) -> ContentItem | None:
        async with self._session_factory() as session:
            result = await session.execute(self._published().where(Post.id == content_id))
            post = result.scalar_one_or_none()
            return to_content_item(post) if post else None

    async def find_by_ids(self, content_ids: Iterable[int]) -> dict[int, ContentItem]:
        ids = sorted(set(content_ids))
        if not ids:
            return {}
        async with self._session_factory() as session:
            result = await session.execute(self._published().where(Post.id.in_(ids)))
            return {p.id: to_content_item(p) for p in result.scalars().unique().all()}


class SQLAlchemyInteractionRepository(InteractionRepositoryPort):
    """Reads views, post likes and favorites as interaction events."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    @staticmethod
    def _query(viewer_id: int, kind: InteractionKind):
        if kind is InteractionKind.VIEW:
            return (
                select(PostView.post_id, PostView.created_at)
                .where(PostView.user_id == viewer_id),
                PostView.created_at,
            )
        if kind is InteractionKind.LIKE:
            return (
                select(Like.target_id, Like.created_at)
                .where(Like.user_id == viewer_id, Like.target_type == "POST"),
                Like.created_at,
            )
        return (
            select(Favorite.post_id, Favorite.created_at)
            .where(Favorite.user_id == viewer_id),
            Favorite.created_at,
        )

    async def recent_events(
        self,
        viewer_id: int,
        kind: InteractionKind,
        window_days: int,
        max_count: int,
    ) -> list[InteractionEvent]:
        since = utcnow() - timedelta(days=window_days)
        stmt, created_at = self._query(viewer_id, kind)
        stmt = stmt.where(created_at >= since).order_by(created_at.desc()).limit(max_count)

        async with self._session_factory() as session:
            rows = (await session.execute(stmt)).all()

        logger.debug("Viewer %s: %d recent %s events", viewer_id, len(rows), kind.value)
        return [
            InteractionEvent(
                viewer_id=viewer_id,
                content_id=content_id,
                kind=kind,
                occurred_at=occurred_at,
            )
            for content_id, occurred_at in rows
        ]
