from collections.abc import AsyncGenerator
from datetime import datetime, timedelta

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from feedwise.adapters.repositories.memory import (
    InMemoryContentRepository,
    InMemoryInteractionRepository,
)
from feedwise.domain.entities import (
    AuditEntry,
    AuthorSummary,
    CategorySummary,
    ContentItem,
    InteractionEvent,
    InteractionKind,
    TagSummary,
)
from feedwise.domain.models import Base
from feedwise.ports.audit import AuditSinkPort
from feedwise.services.audit import AuditLogger

# Shared in-memory database for the SQLAlchemy adapter tests
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

NOW = datetime(2025, 6, 1, 12, 0, 0)


class RecordingSink(AuditSinkPort):
    """Audit sink that keeps entries in memory and can be told to fail."""

    def __init__(self) -> None:
        self.entries: list[AuditEntry] = []
        self.batches = 0
        self.fail_next = 0
        self.closed = False

    async def record(self, entries: list[AuditEntry]) -> None:
        if self.fail_next:
            self.fail_next -= 1
            raise RuntimeError("sink unavailable")
        self.batches += 1
        self.entries.extend(entries)

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def clock():
    return lambda: NOW


@pytest.fixture
def make_item():
    """Factory for content snapshots published ``days_old`` days before NOW."""

    def _make(
        item_id: int,
        tags=(),
        category: int | None = None,
        days_old: float = 0,
        views: int = 0,
        likes: int = 0,
        comments: int = 0,
    ) -> ContentItem:
        return ContentItem(
            id=item_id,
            title=f"Post {item_id}",
            summary=f"Summary of post {item_id}",
            slug=f"post-{item_id}",
            published_at=NOW - timedelta(days=days_old),
            author=AuthorSummary(id=1, display_name="alice"),
            tags=tuple(
                TagSummary(id=t, name=f"tag{t}", slug=f"tag-{t}") for t in tags
            ),
            category=(
                CategorySummary(id=category, name=f"cat{category}", slug=f"cat-{category}")
                if category is not None
                else None
            ),
            views=views,
            likes=likes,
            comments=comments,
            reading_time=4,
        )

    return _make


@pytest.fixture
def make_event():
    def _make(viewer_id: int, content_id: int, kind: InteractionKind, days_ago: float = 1):
        return InteractionEvent(
            viewer_id=viewer_id,
            content_id=content_id,
            kind=kind,
            occurred_at=NOW - timedelta(days=days_ago),
        )

    return _make


@pytest.fixture
def content_repo() -> InMemoryContentRepository:
    return InMemoryContentRepository()


@pytest.fixture
def interaction_repo(clock) -> InMemoryInteractionRepository:
    return InMemoryInteractionRepository(clock=clock)


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
async def audit(sink: RecordingSink) -> AsyncGenerator[AuditLogger, None]:
    logger = AuditLogger(sink, max_queue_size=10)
    logger.start()
    yield logger
    await logger.stop()


@pytest.fixture
async def session_factory() -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """Create all tables on a fresh in-memory database, drop after."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()
