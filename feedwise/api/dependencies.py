"""Wiring of adapters into the recommendation engine."""

import logging

from fastapi import Request

from feedwise.adapters.audit.database import DatabaseAuditSink
from feedwise.adapters.audit.file import JsonLinesAuditSink
from feedwise.adapters.audit.http import HttpAuditSink
from feedwise.adapters.audit.log import LoggingAuditSink
from feedwise.adapters.repositories.memory import (
    InMemoryContentRepository,
    InMemoryInteractionRepository,
    load_seed,
)
from feedwise.adapters.repositories.sql import (
    SQLAlchemyContentRepository,
    SQLAlchemyInteractionRepository,
)
from feedwise.config import AuditBackend, RepositoryBackend, Settings
from feedwise.database import async_session_factory
from feedwise.ports.audit import AuditSinkPort
from feedwise.ports.recommender import RecommenderPort
from feedwise.services.audit import AuditLogger
from feedwise.services.recommender import RecommendationEngine
from feedwise.services.tuning import RecommenderConfig

logger = logging.getLogger(__name__)


def build_audit_sink(settings: Settings) -> AuditSinkPort:
    """Select the audit sink configured by ``audit_backend``."""
    backend = settings.audit_backend
    if backend is AuditBackend.DATABASE:
        return DatabaseAuditSink(async_session_factory)
    if backend is AuditBackend.FILE:
        return JsonLinesAuditSink(settings.audit_file_path)
    if backend is AuditBackend.HTTP:
        return HttpAuditSink(settings.audit_http_url, settings.audit_http_timeout)
    return LoggingAuditSink()


def build_recommender(settings: Settings, audit: AuditLogger | None) -> RecommendationEngine:
    """Construct the engine over the configured repository backend."""
    if settings.repository_backend is RepositoryBackend.MEMORY:
        items, events = [], []
        if settings.memory_seed_path:
            items, events = load_seed(settings.memory_seed_path)
            logger.info(
                "Loaded %d items and %d events from %s",
                len(items),
                len(events),
                settings.memory_seed_path,
            )
        else:
            logger.warning("No memory_seed_path set; in-memory repositories start empty")
        content = InMemoryContentRepository(items)
        interactions = InMemoryInteractionRepository(events)
    else:
        content = SQLAlchemyContentRepository(async_session_factory)
        interactions = SQLAlchemyInteractionRepository(async_session_factory)

    return RecommendationEngine.build(
        content,
        interactions,
        config=RecommenderConfig.from_settings(settings),
        audit=audit,
    )


def get_recommender(request: Request) -> RecommenderPort:
    """FastAPI dependency returning the engine created at startup."""
    return request.app.state.recommender
