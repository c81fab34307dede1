"""FastAPI application factory — entry point for Feedwise."""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from feedwise.api.dependencies import build_audit_sink, build_recommender
from feedwise.api.errors import register_exception_handlers
from feedwise.api.routes.recommendations import router as recommendations_router
from feedwise.config import settings
from feedwise.database import engine
from feedwise.services.audit import AuditLogger

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan: start the audit worker and build the engine."""
    logger.info("Feedwise starting up...")
    logger.info("Repository backend: %s", settings.repository_backend.value)
    logger.info("Audit backend: %s", settings.audit_backend.value)
    logger.info("Fetcher timeout: %s", settings.recommendation_timeout_seconds)

    audit = AuditLogger(build_audit_sink(settings), settings.audit_queue_size)
    audit.start()
    app.state.audit = audit
    app.state.recommender = build_recommender(settings, audit)
    yield
    logger.info("Feedwise shutting down...")
    await audit.stop()
    await engine.dispose()


def create_app() -> FastAPI:
    """Build and configure the FastAPI application."""
    application = FastAPI(
        title="Feedwise",
        description="Content recommendations blended from tags, categories, history and trends",
        version="1.0.0",
        lifespan=lifespan,
    )

    # ── Middleware ──────────────────────────────────
    application.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ── Errors ─────────────────────────────────────
    register_exception_handlers(application)

    # ── Routes ─────────────────────────────────────
    application.include_router(recommendations_router)

    # ── Health Check ───────────────────────────────
    @application.get("/health", tags=["System"])
    async def health() -> dict[str, str]:
        return {"status": "healthy", "service": "feedwise"}

    return application


app = create_app()
