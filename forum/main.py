"""
Forum API — application entry point.

This is the **only** file that assembles the app.  All business logic
lives in the `api/`, `core/`, `db/` and `models/` packages.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from forum.api.v1.api import api_router
from forum.api.v1.endpoints.tokens import limiter
from forum.core.config import settings
from forum.core.exceptions import register_exception_handlers
from forum.core.mailer import LoggingMailer
from forum.core.permissions import seed_permissions
from forum.core.rate_limit import RateLimiter, RateLimitMiddleware
from forum.db.base import Base
from forum.db.session import async_session_factory, engine

# Ensure all models are imported so metadata.create_all can see them
from forum.models.comment import Comment  # noqa: F401
from forum.models.forum import Forum  # noqa: F401
from forum.models.permission import Permission  # noqa: F401
from forum.models.token import Token  # noqa: F401
from forum.models.user import User  # noqa: F401

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
)
logger = logging.getLogger(__name__)


# ── Lifespan ────────────────────────────────────────────────────────
@asynccontextmanager
async def lifespan(app: FastAPI):
    # Create all tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables initialised")

    async with async_session_factory() as session:
        await seed_permissions(session)

    sweeper = asyncio.create_task(
        app.state.rate_limiter.run_sweeper(settings.LIMITER_SWEEP_INTERVAL_SECONDS)
    )

    logger.info("%s v%s started (%s)", settings.PROJECT_NAME, settings.VERSION, settings.ENVIRONMENT)
    yield

    sweeper.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await sweeper
    await engine.dispose()
    logger.info("Shutdown complete")


# ── App factory ─────────────────────────────────────────────────────
def create_app() -> FastAPI:
    application = FastAPI(
        title=settings.PROJECT_NAME,
        description="Forum posts and comments with scoped bearer tokens",
        version=settings.VERSION,
        openapi_url=f"{settings.API_V1_PREFIX}/openapi.json",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # Shared process-wide state
    application.state.rate_limiter = RateLimiter(
        rps=settings.LIMITER_RPS,
        burst=settings.LIMITER_BURST,
        enabled=settings.LIMITER_ENABLED,
        idle_timeout=settings.LIMITER_IDLE_SECONDS,
    )
    application.state.limiter = limiter
    application.state.mailer = LoggingMailer()

    # CORS
    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Rate limiting runs before everything else (added last = outermost)
    application.add_middleware(RateLimitMiddleware)

    # Global exception handlers (prevent stack-trace leakage)
    register_exception_handlers(application)

    # Mount API v1
    application.include_router(api_router, prefix=settings.API_V1_PREFIX)

    return application


app = create_app()
