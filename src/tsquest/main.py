"""FastAPI application factory."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from sqlalchemy.exc import SQLAlchemyError

from tsquest.auth.router import router as auth_router
from tsquest.config import get_settings
from tsquest.content.router import router as content_router
from tsquest.content.seed import seed_content
from tsquest.database import close_db, get_session_factory, init_db
from tsquest.gamification.router import router as gamification_router
from tsquest.gamification.seed import seed_badges
from tsquest.health.router import router as health_router
from tsquest.middleware import setup_middleware
from tsquest.progression.router import router as progression_router
from tsquest.redis_client import close_redis, init_redis
from tsquest.subscriptions.router import router as subscriptions_router

logger = structlog.get_logger()


async def seed_catalog() -> None:
    """Seed badge definitions and course content (idempotent)."""
    try:
        async with get_session_factory()() as db:
            await seed_badges(db)
            await seed_content(db)
    except SQLAlchemyError:
        logger.warning("catalog_seeding_failed", hint="tables may not exist yet", exc_info=True)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle."""
    settings = get_settings()
    await init_db(settings.database_url)
    await init_redis(settings.redis_url)

    if settings.seed_on_startup:
        await seed_catalog()

    yield

    await close_db()
    await close_redis()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="TypeScript Quest API",
        description="Backend API for TypeScript Quest, a gamified TypeScript course",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(auth_router)
    app.include_router(content_router)
    app.include_router(progression_router)
    app.include_router(gamification_router)
    app.include_router(subscriptions_router)

    return app


app = create_app()
