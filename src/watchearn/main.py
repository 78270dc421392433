"""FastAPI application factory."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from watchearn.ads.router import admin_router as admin_ads_router
from watchearn.ads.router import router as ads_router
from watchearn.appsettings.router import admin_router as admin_settings_router
from watchearn.appsettings.router import router as settings_router
from watchearn.audit.router import router as audit_router
from watchearn.config import get_settings
from watchearn.database import close_db, create_schema, init_db
from watchearn.health.router import router as health_router
from watchearn.ledger.router import router as ledger_router
from watchearn.middleware import setup_middleware
from watchearn.profiles.router import admin_router as admin_profiles_router
from watchearn.profiles.router import router as profiles_router
from watchearn.redis_client import close_redis, init_redis
from watchearn.wallet.admin_router import router as admin_withdrawals_router
from watchearn.wallet.router import router as wallet_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle."""
    settings = get_settings()
    await init_db(settings.database_url)
    await init_redis(settings.redis_url)

    # Local SQLite runs have no migration step
    if settings.database_url.startswith("sqlite"):
        try:
            await create_schema()
        except Exception:
            logger.warning("Schema creation failed", exc_info=True)

    yield

    await close_db()
    await close_redis()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="WatchEarn API",
        description="Ad-watch reward engine: crediting, streaks, wallet and withdrawals",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(ads_router)
    app.include_router(ledger_router)
    app.include_router(wallet_router)
    app.include_router(profiles_router)
    app.include_router(settings_router)
    app.include_router(admin_ads_router)
    app.include_router(admin_withdrawals_router)
    app.include_router(admin_profiles_router)
    app.include_router(admin_settings_router)
    app.include_router(audit_router)

    return app


app = create_app()
