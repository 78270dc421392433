"""Health, readiness, and version endpoints."""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import func, select, text
from sqlalchemy.ext.asyncio import AsyncSession

from watchearn.config import get_settings
from watchearn.database import get_session
from watchearn.db.models import Ad
from watchearn.redis_client import get_redis

router = APIRouter()


@router.get("/health")
async def health() -> dict[str, str]:
    """Liveness probe: 200 while the process is alive."""
    return {"status": "healthy"}


@router.get("/ready")
async def readiness(
    db: AsyncSession = Depends(get_session),  # noqa: B008
) -> JSONResponse:
    """Readiness probe: database, schema and Redis. 503 until all three answer."""
    checks: dict[str, object] = {}

    try:
        await db.execute(text("SELECT 1"))
        checks["database"] = "ok"
    except Exception as exc:
        checks["database"] = f"error: {exc}"

    # Crediting needs the ad inventory; a missing table means migrations have not run.
    try:
        active = await db.scalar(select(func.count()).select_from(Ad).where(Ad.is_active.is_(True)))
        checks["schema"] = "ok"
        checks["active_ads"] = int(active or 0)
    except Exception as exc:
        checks["schema"] = f"error: {exc}"

    try:
        await get_redis().ping()
        checks["redis"] = "ok"
    except Exception as exc:
        checks["redis"] = f"error: {exc}"

    all_ok = all(checks[name] == "ok" for name in ("database", "schema", "redis"))
    return JSONResponse(
        status_code=200 if all_ok else 503,
        content={"status": "ready" if all_ok else "degraded", "checks": checks},
    )


@router.get("/version")
async def version() -> dict[str, str]:
    """API version, environment and the platform calendar used for streaks."""
    settings = get_settings()
    return {
        "version": settings.app_version,
        "environment": settings.environment,
        "platform_timezone": settings.platform_timezone,
    }
