"""Streak, dashboard stats and admin profile endpoints."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, ConfigDict
from sqlalchemy.ext.asyncio import AsyncSession

from watchearn.auth.dependencies import CurrentUser, get_current_user, require_admin
from watchearn.database import get_session
from watchearn.profiles import service

router = APIRouter(prefix="/api/v1/users/me", tags=["Users"])
admin_router = APIRouter(prefix="/api/v1/admin/profiles", tags=["Admin"])


class StreakResponse(BaseModel):
    current_streak: int
    longest_streak: int
    last_streak_date: date | None = None
    is_active_today: bool
    is_broken: bool
    next_milestone: int
    previous_milestone: int
    progress_percent: float
    bonus: str
    reached: list[int]


class StatsResponse(BaseModel):
    user_id: str
    full_name: str | None = None
    avatar_url: str | None = None
    total_earnings: Decimal
    total_watch_time_seconds: int
    ads_watched: int
    current_streak: int
    longest_streak: int
    today_earnings: Decimal
    today_watch_time_seconds: int


class AdminProfileEntry(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: str
    full_name: str | None = None
    total_earnings: Decimal
    total_watch_time: int
    ads_watched: int
    current_streak: int
    longest_streak: int
    last_streak_date: date | None = None


class AdminProfileListResponse(BaseModel):
    profiles: list[AdminProfileEntry]
    total: int
    page: int
    per_page: int


class RebuildResponse(BaseModel):
    user_id: str
    has_drift: bool
    repaired: bool
    drift: dict[str, dict[str, str]]


@router.get("/streak", response_model=StreakResponse)
async def get_my_streak(
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> StreakResponse:
    return StreakResponse(**await service.get_streak(db, user.id))


@router.get("/stats", response_model=StatsResponse)
async def get_my_stats(
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> StatsResponse:
    return StatsResponse(**await service.get_stats(db, user.id))


@admin_router.get("", response_model=AdminProfileListResponse)
async def admin_list_profiles(
    page: int = Query(1, ge=1),
    per_page: int = Query(50, ge=1, le=100),
    _admin: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> AdminProfileListResponse:
    profiles, total = await service.list_profiles(db, page, per_page)
    return AdminProfileListResponse(
        profiles=[AdminProfileEntry.model_validate(p) for p in profiles],
        total=total,
        page=page,
        per_page=per_page,
    )


@admin_router.post("/{user_id}/rebuild", response_model=RebuildResponse)
async def admin_rebuild_profile(
    user_id: str,
    repair: bool = Query(True),
    admin: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> RebuildResponse:
    """Replay the ledger into the profile and report any drift."""
    report = await service.rebuild_profile_as_admin(db, admin, user_id, repair=repair)
    return RebuildResponse(**report.to_dict())
