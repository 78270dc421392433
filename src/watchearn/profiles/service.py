"""Read models over the profile aggregate: streak card, dashboard stats, admin listing."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import func, select

from watchearn.audit.service import ACTION_PROFILE_REBUILD, write_audit_log
from watchearn.config import get_settings
from watchearn.db.models import Profile
from watchearn.earnings import sum_to_money, to_money
from watchearn.errors import NotFoundError
from watchearn.ledger.reconcile import ReconcileReport, rebuild_profile
from watchearn.ledger.service import ledger_totals_since
from watchearn.streaks.engine import (
    StreakState,
    day_start_utc,
    effective_streak,
    is_broken,
    platform_today,
)
from watchearn.streaks.milestones import compute_milestone

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from watchearn.auth.dependencies import CurrentUser


def _streak_state(profile: Profile | None) -> StreakState:
    if profile is None:
        return StreakState()
    return StreakState(profile.current_streak, profile.longest_streak, profile.last_streak_date)


async def get_streak(db: AsyncSession, user_id: str, now: datetime | None = None) -> dict[str, Any]:
    """Streak as displayed today. A lapsed streak reads as 0; the stored row is left alone."""
    today = platform_today(now, get_settings().platform_timezone)
    state = _streak_state(await db.get(Profile, user_id))
    current = effective_streak(state, today)
    return {
        "current_streak": current,
        "longest_streak": state.longest_streak,
        "last_streak_date": state.last_streak_date,
        "is_active_today": state.last_streak_date == today,
        "is_broken": state.current_streak > 0 and is_broken(state, today),
        **compute_milestone(current),
    }


async def get_stats(db: AsyncSession, user_id: str, now: datetime | None = None) -> dict[str, Any]:
    """Dashboard numbers: lifetime aggregate plus today's ledger totals."""
    settings = get_settings()
    profile = await db.get(Profile, user_id)
    today = platform_today(now, settings.platform_timezone)
    today_earned, today_watch_time = await ledger_totals_since(
        db, user_id, day_start_utc(today, settings.platform_timezone)
    )
    state = _streak_state(profile)
    return {
        "user_id": user_id,
        "full_name": profile.full_name if profile else None,
        "avatar_url": profile.avatar_url if profile else None,
        "total_earnings": to_money(profile.total_earnings) if profile else sum_to_money(0),
        "total_watch_time_seconds": profile.total_watch_time if profile else 0,
        "ads_watched": profile.ads_watched if profile else 0,
        "current_streak": effective_streak(state, today),
        "longest_streak": state.longest_streak,
        "today_earnings": today_earned,
        "today_watch_time_seconds": today_watch_time,
    }


async def list_profiles(db: AsyncSession, page: int = 1, per_page: int = 50) -> tuple[list[Profile], int]:
    total = await db.scalar(select(func.count()).select_from(Profile))
    result = await db.execute(
        select(Profile).order_by(Profile.total_earnings.desc()).offset((page - 1) * per_page).limit(per_page)
    )
    return list(result.scalars().all()), int(total or 0)


async def rebuild_profile_as_admin(
    db: AsyncSession, actor: CurrentUser, user_id: str, *, repair: bool = True
) -> ReconcileReport:
    if await db.get(Profile, user_id) is None:
        raise NotFoundError(f"Profile {user_id} not found", user_id=user_id)
    report = await rebuild_profile(db, user_id, repair=repair)
    await write_audit_log(
        db,
        actor.id,
        ACTION_PROFILE_REBUILD,
        "profile",
        user_id,
        {"repair": repair, "drift": report.drift},
    )
    await db.commit()
    return report
