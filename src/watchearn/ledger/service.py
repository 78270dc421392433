"""Watch-event crediting: the server-side trust boundary.

A client reports how long it watched an ad. Everything else (whether the ad
may be credited, how much it pays, whether it counts as completed) is
decided here from server-held rows, and the ledger insert, the profile
increments and the streak update commit together or not at all.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import TYPE_CHECKING

import structlog
from sqlalchemy import func, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert

from watchearn.config import get_settings
from watchearn.db.models import Ad, Profile, WatchEvent
from watchearn.earnings import reward, sum_to_money
from watchearn.errors import NotFoundError, StateConflictError, ValidationError
from watchearn.ledger.locks import user_ledger_lock
from watchearn.ratelimit import Window, enforce
from watchearn.streaks.engine import StreakState, advance_streak, platform_today

if TYPE_CHECKING:
    import redis.asyncio as aioredis
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()


@dataclass(frozen=True)
class WatchEventResult:
    event_id: str
    ad_id: str
    watch_time_seconds: int
    earned_amount: Decimal
    completed: bool
    total_earnings: Decimal
    ads_watched: int
    current_streak: int
    longest_streak: int
    last_streak_date: date | None


# ---------------------------------------------------------------------------
# Profile row
# ---------------------------------------------------------------------------


async def ensure_profile(db: AsyncSession, user_id: str, now: datetime | None = None) -> None:
    """Insert an empty profile for `user_id` unless one exists."""
    if now is None:
        now = datetime.now(timezone.utc)
    insert = sqlite_insert if db.get_bind().dialect.name == "sqlite" else pg_insert
    stmt = insert(Profile).values(
        user_id=user_id,
        total_earnings=Decimal("0"),
        total_watch_time=0,
        ads_watched=0,
        current_streak=0,
        longest_streak=0,
        created_at=now,
        updated_at=now,
    )
    await db.execute(stmt.on_conflict_do_nothing(index_elements=["user_id"]))


async def lock_profile(db: AsyncSession, user_id: str) -> Profile:
    """Create if needed, then load the profile row FOR UPDATE with fresh values."""
    await ensure_profile(db, user_id)
    result = await db.execute(
        select(Profile)
        .where(Profile.user_id == user_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    return result.scalar_one()


async def get_profile(db: AsyncSession, user_id: str) -> Profile | None:
    return await db.get(Profile, user_id)


# ---------------------------------------------------------------------------
# Crediting
# ---------------------------------------------------------------------------


def watch_event_windows() -> list[Window]:
    settings = get_settings()
    return [
        Window(name="minute", limit=settings.watch_events_per_minute, seconds=60),
        Window(name="day", limit=settings.watch_events_per_day, seconds=86400),
    ]


def _check_watch_time(value: object) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError("watch_time_seconds must be an integer", watch_time_seconds=value)
    if value < 0:
        raise ValidationError("watch_time_seconds cannot be negative", watch_time_seconds=value)
    return value


async def record_watch_event(
    db: AsyncSession,
    redis: aioredis.Redis | None,
    user_id: str,
    ad_id: str,
    watch_time_seconds: int,
    completed: bool = False,
    *,
    now: datetime | None = None,
) -> WatchEventResult:
    """Validate a client-reported session and credit it.

    Rejections (NotFoundError, StateConflictError, ValidationError,
    RateLimitError) leave the ledger and the profile untouched.
    """
    settings = get_settings()
    if now is None:
        now = datetime.now(timezone.utc)
    watch_time_seconds = _check_watch_time(watch_time_seconds)

    await enforce(redis, "watch_event", user_id, watch_event_windows())

    async with user_ledger_lock(user_id):
        try:
            ad = await db.get(Ad, ad_id)
            if ad is None:
                raise NotFoundError(f"Ad {ad_id} not found", ad_id=ad_id)
            if not ad.is_active:
                raise StateConflictError(f"Ad {ad_id} is not active", ad_id=ad_id)

            limit = ad.duration + settings.watch_time_grace_seconds
            if watch_time_seconds > limit:
                raise ValidationError(
                    f"watch_time_seconds {watch_time_seconds} exceeds ad duration {ad.duration}s "
                    f"(+{settings.watch_time_grace_seconds}s grace)",
                    watch_time_seconds=watch_time_seconds,
                    duration=ad.duration,
                )
            # Timer overshoot inside the grace is credited as exactly the duration.
            credited_time = min(watch_time_seconds, ad.duration)
            is_completed = credited_time >= ad.duration
            if completed and not is_completed:
                raise ValidationError(
                    f"completed=true requires watch_time_seconds >= {ad.duration}",
                    watch_time_seconds=watch_time_seconds,
                    duration=ad.duration,
                )

            earned = reward(credited_time, ad.duration, ad.reward_amount)

            profile = await lock_profile(db, user_id)
            event = WatchEvent(
                user_id=user_id,
                ad_id=ad.id,
                watch_time=credited_time,
                earned_amount=earned,
                completed=is_completed,
                created_at=now,
            )
            db.add(event)

            profile.total_earnings = Profile.total_earnings + earned
            profile.total_watch_time = Profile.total_watch_time + credited_time
            if is_completed:
                profile.ads_watched = Profile.ads_watched + 1
            if credited_time > 0:
                streak = advance_streak(
                    StreakState(profile.current_streak, profile.longest_streak, profile.last_streak_date),
                    platform_today(now, settings.platform_timezone),
                )
                profile.current_streak = streak.current_streak
                profile.longest_streak = streak.longest_streak
                profile.last_streak_date = streak.last_streak_date
            profile.updated_at = now

            await db.flush()
            await db.refresh(profile, ["total_earnings", "total_watch_time", "ads_watched"])
            await db.commit()
        except Exception:
            await db.rollback()
            raise

    logger.info(
        "watch_event_recorded",
        user_id=user_id,
        ad_id=ad_id,
        watch_time=credited_time,
        earned=str(earned),
        completed=is_completed,
        current_streak=profile.current_streak,
    )
    return WatchEventResult(
        event_id=event.id,
        ad_id=ad.id,
        watch_time_seconds=credited_time,
        earned_amount=earned,
        completed=is_completed,
        total_earnings=profile.total_earnings,
        ads_watched=profile.ads_watched,
        current_streak=profile.current_streak,
        longest_streak=profile.longest_streak,
        last_streak_date=profile.last_streak_date,
    )


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------


async def list_watch_history(
    db: AsyncSession,
    user_id: str,
    page: int = 1,
    per_page: int = 50,
) -> tuple[list[tuple[WatchEvent, str | None]], int]:
    """Newest-first ledger rows with the ad title (None for deleted ads), plus the total count."""
    total = await db.scalar(select(func.count()).select_from(WatchEvent).where(WatchEvent.user_id == user_id))
    result = await db.execute(
        select(WatchEvent, Ad.title)
        .outerjoin(Ad, WatchEvent.ad_id == Ad.id)
        .where(WatchEvent.user_id == user_id)
        .order_by(WatchEvent.created_at.desc())
        .offset((page - 1) * per_page)
        .limit(per_page)
    )
    rows = [(row.WatchEvent, row.title) for row in result]
    return rows, int(total or 0)


async def ledger_totals_since(db: AsyncSession, user_id: str, since: datetime) -> tuple[Decimal, int]:
    """Earnings and watch time credited at or after `since`."""
    result = await db.execute(
        select(
            func.coalesce(func.sum(WatchEvent.earned_amount), 0),
            func.coalesce(func.sum(WatchEvent.watch_time), 0),
        ).where(WatchEvent.user_id == user_id, WatchEvent.created_at >= since)
    )
    earned, watch_time = result.one()
    return sum_to_money(earned), int(watch_time)
