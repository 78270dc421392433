"""Rebuild profile aggregates from the watch ledger.

The profile is a cache of the ledger. These functions replay the ledger for
one user (or all users), report any drift and, unless asked not to, write
the replayed values back under the same lock the crediting path uses.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import TYPE_CHECKING, Any

import structlog
from sqlalchemy import case, func, select

from watchearn.config import get_settings
from watchearn.db.models import Profile, WatchEvent
from watchearn.earnings import sum_to_money, to_money
from watchearn.ledger.locks import user_ledger_lock
from watchearn.ledger.service import lock_profile
from watchearn.streaks.engine import StreakState, platform_today, replay_streak

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()

_FIELDS = (
    "total_earnings",
    "total_watch_time",
    "ads_watched",
    "current_streak",
    "longest_streak",
    "last_streak_date",
)


@dataclass
class LedgerTotals:
    total_earnings: Decimal = Decimal("0")
    total_watch_time: int = 0
    ads_watched: int = 0
    streak: StreakState = field(default_factory=StreakState)

    def as_profile_values(self) -> dict[str, Any]:
        return {
            "total_earnings": self.total_earnings,
            "total_watch_time": self.total_watch_time,
            "ads_watched": self.ads_watched,
            "current_streak": self.streak.current_streak,
            "longest_streak": self.streak.longest_streak,
            "last_streak_date": self.streak.last_streak_date,
        }


@dataclass
class ReconcileReport:
    user_id: str
    drift: dict[str, dict[str, str]]
    repaired: bool

    @property
    def has_drift(self) -> bool:
        return bool(self.drift)

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["has_drift"] = self.has_drift
        return data


async def compute_ledger_totals(db: AsyncSession, user_id: str) -> LedgerTotals:
    """Replay the ledger for `user_id` into aggregate and streak values."""
    settings = get_settings()
    result = await db.execute(
        select(
            func.coalesce(func.sum(WatchEvent.earned_amount), 0),
            func.coalesce(func.sum(WatchEvent.watch_time), 0),
            func.coalesce(func.sum(case((WatchEvent.completed.is_(True), 1), else_=0)), 0),
        ).where(WatchEvent.user_id == user_id)
    )
    earned, watch_time, completed = result.one()

    qualifying = await db.execute(
        select(WatchEvent.created_at).where(WatchEvent.user_id == user_id, WatchEvent.watch_time > 0)
    )
    days = {platform_today(ts, settings.platform_timezone) for ts in qualifying.scalars()}

    return LedgerTotals(
        total_earnings=sum_to_money(earned),
        total_watch_time=int(watch_time),
        ads_watched=int(completed or 0),
        streak=replay_streak(sorted(days)),
    )


def _drift(profile: Profile, totals: LedgerTotals) -> dict[str, dict[str, str]]:
    expected = totals.as_profile_values()
    drift: dict[str, dict[str, str]] = {}
    for name in _FIELDS:
        actual = getattr(profile, name)
        want = expected[name]
        if name == "total_earnings":
            actual = to_money(actual)
        if actual != want:
            drift[name] = {"profile": str(actual), "ledger": str(want)}
    return drift


async def rebuild_profile(db: AsyncSession, user_id: str, *, repair: bool = True) -> ReconcileReport:
    """Compare the profile with a ledger replay and fix it when `repair` is set."""
    async with user_ledger_lock(user_id):
        try:
            profile = await lock_profile(db, user_id)
            totals = await compute_ledger_totals(db, user_id)
            drift = _drift(profile, totals)
            repaired = False
            if drift and repair:
                for name, value in totals.as_profile_values().items():
                    setattr(profile, name, value)
                profile.updated_at = datetime.now(timezone.utc)
                repaired = True
            await db.commit()
        except Exception:
            await db.rollback()
            raise

    if drift:
        logger.warning("profile_drift", user_id=user_id, drift=drift, repaired=repaired)
    return ReconcileReport(user_id=user_id, drift=drift, repaired=repaired)


async def reconcile_all(db: AsyncSession, *, repair: bool = True) -> list[ReconcileReport]:
    """Rebuild every profile. Returns only the reports that found drift."""
    user_ids = list((await db.execute(select(Profile.user_id).order_by(Profile.user_id))).scalars())
    await db.rollback()

    drifted: list[ReconcileReport] = []
    for user_id in user_ids:
        report = await rebuild_profile(db, user_id, repair=repair)
        if report.has_drift:
            drifted.append(report)

    logger.info("reconcile_complete", profiles=len(user_ids), drifted=len(drifted), repair=repair)
    return drifted
