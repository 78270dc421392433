"""Daily streak arithmetic on the platform calendar."""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo


@dataclass(frozen=True)
class StreakState:
    current_streak: int = 0
    longest_streak: int = 0
    last_streak_date: date | None = None


def platform_today(now: datetime | None = None, tz_name: str = "UTC") -> date:
    """Calendar date of `now` (default: current server time) in the platform timezone."""
    if now is None:
        now = datetime.now(timezone.utc)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone(ZoneInfo(tz_name)).date()


def day_start_utc(day: date, tz_name: str = "UTC") -> datetime:
    """UTC instant at which `day` begins in the platform timezone."""
    local_midnight = datetime(day.year, day.month, day.day, tzinfo=ZoneInfo(tz_name))
    return local_midnight.astimezone(timezone.utc)


def advance_streak(state: StreakState, today: date) -> StreakState:
    """Apply one qualifying watch event landing on `today`.

    Consecutive day: +1. Same day: unchanged. Gap, first event, or a
    last date in the future (clock moved back): restart at 1.
    """
    last = state.last_streak_date
    if last == today:
        return state
    if last is not None and last == today - timedelta(days=1):
        current = state.current_streak + 1
    else:
        current = 1
    return replace(
        state,
        current_streak=current,
        longest_streak=max(state.longest_streak, current),
        last_streak_date=today,
    )


def is_broken(state: StreakState, today: date) -> bool:
    """True when the last qualifying day is before yesterday."""
    if state.last_streak_date is None:
        return True
    return state.last_streak_date < today - timedelta(days=1)


def effective_streak(state: StreakState, today: date) -> int:
    """Streak length to display today. Reads never mutate stored state."""
    if is_broken(state, today):
        return 0
    return state.current_streak


def replay_streak(days: list[date]) -> StreakState:
    """Rebuild streak state from the calendar days of qualifying events."""
    state = StreakState()
    for day in sorted(days):
        state = advance_streak(state, day)
    return state
