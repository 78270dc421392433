"""Watch-time to money conversion.

One function shared by the player (live display) and the ledger (crediting).
Only the ledger's result is ever stored.
"""

from __future__ import annotations

from decimal import ROUND_DOWN, Decimal

from watchearn.errors import ValidationError

MONEY_QUANTUM = Decimal("0.000001")


def to_money(value: Decimal | int | float | str) -> Decimal:
    """Coerce to Decimal and truncate to the ledger's 6 decimal places."""
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(MONEY_QUANTUM, rounding=ROUND_DOWN)


def reward(elapsed_seconds: int, duration_seconds: int, max_reward: Decimal | int | float | str) -> Decimal:
    """Partial reward for `elapsed_seconds` of a `duration_seconds` ad worth `max_reward`.

    max_reward * min(elapsed / duration, 1), truncated so rounding never
    over-credits. Non-decreasing in elapsed; equals max_reward once
    elapsed >= duration.
    """
    if duration_seconds <= 0:
        raise ValidationError("Ad duration must be greater than 0 seconds", duration=duration_seconds)
    if elapsed_seconds < 0:
        raise ValidationError("Elapsed watch time cannot be negative", elapsed=elapsed_seconds)

    cap = to_money(max_reward)
    if elapsed_seconds >= duration_seconds:
        return cap
    return to_money(cap * Decimal(elapsed_seconds) / Decimal(duration_seconds))


def is_complete(elapsed_seconds: int, duration_seconds: int) -> bool:
    return elapsed_seconds >= duration_seconds


def sum_to_money(value: Decimal | int | float | str | None) -> Decimal:
    """Normalize a database SUM of money columns.

    Summands are already exact at 6 places, so the sum is rounded to nearest
    rather than truncated; backends that add in binary floating point would
    otherwise lose a unit in the last place.
    """
    if value is None:
        return Decimal("0").quantize(MONEY_QUANTUM)
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(MONEY_QUANTUM)
