"""Streak milestones shown on the dashboard.

Display-only: the bonus text is never credited to the ledger.
"""

from __future__ import annotations

MILESTONES: list[dict] = [
    {"days": 7, "bonus": "₹0.50"},
    {"days": 14, "bonus": "₹1.00"},
    {"days": 30, "bonus": "₹3.00"},
    {"days": 100, "bonus": "₹10.00"},
]


def milestone_bonus(days: int) -> str:
    for m in MILESTONES:
        if m["days"] == days:
            return m["bonus"]
    return ""


def compute_milestone(current_streak: int) -> dict:
    """Next milestone and progress towards it from the previous one.

    Past the last milestone the target stays at the last one and progress
    is reported as 100.
    """
    next_days = MILESTONES[-1]["days"]
    for m in MILESTONES:
        if m["days"] > current_streak:
            next_days = m["days"]
            break

    previous_days = 0
    for m in MILESTONES:
        if m["days"] <= current_streak:
            previous_days = m["days"]

    if current_streak >= MILESTONES[-1]["days"]:
        progress = 100.0
    else:
        progress = (current_streak - previous_days) / (next_days - previous_days) * 100

    return {
        "next_milestone": next_days,
        "previous_milestone": previous_days,
        "progress_percent": round(progress, 2),
        "bonus": milestone_bonus(next_days),
        "reached": [m["days"] for m in MILESTONES if m["days"] <= current_streak],
    }
