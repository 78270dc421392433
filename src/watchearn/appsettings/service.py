"""Admin-editable site settings stored in `app_settings`.

Values are stored as strings. The core only reads `min_withdrawal`; the
rest are served to the frontend, and page script snippets are handed out
verbatim with the region they belong to.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import TYPE_CHECKING

from sqlalchemy import select

from watchearn.audit.service import ACTION_SETTINGS_UPDATE, write_audit_log
from watchearn.config import get_settings
from watchearn.db.models import AppSetting
from watchearn.errors import NotFoundError, ValidationError

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)


def _number_between(low: int, high: int, label: str) -> Callable[[str], str]:
    def check(value: str) -> str:
        try:
            number = Decimal(value.strip())
        except InvalidOperation:
            msg = f"{label} must be a number"
            raise ValidationError(msg) from None
        if not number.is_finite() or number < low or number > high:
            msg = f"{label} must be between {low} and {high}"
            raise ValidationError(msg)
        return value.strip()

    return check


def _max_length(limit: int, label: str) -> Callable[[str], str]:
    def check(value: str) -> str:
        if len(value) > limit:
            msg = f"{label} must be less than {limit} characters"
            raise ValidationError(msg)
        return value

    return check


# key -> default, public visibility, validator, snippet region
SETTING_DEFINITIONS: dict[str, dict] = {
    "min_withdrawal": {
        "default": None,  # filled from WE_MIN_WITHDRAWAL_DEFAULT
        "public": True,
        "validate": _number_between(0, 100000, "Minimum withdrawal"),
        "description": "Smallest withdrawal amount a user may request",
    },
    "revenue_share_percent": {
        "default": "50",
        "public": True,
        "validate": _number_between(0, 100, "Revenue share"),
        "description": "Share of ad revenue paid out to viewers (display only)",
    },
    "landing_text": {
        "default": "",
        "public": True,
        "validate": _max_length(5000, "Landing text"),
        "description": "Landing page copy",
    },
    "how_it_works_content": {
        "default": "",
        "public": True,
        "validate": _max_length(10000, "How it works content"),
        "description": "How-it-works page copy",
    },
    "global_head_script": {"default": "", "region": "head", "validate": _max_length(50000, "Script")},
    "global_body_script": {"default": "", "region": "body", "validate": _max_length(50000, "Script")},
    "home_page_script": {"default": "", "region": "page:home", "validate": _max_length(50000, "Script")},
    "dashboard_page_script": {
        "default": "",
        "region": "page:dashboard",
        "validate": _max_length(50000, "Script"),
    },
    "watch_page_script": {"default": "", "region": "page:watch_page", "validate": _max_length(50000, "Script")},
}


def default_value(key: str) -> str:
    if key == "min_withdrawal":
        return get_settings().min_withdrawal_default
    return SETTING_DEFINITIONS[key]["default"]


async def get_all_settings(db: AsyncSession) -> dict[str, str]:
    """Every known key with its stored value or default."""
    result = await db.execute(select(AppSetting))
    stored = {row.key: row.value for row in result.scalars()}
    return {key: stored.get(key, default_value(key)) for key in SETTING_DEFINITIONS}


async def get_public_settings(db: AsyncSession) -> dict[str, object]:
    values = await get_all_settings(db)
    public: dict[str, object] = {k: v for k, v in values.items() if SETTING_DEFINITIONS[k].get("public")}
    settings = get_settings()
    public["forfeit_partial_on_pause"] = settings.forfeit_partial_on_pause
    public["platform_timezone"] = settings.platform_timezone
    return public


async def get_min_withdrawal(db: AsyncSession) -> Decimal:
    """Configured minimum withdrawal; falls back to the default when unset or unparsable."""
    row = await db.get(AppSetting, "min_withdrawal")
    raw = row.value if row is not None else default_value("min_withdrawal")
    try:
        value = Decimal(raw.strip())
    except InvalidOperation:
        logger.warning("app setting min_withdrawal=%r is not a number; using default", raw)
        value = Decimal(default_value("min_withdrawal"))
    return value


async def get_snippet(db: AsyncSession, key: str) -> dict[str, str]:
    """Opaque script markup for `key` and its render region. Never parsed here."""
    definition = SETTING_DEFINITIONS.get(key)
    if definition is None or "region" not in definition:
        raise NotFoundError(f"Unknown snippet '{key}'", key=key)
    row = await db.get(AppSetting, key)
    return {
        "key": key,
        "region": definition["region"],
        "content": row.value if row is not None else default_value(key),
    }


async def update_settings(db: AsyncSession, actor_user_id: str, changes: dict[str, str]) -> dict[str, str]:
    """Validate and store `changes` in one transaction, recording an audit row."""
    unknown = sorted(set(changes) - set(SETTING_DEFINITIONS))
    if unknown:
        raise ValidationError(f"Unknown setting(s): {', '.join(unknown)}", keys=unknown)

    cleaned = {key: SETTING_DEFINITIONS[key]["validate"](value) for key, value in changes.items()}

    now = datetime.now(timezone.utc)
    try:
        for key, value in cleaned.items():
            row = await db.get(AppSetting, key)
            if row is None:
                db.add(AppSetting(
                    key=key,
                    value=value,
                    description=SETTING_DEFINITIONS[key].get("description"),
                    updated_at=now,
                ))
            else:
                row.value = value
                row.updated_at = now
        await write_audit_log(
            db, actor_user_id, ACTION_SETTINGS_UPDATE, "app_settings", None, {"keys": sorted(cleaned)}
        )
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info("app settings updated by %s: %s", actor_user_id, ", ".join(sorted(cleaned)))
    return await get_all_settings(db)
