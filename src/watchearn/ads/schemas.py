"""Request/response schemas for ad inventory endpoints."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

PLACEMENTS = ("home", "dashboard", "watch_page", "wallet", "sidebar", "popup")

AdType = Literal["video", "image", "banner", "link"]


def _check_placement(v: list[str] | None) -> list[str] | None:
    if v is None:
        return v
    if not v:
        msg = "Select at least one placement"
        raise ValueError(msg)
    unknown = sorted(set(v) - set(PLACEMENTS))
    if unknown:
        msg = f"Unknown placement(s): {', '.join(unknown)}"
        raise ValueError(msg)
    # de-duplicate, keep order
    return list(dict.fromkeys(v))


def _check_url(v: str | None) -> str | None:
    if v is None or v == "":
        return v
    if not v.startswith(("http://", "https://")):
        msg = "Must be a valid URL"
        raise ValueError(msg)
    return v


class AdCreateRequest(BaseModel):
    """Admin ad creation. Bounds match the admin form."""

    title: str = Field(..., min_length=1, max_length=100)
    description: str | None = Field(None, max_length=500)
    ad_type: AdType = "video"
    video_url: str = ""
    image_url: str | None = None
    link_url: str | None = None
    duration: int = Field(..., ge=1, le=300)
    reward_amount: Decimal = Field(..., ge=0, le=1000)
    placement: list[str] = Field(default_factory=lambda: ["watch_page"])
    priority: int = Field(0, ge=0, le=100)
    is_active: bool = True

    @field_validator("placement")
    @classmethod
    def validate_placement(cls, v: list[str]) -> list[str]:
        return _check_placement(v)  # type: ignore[return-value]

    @field_validator("video_url", "image_url", "link_url")
    @classmethod
    def validate_url(cls, v: str | None) -> str | None:
        return _check_url(v)


class AdUpdateRequest(BaseModel):
    """Partial update; omitted fields are left unchanged."""

    title: str | None = Field(None, min_length=1, max_length=100)
    description: str | None = Field(None, max_length=500)
    ad_type: AdType | None = None
    video_url: str | None = None
    image_url: str | None = None
    link_url: str | None = None
    duration: int | None = Field(None, ge=1, le=300)
    reward_amount: Decimal | None = Field(None, ge=0, le=1000)
    placement: list[str] | None = None
    priority: int | None = Field(None, ge=0, le=100)
    is_active: bool | None = None

    @field_validator("placement")
    @classmethod
    def validate_placement(cls, v: list[str] | None) -> list[str] | None:
        return _check_placement(v)

    @field_validator("video_url", "image_url", "link_url")
    @classmethod
    def validate_url(cls, v: str | None) -> str | None:
        return _check_url(v)


class SetActiveRequest(BaseModel):
    is_active: bool


class AdResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    title: str
    description: str | None = None
    ad_type: str
    video_url: str
    image_url: str | None = None
    link_url: str | None = None
    duration: int
    reward_amount: Decimal
    is_active: bool
    placement: list[str]
    priority: int
    created_at: datetime | None = None


class AdListResponse(BaseModel):
    ads: list[AdResponse]
    total: int
