"""Request/response schemas for wallet and withdrawal endpoints."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class WithdrawalRequest(BaseModel):
    amount: Decimal = Field(..., gt=0)
    payment_method: str = Field(..., min_length=1, max_length=32)
    payment_details: str = Field(..., min_length=1, max_length=256)


class WithdrawalResponse(BaseModel):
    """A withdrawal as shown to its owner. Payment details are never echoed back."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    amount: Decimal
    status: str
    payment_method: str
    admin_notes: str | None = None
    created_at: datetime
    processed_at: datetime | None = None


class WithdrawalListResponse(BaseModel):
    withdrawals: list[WithdrawalResponse]


class AdminWithdrawalResponse(WithdrawalResponse):
    user_id: str


class AdminWithdrawalListResponse(BaseModel):
    withdrawals: list[AdminWithdrawalResponse]
    total: int
    page: int
    per_page: int


class WithdrawalStatusRequest(BaseModel):
    status: Literal["approved", "rejected"]
    admin_notes: str | None = Field(None, max_length=1000)


class PaymentDetailsResponse(BaseModel):
    withdrawal_id: str
    payment_method: str
    payment_details: str


class WalletSummaryResponse(BaseModel):
    total_earnings: Decimal
    pending_amount: Decimal
    approved_amount: Decimal
    available_balance: Decimal
    today_earnings: Decimal
    today_watch_time: int
    min_withdrawal: Decimal
    can_withdraw: bool
