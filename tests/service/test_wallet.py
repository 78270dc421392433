"""Withdrawal requests, balance accounting and the admin payout workflow."""

import asyncio
from datetime import datetime, timezone
from decimal import Decimal

import pytest
from sqlalchemy import select

from tests.helpers import ADMIN_ID, OTHER_USER_ID, USER_ID, make_ad, make_profile, make_withdrawal
from watchearn.appsettings.service import update_settings
from watchearn.audit.service import ACTION_DECRYPT_PAYMENT_DETAILS, ACTION_WITHDRAWAL_STATUS, list_audit_log
from watchearn.auth.dependencies import CurrentUser
from watchearn.config import get_settings
from watchearn.database import get_session_factory
from watchearn.db.models import Withdrawal
from watchearn.errors import (
    AuthorizationError,
    InsufficientBalanceError,
    NotFoundError,
    RateLimitError,
    StateConflictError,
    ValidationError,
)
from watchearn.ledger.service import record_watch_event
from watchearn.wallet.service import (
    get_wallet_summary,
    list_user_withdrawals,
    list_withdrawals,
    request_withdrawal,
    reveal_payment_details,
    set_withdrawal_status,
)

ADMIN = CurrentUser(id=ADMIN_ID, email="admin@example.com", is_admin=True)
VIEWER = CurrentUser(id=USER_ID, email="viewer@example.com")


@pytest.fixture
def low_minimum(monkeypatch):
    monkeypatch.setenv("WE_MIN_WITHDRAWAL_DEFAULT", "10")
    get_settings.cache_clear()


class TestRequestWithdrawal:
    @pytest.mark.asyncio
    async def test_pending_withdrawal_reduces_available(self, db, redis_client, low_minimum):
        """Balance 100 with 60 pending: a request for 50 is refused, 40 is accepted."""
        await make_profile(db, total_earnings=Decimal("100"))
        await make_withdrawal(db, amount="60")

        with pytest.raises(InsufficientBalanceError) as exc_info:
            await request_withdrawal(db, redis_client, USER_ID, Decimal("50"), "upi", "viewer@upi")
        assert exc_info.value.context["available_balance"] == "40.000000"

        withdrawal = await request_withdrawal(db, redis_client, USER_ID, Decimal("40"), "upi", "viewer@upi")
        assert withdrawal.status == "pending"
        summary = await get_wallet_summary(db, USER_ID)
        assert summary.available_balance == Decimal("0")
        assert summary.pending_amount == Decimal("100")

    @pytest.mark.asyncio
    async def test_below_minimum(self, db, redis_client):
        await make_profile(db, total_earnings=Decimal("500"))
        with pytest.raises(ValidationError, match="Minimum withdrawal amount is 100"):
            await request_withdrawal(db, redis_client, USER_ID, Decimal("99.99"), "upi", "viewer@upi")

    @pytest.mark.asyncio
    async def test_minimum_comes_from_app_settings(self, db, redis_client):
        await make_profile(db, total_earnings=Decimal("500"))
        await update_settings(db, ADMIN_ID, {"min_withdrawal": "250"})
        with pytest.raises(ValidationError, match="250"):
            await request_withdrawal(db, redis_client, USER_ID, Decimal("200"), "upi", "viewer@upi")

    @pytest.mark.asyncio
    async def test_user_without_profile_has_nothing(self, db, redis_client, low_minimum):
        with pytest.raises(InsufficientBalanceError):
            await request_withdrawal(db, redis_client, USER_ID, Decimal("10"), "upi", "viewer@upi")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("amount", ["0", "-5"])
    async def test_non_positive_amount(self, db, redis_client, amount):
        with pytest.raises(ValidationError):
            await request_withdrawal(db, redis_client, USER_ID, Decimal(amount), "upi", "viewer@upi")

    @pytest.mark.asyncio
    async def test_blank_payment_details(self, db, redis_client, low_minimum):
        await make_profile(db, total_earnings=Decimal("100"))
        with pytest.raises(ValidationError, match="required"):
            await request_withdrawal(db, redis_client, USER_ID, Decimal("20"), "upi", "   ")

    @pytest.mark.asyncio
    async def test_details_are_encrypted_at_rest(self, db, redis_client, low_minimum):
        await make_profile(db, total_earnings=Decimal("100"))
        withdrawal = await request_withdrawal(db, redis_client, USER_ID, Decimal("20"), "upi", "viewer@upi")

        stored = await db.scalar(select(Withdrawal.payment_details).where(Withdrawal.id == withdrawal.id))
        assert "viewer@upi" not in stored

    @pytest.mark.asyncio
    async def test_daily_request_limit(self, db, redis_client, low_minimum, monkeypatch):
        monkeypatch.setenv("WE_WITHDRAWAL_REQUESTS_PER_DAY", "1")
        get_settings.cache_clear()
        await make_profile(db, total_earnings=Decimal("100"))

        await request_withdrawal(db, redis_client, USER_ID, Decimal("10"), "upi", "viewer@upi")
        with pytest.raises(RateLimitError):
            await request_withdrawal(db, redis_client, USER_ID, Decimal("10"), "upi", "viewer@upi")
        assert len(await list_user_withdrawals(db, USER_ID)) == 1


class TestConcurrentWithdrawals:
    @pytest.mark.asyncio
    async def test_two_requests_cannot_spend_the_same_balance(self, db, redis_client, low_minimum):
        """Balance 100, two simultaneous requests for 60: exactly one is accepted."""
        await make_profile(db, total_earnings=Decimal("100"))
        factory = get_session_factory()

        async def withdraw():
            async with factory() as session:
                return await request_withdrawal(session, redis_client, USER_ID, Decimal("60"), "upi", "viewer@upi")

        results = await asyncio.gather(withdraw(), withdraw(), return_exceptions=True)

        accepted = [r for r in results if isinstance(r, Withdrawal)]
        refused = [r for r in results if isinstance(r, InsufficientBalanceError)]
        assert len(accepted) == 1
        assert len(refused) == 1
        assert refused[0].context["available_balance"] == "40.000000"

        async with factory() as session:
            summary = await get_wallet_summary(session, USER_ID)
            assert summary.pending_amount == Decimal("60")
            assert summary.available_balance == Decimal("40")

    @pytest.mark.asyncio
    async def test_withdrawal_racing_watch_event(self, db, redis_client, low_minimum):
        """A credit landing during a withdrawal is neither lost nor double-spent."""
        await make_profile(db, total_earnings=Decimal("100"))
        ad = await make_ad(db, duration=30, reward_amount=Decimal("0.50"))
        ad_id = ad.id
        factory = get_session_factory()

        async def withdraw():
            async with factory() as session:
                return await request_withdrawal(session, redis_client, USER_ID, Decimal("100"), "upi", "viewer@upi")

        async def watch():
            async with factory() as session:
                return await record_watch_event(session, redis_client, USER_ID, ad_id, 30)

        withdrawal, event = await asyncio.gather(withdraw(), watch())

        assert withdrawal.status == "pending"
        assert event.earned_amount == Decimal("0.5")
        async with factory() as session:
            summary = await get_wallet_summary(session, USER_ID)
            assert summary.total_earnings == Decimal("100.5")
            assert summary.pending_amount == Decimal("100")
            assert summary.available_balance == Decimal("0.5")


class TestWalletSummary:
    @pytest.mark.asyncio
    async def test_available_excludes_pending_and_approved(self, db, low_minimum):
        await make_profile(db, total_earnings=Decimal("100"))
        await make_withdrawal(db, amount="10", status="pending")
        await make_withdrawal(db, amount="20", status="approved")
        await make_withdrawal(db, amount="30", status="rejected")

        summary = await get_wallet_summary(db, USER_ID)
        assert summary.total_earnings == Decimal("100")
        assert summary.pending_amount == Decimal("10")
        assert summary.approved_amount == Decimal("20")
        assert summary.available_balance == Decimal("70")
        assert summary.min_withdrawal == Decimal("10")

    @pytest.mark.asyncio
    async def test_today_totals_come_from_the_ledger(self, db, redis_client):
        ad = await make_ad(db)
        now = datetime(2024, 7, 2, 12, 0, tzinfo=timezone.utc)
        await record_watch_event(db, redis_client, USER_ID, ad.id, 30, now=now.replace(day=1))
        await record_watch_event(db, redis_client, USER_ID, ad.id, 15, now=now)

        summary = await get_wallet_summary(db, USER_ID, now=now)
        assert summary.total_earnings == Decimal("0.75")
        assert summary.today_earnings == Decimal("0.25")
        assert summary.today_watch_time == 15

    @pytest.mark.asyncio
    async def test_unknown_user_is_empty(self, db):
        summary = await get_wallet_summary(db, OTHER_USER_ID)
        assert summary.total_earnings == Decimal("0")
        assert summary.available_balance == Decimal("0")


class TestAdminWorkflow:
    @pytest.mark.asyncio
    async def test_approve_then_terminal(self, db):
        await make_profile(db, total_earnings=Decimal("100"))
        withdrawal = await make_withdrawal(db, amount="50")
        withdrawal_id = withdrawal.id

        approved = await set_withdrawal_status(db, ADMIN, withdrawal_id, "approved", "paid via UPI")
        assert approved.status == "approved"
        assert approved.processed_at is not None
        assert approved.admin_notes == "paid via UPI"

        with pytest.raises(StateConflictError, match="already approved"):
            await set_withdrawal_status(db, ADMIN, withdrawal_id, "rejected")

        summary = await get_wallet_summary(db, USER_ID)
        assert summary.available_balance == Decimal("50")

    @pytest.mark.asyncio
    async def test_reject_releases_amount(self, db, low_minimum):
        await make_profile(db, total_earnings=Decimal("100"))
        withdrawal = await make_withdrawal(db, amount="80")
        await set_withdrawal_status(db, ADMIN, withdrawal.id, "rejected", "details invalid")

        summary = await get_wallet_summary(db, USER_ID)
        assert summary.available_balance == Decimal("100")

    @pytest.mark.asyncio
    async def test_status_change_is_audited(self, db):
        await make_profile(db, total_earnings=Decimal("100"))
        withdrawal = await make_withdrawal(db, amount="50")
        await set_withdrawal_status(db, ADMIN, withdrawal.id, "approved")

        entries, total = await list_audit_log(db, ACTION_WITHDRAWAL_STATUS)
        assert total == 1
        assert entries[0].meta["to"] == "approved"
        assert entries[0].actor_user_id == ADMIN_ID

    @pytest.mark.asyncio
    async def test_only_admins_decide(self, db):
        await make_profile(db, total_earnings=Decimal("100"))
        withdrawal = await make_withdrawal(db, amount="50")
        with pytest.raises(AuthorizationError):
            await set_withdrawal_status(db, VIEWER, withdrawal.id, "approved")

    @pytest.mark.asyncio
    async def test_back_to_pending_is_not_a_decision(self, db):
        await make_profile(db, total_earnings=Decimal("100"))
        withdrawal = await make_withdrawal(db, amount="50")
        with pytest.raises(ValidationError):
            await set_withdrawal_status(db, ADMIN, withdrawal.id, "pending")

    @pytest.mark.asyncio
    async def test_unknown_withdrawal(self, db):
        with pytest.raises(NotFoundError):
            await set_withdrawal_status(db, ADMIN, "missing", "approved")

    @pytest.mark.asyncio
    async def test_listing_by_status(self, db):
        await make_profile(db, total_earnings=Decimal("100"))
        await make_withdrawal(db, amount="10", status="pending")
        await make_withdrawal(db, amount="20", status="approved")

        pending, total = await list_withdrawals(db, "pending")
        assert total == 1
        assert pending[0].amount == Decimal("10")
        with pytest.raises(ValidationError):
            await list_withdrawals(db, "cancelled")


class TestPaymentDetails:
    @pytest.mark.asyncio
    async def test_reveal_is_audited(self, db):
        await make_profile(db, total_earnings=Decimal("100"))
        withdrawal = await make_withdrawal(db, amount="50")

        assert await reveal_payment_details(db, ADMIN, withdrawal.id) == "viewer@upi"
        entries, total = await list_audit_log(db, ACTION_DECRYPT_PAYMENT_DETAILS)
        assert total == 1
        assert entries[0].resource_id == withdrawal.id

    @pytest.mark.asyncio
    async def test_reveal_requires_admin(self, db):
        await make_profile(db, total_earnings=Decimal("100"))
        withdrawal = await make_withdrawal(db, amount="50")
        with pytest.raises(AuthorizationError):
            await reveal_payment_details(db, VIEWER, withdrawal.id)
        _, total = await list_audit_log(db, ACTION_DECRYPT_PAYMENT_DETAILS)
        assert total == 0
