"""Wallet and withdrawal endpoints, including the admin payout flow."""

from decimal import Decimal

import pytest

from tests.helpers import USER_ID, auth_headers, make_profile, make_withdrawal
from watchearn.config import get_settings


@pytest.fixture
def low_minimum(monkeypatch):
    monkeypatch.setenv("WE_MIN_WITHDRAWAL_DEFAULT", "10")
    get_settings.cache_clear()


class TestWallet:
    @pytest.mark.asyncio
    async def test_summary(self, client, db, low_minimum):
        await make_profile(db, total_earnings=Decimal("100"))
        await make_withdrawal(db, amount="60")

        body = (await client.get("/api/v1/users/me/wallet", headers=auth_headers())).json()
        assert Decimal(body["total_earnings"]) == 100
        assert Decimal(body["pending_amount"]) == 60
        assert Decimal(body["available_balance"]) == 40
        assert Decimal(body["min_withdrawal"]) == 10
        assert body["can_withdraw"] is True

    @pytest.mark.asyncio
    async def test_request_and_list(self, client, db, low_minimum):
        await make_profile(db, total_earnings=Decimal("100"))
        response = await client.post(
            "/api/v1/withdrawals",
            json={"amount": "25", "payment_method": "upi", "payment_details": "viewer@upi"},
            headers=auth_headers(),
        )
        assert response.status_code == 201
        created = response.json()
        assert created["status"] == "pending"
        assert "payment_details" not in created

        listed = (await client.get("/api/v1/withdrawals", headers=auth_headers())).json()
        assert [w["id"] for w in listed["withdrawals"]] == [created["id"]]

    @pytest.mark.asyncio
    async def test_insufficient_balance(self, client, db, low_minimum):
        await make_profile(db, total_earnings=Decimal("100"))
        await make_withdrawal(db, amount="60")
        response = await client.post(
            "/api/v1/withdrawals",
            json={"amount": "50", "payment_method": "upi", "payment_details": "viewer@upi"},
            headers=auth_headers(),
        )
        assert response.status_code == 422
        assert response.json()["code"] == "insufficient_balance"

    @pytest.mark.asyncio
    async def test_below_minimum(self, client, db):
        await make_profile(db, total_earnings=Decimal("500"))
        response = await client.post(
            "/api/v1/withdrawals",
            json={"amount": "5", "payment_method": "upi", "payment_details": "viewer@upi"},
            headers=auth_headers(),
        )
        assert response.status_code == 422
        assert response.json()["detail"] == "Minimum withdrawal amount is 100"

    @pytest.mark.asyncio
    async def test_zero_amount_fails_schema(self, client):
        response = await client.post(
            "/api/v1/withdrawals",
            json={"amount": "0", "payment_method": "upi", "payment_details": "viewer@upi"},
            headers=auth_headers(),
        )
        assert response.status_code == 422


class TestAdminPayouts:
    @pytest.mark.asyncio
    async def test_review_flow(self, client, db, admin):
        await make_profile(db, total_earnings=Decimal("100"))
        withdrawal = await make_withdrawal(db, amount="50")
        headers = auth_headers(admin)

        listed = (await client.get("/api/v1/admin/withdrawals?status=pending", headers=headers)).json()
        assert listed["total"] == 1
        assert listed["withdrawals"][0]["user_id"] == USER_ID

        revealed = await client.post(f"/api/v1/admin/withdrawals/{withdrawal.id}/decrypt", headers=headers)
        assert revealed.status_code == 200
        assert revealed.json()["payment_details"] == "viewer@upi"

        approved = await client.post(
            f"/api/v1/admin/withdrawals/{withdrawal.id}/status",
            json={"status": "approved", "admin_notes": "paid"},
            headers=headers,
        )
        assert approved.status_code == 200
        assert approved.json()["status"] == "approved"
        assert approved.json()["processed_at"] is not None

        again = await client.post(
            f"/api/v1/admin/withdrawals/{withdrawal.id}/status",
            json={"status": "rejected"},
            headers=headers,
        )
        assert again.status_code == 409

        audit = (await client.get("/api/v1/admin/audit-log", headers=headers)).json()
        assert {e["action"] for e in audit["entries"]} == {
            "withdrawal.decrypt_payment_details",
            "withdrawal.set_status",
        }

    @pytest.mark.asyncio
    async def test_unknown_status_filter(self, client, admin):
        response = await client.get("/api/v1/admin/withdrawals?status=cancelled", headers=auth_headers(admin))
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_status_body_is_validated(self, client, db, admin):
        await make_profile(db, total_earnings=Decimal("100"))
        withdrawal = await make_withdrawal(db, amount="50")
        response = await client.post(
            f"/api/v1/admin/withdrawals/{withdrawal.id}/status",
            json={"status": "pending"},
            headers=auth_headers(admin),
        )
        assert response.status_code == 422
