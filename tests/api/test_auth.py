"""Authentication and admin gating on the HTTP surface."""

import pytest

from tests.helpers import auth_headers


class TestAuthentication:
    @pytest.mark.asyncio
    async def test_missing_token(self, client):
        response = await client.get("/api/v1/users/me/wallet")
        assert response.status_code == 401
        assert response.json() == {"detail": "Authentication required", "code": "unauthenticated"}

    @pytest.mark.asyncio
    async def test_garbage_token(self, client):
        response = await client.get("/api/v1/users/me/wallet", headers={"Authorization": "Bearer not-a-jwt"})
        assert response.status_code == 401
        assert response.json()["code"] == "unauthenticated"

    @pytest.mark.asyncio
    async def test_public_endpoints_need_no_token(self, client):
        assert (await client.get("/api/v1/ads")).status_code == 200
        assert (await client.get("/api/v1/settings/public")).status_code == 200


class TestAdminGate:
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/v1/admin/ads"),
            ("GET", "/api/v1/admin/withdrawals"),
            ("GET", "/api/v1/admin/profiles"),
            ("GET", "/api/v1/admin/settings"),
            ("GET", "/api/v1/admin/audit-log"),
            ("POST", "/api/v1/admin/withdrawals/some-id/decrypt"),
        ],
    )
    async def test_viewer_is_forbidden(self, client, method, path):
        response = await client.request(method, path, headers=auth_headers())
        assert response.status_code == 403
        assert response.json()["code"] == "forbidden"

    @pytest.mark.asyncio
    async def test_admin_is_allowed(self, client, admin):
        response = await client.get("/api/v1/admin/settings", headers=auth_headers(admin))
        assert response.status_code == 200
        assert "min_withdrawal" in response.json()["settings"]
