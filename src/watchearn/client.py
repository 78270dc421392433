"""Async HTTP client for the WatchEarn API.

Used by players and tooling to fetch ads, submit finished sessions and manage
the wallet. Server rejections are raised as the same typed errors the
service raises (`watchearn.errors`), so callers handle a RateLimitError or an
InsufficientBalanceError the same way on both sides of the wire.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any

import httpx
import structlog

from watchearn.errors import (
    ERRORS_BY_CODE,
    AuthenticationError,
    AuthorizationError,
    NotFoundError,
    RateLimitError,
    StateConflictError,
    ValidationError,
    WatchEarnError,
)
from watchearn.session.timer import SessionSummary

logger = structlog.get_logger()

_ERRORS_BY_STATUS: dict[int, type[WatchEarnError]] = {
    401: AuthenticationError,
    403: AuthorizationError,
    404: NotFoundError,
    409: StateConflictError,
    422: ValidationError,
    429: RateLimitError,
}


@dataclass(frozen=True)
class AdInfo:
    """An ad as listed by the API; usable directly with `start_session`."""

    id: str
    title: str
    ad_type: str
    video_url: str
    duration: int
    reward_amount: Decimal
    placement: list[str]
    priority: int
    description: str | None = None
    image_url: str | None = None
    link_url: str | None = None

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> AdInfo:
        return cls(
            id=data["id"],
            title=data["title"],
            ad_type=data.get("ad_type", "video"),
            video_url=data.get("video_url", ""),
            duration=int(data["duration"]),
            reward_amount=Decimal(str(data["reward_amount"])),
            placement=list(data.get("placement", [])),
            priority=int(data.get("priority", 0)),
            description=data.get("description"),
            image_url=data.get("image_url"),
            link_url=data.get("link_url"),
        )


def error_from_response(response: httpx.Response) -> WatchEarnError | None:
    """Rebuild the server's typed error from an error response, or None if it is not one."""
    try:
        body = response.json()
    except ValueError:
        body = {}
    if not isinstance(body, dict):
        body = {}

    cls = ERRORS_BY_CODE.get(str(body.get("code", ""))) or _ERRORS_BY_STATUS.get(response.status_code)
    if cls is None:
        return None

    message = body.get("detail")
    if not isinstance(message, str):
        message = f"HTTP {response.status_code}"
    context = dict(body.get("context") or {})
    if "errors" in body:
        context["errors"] = body["errors"]

    if cls is RateLimitError:
        retry_after = context.pop("retry_after", None) or response.headers.get("Retry-After") or 1
        return RateLimitError(message, retry_after=int(retry_after), **context)
    return cls(message, **context)


class WatchEarnClient:
    """Thin typed wrapper over httpx.AsyncClient.

    Usage:
        async with WatchEarnClient("https://api.example.com", token) as api:
            ads = await api.list_active_ads("watch_page")
    """

    def __init__(
        self,
        base_url: str,
        token: str | None = None,
        *,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        headers = {"Authorization": f"Bearer {token}"} if token else {}
        self._client = httpx.AsyncClient(
            base_url=base_url,
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    async def __aenter__(self) -> WatchEarnClient:
        return self

    async def __aexit__(self, *_exc: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:  # noqa: ANN401
        response = await self._client.request(method, path, **kwargs)
        if response.is_error:
            error = error_from_response(response)
            if error is None:
                response.raise_for_status()
            logger.info("api_request_rejected", path=path, status=response.status_code, code=error.code)
            raise error
        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    # ── Ads ──

    async def list_active_ads(self, placement: str | None = None) -> list[AdInfo]:
        params = {"placement": placement} if placement else None
        data = await self._request("GET", "/api/v1/ads", params=params)
        return [AdInfo.from_json(ad) for ad in data["ads"]]

    # ── Ledger ──

    async def submit_watch_event(
        self, ad_id: str, watch_time_seconds: int, completed: bool = False
    ) -> dict[str, Any]:
        return await self._request(
            "POST",
            "/api/v1/watch-events",
            json={"ad_id": ad_id, "watch_time_seconds": watch_time_seconds, "completed": completed},
        )

    async def submit_session(self, summary: SessionSummary | None) -> dict[str, Any] | None:
        """Submit a collected session. A forfeited or empty session (None) submits nothing."""
        if summary is None:
            return None
        return await self.submit_watch_event(**summary.as_watch_event())  # type: ignore[arg-type]

    async def get_watch_history(self, page: int = 1, per_page: int = 50) -> dict[str, Any]:
        return await self._request(
            "GET", "/api/v1/users/me/watch-history", params={"page": page, "per_page": per_page}
        )

    # ── Wallet ──

    async def get_wallet_summary(self) -> dict[str, Any]:
        return await self._request("GET", "/api/v1/users/me/wallet")

    async def request_withdrawal(
        self, amount: Decimal | str, payment_method: str, payment_details: str
    ) -> dict[str, Any]:
        return await self._request(
            "POST",
            "/api/v1/withdrawals",
            json={
                "amount": str(amount),
                "payment_method": payment_method,
                "payment_details": payment_details,
            },
        )

    async def list_withdrawals(self) -> list[dict[str, Any]]:
        data = await self._request("GET", "/api/v1/withdrawals")
        return data["withdrawals"]

    # ── Profile ──

    async def get_streak(self) -> dict[str, Any]:
        return await self._request("GET", "/api/v1/users/me/streak")

    async def get_stats(self) -> dict[str, Any]:
        return await self._request("GET", "/api/v1/users/me/stats")

    async def get_public_settings(self) -> dict[str, Any]:
        data = await self._request("GET", "/api/v1/settings/public")
        return data["settings"]
