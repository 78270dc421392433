"""Middleware registration."""

from fastapi import FastAPI

from watchearn.config import Settings
from watchearn.middleware.cors import setup_cors
from watchearn.middleware.error_handler import setup_error_handlers
from watchearn.middleware.logging import setup_logging
from watchearn.middleware.rate_limit import RateLimitMiddleware
from watchearn.middleware.request_id import RequestIdMiddleware


def setup_middleware(app: FastAPI, settings: Settings) -> None:
    """Register logging, error handlers and the middleware stack.

    Starlette runs middleware in reverse-add order, so the order below yields
    CORS -> request id -> IP rate limit -> routes. CORS stays outermost so
    429 responses still carry CORS headers; the request id is bound before
    the limiter so throttled requests are logged with it.
    """
    setup_logging(settings)
    setup_error_handlers(app)
    if settings.rate_limit_requests > 0:
        app.add_middleware(
            RateLimitMiddleware,
            requests_per_window=settings.rate_limit_requests,
            window_seconds=settings.rate_limit_window_seconds,
        )
    app.add_middleware(RequestIdMiddleware)
    setup_cors(app, settings)
