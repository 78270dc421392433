"""Global error handlers returning consistent JSON error bodies."""

import structlog
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from watchearn.errors import (
    AuthenticationError,
    AuthorizationError,
    NotFoundError,
    RateLimitError,
    StateConflictError,
    WatchEarnError,
)

logger = structlog.get_logger()

_HTTP_CODES: dict[int, str] = {
    AuthenticationError.status_code: AuthenticationError.code,
    AuthorizationError.status_code: AuthorizationError.code,
    NotFoundError.status_code: NotFoundError.code,
    405: "method_not_allowed",
    StateConflictError.status_code: StateConflictError.code,
    RateLimitError.status_code: RateLimitError.code,
}


def setup_error_handlers(app: FastAPI) -> None:
    """Register global exception handlers."""

    @app.exception_handler(WatchEarnError)
    async def watchearn_error_handler(request: Request, exc: WatchEarnError) -> JSONResponse:
        """Typed rejections from the reward engine keep their status and machine code."""
        logger.info(
            "request_rejected",
            path=request.url.path,
            code=exc.code,
            reason=exc.message,
        )
        headers = {}
        if isinstance(exc, RateLimitError):
            headers["Retry-After"] = str(exc.retry_after)
        return JSONResponse(
            status_code=exc.status_code,
            content=jsonable_encoder(exc.to_dict()),
            headers=headers,
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(_request: Request, exc: StarletteHTTPException) -> JSONResponse:
        """Framework-level errors (unknown route, wrong method) get a code like typed ones."""
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail, "code": _HTTP_CODES.get(exc.status_code, "http_error")},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(_request: Request, exc: RequestValidationError) -> JSONResponse:
        """Request body/query validation failures share the validation_error code."""
        errors = [{k: v for k, v in err.items() if k != "ctx"} for err in exc.errors()]
        return JSONResponse(
            status_code=422,
            content={"detail": "Validation error", "code": "validation_error", "errors": jsonable_encoder(errors)},
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Catch-all for unhandled exceptions, logged and returned as JSON."""
        logger.error(
            "unhandled_exception",
            path=request.url.path,
            method=request.method,
            error=str(exc),
            exc_info=exc,
        )
        request_id = structlog.contextvars.get_contextvars().get("request_id")
        return JSONResponse(
            status_code=500,
            content={"detail": "Internal server error", "code": "internal_error", "request_id": request_id},
        )
