"""Typed rejections raised by the reward engine and mapped to HTTP by the error handler."""

from __future__ import annotations

from typing import Any


class WatchEarnError(Exception):
    """Base class. Carries the HTTP status, a machine code and a user-facing message."""

    status_code: int = 400
    code: str = "error"

    def __init__(self, message: str, **context: Any) -> None:  # noqa: ANN401
        super().__init__(message)
        self.message = message
        self.context = context

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"detail": self.message, "code": self.code}
        if self.context:
            body["context"] = self.context
        return body


class ValidationError(WatchEarnError):
    """Malformed or out-of-range input."""

    status_code = 422
    code = "validation_error"


class NotFoundError(WatchEarnError):
    status_code = 404
    code = "not_found"


class StateConflictError(WatchEarnError):
    """Resource is in the wrong state for the requested transition."""

    status_code = 409
    code = "state_conflict"


class RateLimitError(WatchEarnError):
    status_code = 429
    code = "rate_limited"

    def __init__(self, message: str, retry_after: int, **context: Any) -> None:  # noqa: ANN401
        super().__init__(message, retry_after=retry_after, **context)
        self.retry_after = retry_after


class InsufficientBalanceError(WatchEarnError):
    status_code = 422
    code = "insufficient_balance"


class AuthorizationError(WatchEarnError):
    """Caller may not act on this resource."""

    status_code = 403
    code = "forbidden"


class AuthenticationError(AuthorizationError):
    """Missing or invalid credentials."""

    status_code = 401
    code = "unauthenticated"


ERRORS_BY_CODE: dict[str, type[WatchEarnError]] = {
    cls.code: cls
    for cls in (
        ValidationError,
        NotFoundError,
        StateConflictError,
        RateLimitError,
        InsufficientBalanceError,
        AuthorizationError,
        AuthenticationError,
    )
}
