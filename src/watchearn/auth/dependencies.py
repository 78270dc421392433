"""FastAPI authentication dependencies."""

from __future__ import annotations

from dataclasses import dataclass

import jwt
from fastapi import Depends, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from watchearn.auth.jwt import verify_token
from watchearn.auth.service import is_admin
from watchearn.database import get_session
from watchearn.errors import AuthenticationError, AuthorizationError

_bearer = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class CurrentUser:
    id: str
    email: str | None
    is_admin: bool = False


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Security(_bearer),
    db: AsyncSession = Depends(get_session),
) -> CurrentUser:
    """
    Verify the provider's bearer token and resolve the caller.

    Raises AuthenticationError (401) when the token is missing or invalid.
    """
    if credentials is None:
        raise AuthenticationError("Authentication required")
    try:
        payload = verify_token(credentials.credentials)
    except jwt.InvalidTokenError as e:
        raise AuthenticationError(str(e)) from e

    user_id = str(payload["sub"])
    return CurrentUser(
        id=user_id,
        email=payload.get("email"),
        is_admin=await is_admin(db, user_id),
    )


async def require_admin(
    user: CurrentUser = Depends(get_current_user),
) -> CurrentUser:
    """Same as get_current_user but additionally requires the admin role."""
    if not user.is_admin:
        raise AuthorizationError("Admin role required")
    return user
