"""
FastAPI dependencies.

Owner authentication (JWT bearer), client API key extraction and access to
the process-wide notifier owned by the application lifespan.
"""

from typing import Optional

from fastapi import Depends, Header, Query, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from authgate.app.core.config import settings
from authgate.app.core.exceptions import AuthenticationError, InsufficientPermissionsError, TokenRevokedError
from authgate.app.core.jwt import decode_access_token
from authgate.app.core.redis_client import get_redis
from authgate.app.core.token_revocation import is_token_revoked
from authgate.app.db.session import get_db
from authgate.app.models.owner import Owner
from authgate.app.services.login_pipeline import LoginPipeline
from authgate.app.services.notifier import ActivityNotifier

# HTTP Bearer security scheme
security = HTTPBearer(auto_error=False)


async def get_current_owner(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_db),
    redis=Depends(get_redis),
) -> dict:
    """
    FastAPI dependency for owner JWT authentication.

    Checks:
    1. Token signature and expiry
    2. Token not revoked by logout
    3. Owner still exists and is active (real-time check)

    Returns:
        Decoded token payload (sub, owner_id, exp) plus the raw token

    Raises:
        AuthenticationError / TokenRevokedError: 401
        InsufficientPermissionsError: 403 for deactivated owners
    """
    if credentials is None:
        raise AuthenticationError("Not authenticated")

    token = credentials.credentials

    payload = decode_access_token(token)
    if payload is None:
        raise AuthenticationError("Could not validate credentials")

    owner_id = payload.get("owner_id")
    if not owner_id:
        raise AuthenticationError("Invalid token payload")

    if await is_token_revoked(redis, token):
        raise TokenRevokedError()

    result = await db.execute(select(Owner).where(Owner.id == owner_id))
    owner = result.scalar_one_or_none()

    if not owner:
        raise AuthenticationError("Owner not found")

    if not owner.is_active:
        raise InsufficientPermissionsError("Owner account is inactive")

    return {**payload, "token": token}


def get_api_key(
    x_api_key: Optional[str] = Header(default=None, alias="X-API-Key"),
    api_key: Optional[str] = Query(default=None),
) -> Optional[str]:
    """API key from the X-API-Key header, falling back to the api_key query parameter."""
    return x_api_key or api_key


def get_client_ip(request: Request) -> Optional[str]:
    """
    Caller IP address.

    X-Forwarded-For is honoured only when `trust_forwarded_for` is set,
    i.e. when the service sits behind a reverse proxy that overwrites it.
    """
    if settings.trust_forwarded_for:
        forwarded = request.headers.get("X-Forwarded-For")
        if forwarded:
            return forwarded.split(",")[0].strip() or None
    return request.client.host if request.client else None


def get_notifier(request: Request) -> ActivityNotifier:
    """The notifier constructed by the application lifespan."""
    return request.app.state.notifier


def get_login_pipeline(notifier: ActivityNotifier = Depends(get_notifier)) -> LoginPipeline:
    return LoginPipeline(notifier)
