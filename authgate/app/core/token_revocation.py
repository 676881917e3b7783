"""
Owner token revocation using Redis.

Logged-out owner tokens are kept in a denylist until they would have
expired anyway.
"""

import logging

from authgate.app.core.config import settings

logger = logging.getLogger(__name__)

# Redis key prefix for revoked tokens
REVOKED_TOKEN_PREFIX = "revoked:token:"


async def revoke_token(redis, token: str, owner_id: int) -> bool:
    """
    Revoke a specific JWT token.

    Args:
        redis: Async Redis client
        token: The JWT token string to revoke
        owner_id: Owner who held the token

    Returns:
        True if successfully revoked, False otherwise
    """
    try:
        ttl_seconds = settings.access_token_expire_minutes * 60
        await redis.set(f"{REVOKED_TOKEN_PREFIX}{token}", str(owner_id), ex=ttl_seconds)
        return True
    except Exception:
        logger.exception("Error revoking token for owner %s", owner_id)
        return False


async def is_token_revoked(redis, token: str) -> bool:
    """
    Check if a token has been revoked.

    If Redis is unreachable the token is treated as valid (fail open).
    """
    try:
        return await redis.exists(f"{REVOKED_TOKEN_PREFIX}{token}") > 0
    except Exception:
        logger.warning("Token revocation check unavailable, allowing request", exc_info=True)
        return False
