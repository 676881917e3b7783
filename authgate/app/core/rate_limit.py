"""
Fixed-window request rate limiting backed by Redis.

Each (limiter, client IP) pair gets a counter that expires at the end of
its window. Redis failures fail open.
"""

import logging
from typing import Optional

from fastapi import Depends, Request

from authgate.app.core.config import settings
from authgate.app.core.dependencies import get_client_ip
from authgate.app.core.exceptions import RateLimitExceededError
from authgate.app.core.redis_client import get_redis

logger = logging.getLogger(__name__)

RATE_LIMIT_PREFIX = "ratelimit:"


class RateLimiter:
    """
    Dependency that counts requests per client IP.

    Usage:
        auth_limiter = RateLimiter("auth", limit=10, window_seconds=900)

        @router.post("/login", dependencies=[Depends(auth_limiter)])
        async def login(...):
            ...
    """

    def __init__(self, name: str, limit: int, window_seconds: int, message: Optional[str] = None):
        self.name = name
        self.limit = limit
        self.window_seconds = window_seconds
        self.message = message or "Rate limit exceeded, please try again later."

    async def hit(self, redis, client_ip: str) -> bool:
        """
        Record one request and report whether it is within the limit.

        Returns:
            True if allowed, False if the window budget is spent
        """
        key = f"{RATE_LIMIT_PREFIX}{self.name}:{client_ip}"
        try:
            count = await redis.incr(key)
            if count == 1:
                await redis.expire(key, self.window_seconds)
        except Exception:
            logger.warning("Rate limiter '%s' unavailable, allowing request", self.name, exc_info=True)
            return True
        return count <= self.limit

    async def __call__(self, request: Request, redis=Depends(get_redis)) -> None:
        if not settings.rate_limit_enabled:
            return
        client_ip = get_client_ip(request) or "unknown"
        if not await self.hit(redis, client_ip):
            logger.info("Rate limit '%s' exceeded for %s", self.name, client_ip)
            raise RateLimitExceededError(self.message)


auth_rate_limiter = RateLimiter(
    "auth",
    limit=settings.auth_rate_limit,
    window_seconds=settings.auth_rate_window_seconds,
    message="Too many authentication attempts, please try again later.",
)

api_rate_limiter = RateLimiter(
    "api",
    limit=settings.api_rate_limit,
    window_seconds=settings.api_rate_window_seconds,
)
