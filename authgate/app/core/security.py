"""
Password hashing and credential generation.

Hashing uses bcrypt. Comparisons are CPU bound, so async callers should
go through the `*_async` helpers, which run in the threadpool.
"""

import secrets

import bcrypt
from starlette.concurrency import run_in_threadpool

from authgate.app.core.config import settings


def get_password_hash(password: str) -> str:
    """Hash a plain text password with a per-password salt."""
    salt = bcrypt.gensalt(rounds=settings.bcrypt_rounds)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Check a plain text password against a stored bcrypt hash."""
    try:
        return bcrypt.checkpw(plain_password.encode("utf-8"), hashed_password.encode("utf-8"))
    except ValueError:
        # Malformed hash or over-long secret
        return False


async def get_password_hash_async(password: str) -> str:
    return await run_in_threadpool(get_password_hash, password)


async def verify_password_async(plain_password: str, hashed_password: str) -> bool:
    return await run_in_threadpool(verify_password, plain_password, hashed_password)


def generate_api_key() -> str:
    """
    Generate a new opaque application API key.

    Returns:
        Prefixed URL-safe token, e.g. "ag_3q2-..."
    """
    return f"{settings.api_key_prefix}{secrets.token_urlsafe(32)}"
