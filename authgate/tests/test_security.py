"""
Tests for credential handling, token revocation and rate limiting.
"""

import pytest
from datetime import timedelta

from authgate.app.core.jwt import create_access_token, decode_access_token
from authgate.app.core.rate_limit import RateLimiter, api_rate_limiter, auth_rate_limiter
from authgate.app.core.security import (
    generate_api_key,
    get_password_hash,
    verify_password,
    verify_password_async,
)
from authgate.app.core.token_revocation import REVOKED_TOKEN_PREFIX, is_token_revoked, revoke_token


class BrokenRedis:
    async def incr(self, key):
        raise ConnectionError("redis down")

    async def set(self, key, value, ex=None):
        raise ConnectionError("redis down")

    async def exists(self, key):
        raise ConnectionError("redis down")


def test_password_hashing():
    hashed = get_password_hash("secret123")

    assert hashed != "secret123"
    assert hashed.startswith("$2")
    assert verify_password("secret123", hashed)
    assert not verify_password("secret124", hashed)


def test_verify_against_malformed_hash():
    assert verify_password("secret123", "not-a-bcrypt-hash") is False


@pytest.mark.asyncio
async def test_verify_password_async():
    hashed = get_password_hash("secret123")
    assert await verify_password_async("secret123", hashed) is True


def test_api_keys_are_prefixed_and_unique():
    keys = {generate_api_key() for _ in range(20)}

    assert len(keys) == 20
    assert all(key.startswith("ag_") for key in keys)
    assert all(len(key) > 40 for key in keys)


def test_jwt_round_trip_and_expiry():
    token = create_access_token({"sub": "dev", "owner_id": 3})
    assert decode_access_token(token)["owner_id"] == 3

    expired = create_access_token({"sub": "dev", "owner_id": 3}, expires_delta=timedelta(seconds=-1))
    assert decode_access_token(expired) is None
    assert decode_access_token("not.a.token") is None


@pytest.mark.asyncio
async def test_token_revocation(redis_client):
    token = create_access_token({"sub": "dev", "owner_id": 3})

    assert await is_token_revoked(redis_client, token) is False
    assert await revoke_token(redis_client, token, 3) is True
    assert await is_token_revoked(redis_client, token) is True
    assert redis_client.expiry[f"{REVOKED_TOKEN_PREFIX}{token}"] == 60 * 60


@pytest.mark.asyncio
async def test_token_revocation_fails_open():
    assert await is_token_revoked(BrokenRedis(), "token") is False
    assert await revoke_token(BrokenRedis(), "token", 1) is False


@pytest.mark.asyncio
async def test_rate_limiter_window(redis_client):
    limiter = RateLimiter("test", limit=2, window_seconds=60)

    assert await limiter.hit(redis_client, "1.1.1.1") is True
    assert await limiter.hit(redis_client, "1.1.1.1") is True
    assert await limiter.hit(redis_client, "1.1.1.1") is False
    # Separate budget per client
    assert await limiter.hit(redis_client, "2.2.2.2") is True
    assert redis_client.expiry["ratelimit:test:1.1.1.1"] == 60


@pytest.mark.asyncio
async def test_rate_limiter_fails_open():
    limiter = RateLimiter("test", limit=1, window_seconds=60)

    assert await limiter.hit(BrokenRedis(), "1.1.1.1") is True
    assert await limiter.hit(BrokenRedis(), "1.1.1.1") is True


@pytest.mark.asyncio
async def test_login_endpoint_is_rate_limited(client, application, mocker):
    mocker.patch.object(auth_rate_limiter, "limit", 2)
    body = {"username": "alice", "password": "secret123"}
    headers = {"X-API-Key": application.api_key}

    statuses = [
        (await client.post("/api/v1/login", json=body, headers=headers)).status_code
        for _ in range(3)
    ]

    assert statuses == [401, 401, 429]
    response = await client.post("/api/v1/login", json=body, headers=headers)
    assert response.json()["success"] is False
    assert response.json()["error_code"] == "ERR_RATE_LIMIT_001"


@pytest.mark.asyncio
async def test_client_routes_share_the_api_budget(client, application, mocker):
    mocker.patch.object(api_rate_limiter, "limit", 2)
    headers = {"X-API-Key": application.api_key}

    verify = await client.post("/api/v1/verify", json={"user_id": 999}, headers=headers)
    login = await client.post(
        "/api/v1/login", json={"username": "alice", "password": "secret123"}, headers=headers
    )
    register = await client.post(
        "/api/v1/register",
        json={"username": "bob", "email": "bob@example.com", "password": "secret123"},
        headers=headers,
    )

    assert [verify.status_code, login.status_code, register.status_code] == [404, 401, 429]
