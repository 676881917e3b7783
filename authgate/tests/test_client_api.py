"""
Integration tests for the client register and verify endpoints.
"""

import pytest
from datetime import datetime, timedelta, timezone
from sqlalchemy import select

from authgate.app.models.activity_log import ActivityLog
from authgate.app.models.app_user import AppUser
from authgate.app.models.blacklist_entry import BlacklistEntry
from authgate.app.models.enums import BlacklistType
from authgate.app.core.security import verify_password


def register_body(**overrides):
    body = {"username": "alice", "email": "alice@example.com", "password": "secret123"}
    body.update(overrides)
    return body


async def register(client, application, **overrides):
    return await client.post(
        "/api/v1/register", json=register_body(**overrides), headers={"X-API-Key": application.api_key}
    )


async def verify(client, application, user_id):
    return await client.post(
        "/api/v1/verify", json={"user_id": user_id}, headers={"X-API-Key": application.api_key}
    )


@pytest.mark.asyncio
async def test_register_creates_user(client, application, reload, session_factory):
    response = await register(client, application)

    assert response.status_code == 201
    data = response.json()
    assert data["success"] is True
    assert data["message"] == "User registered successfully"

    user = await reload(AppUser, data["user_id"])
    assert user.application_id == application.id
    assert user.username == "alice"
    assert user.is_active is True
    assert user.is_paused is False
    assert user.login_attempts == 0
    assert user.hashed_password != "secret123"
    assert verify_password("secret123", user.hashed_password)

    async with session_factory() as session:
        result = await session.execute(select(ActivityLog.event).where(ActivityLog.application_id == application.id))
        assert result.scalars().all() == ["user_register"]


@pytest.mark.asyncio
async def test_register_accepts_camel_case_expiry(client, application, reload):
    expires_at = datetime.now(timezone.utc) + timedelta(days=7)

    response = await register(client, application, expiresAt=expires_at.isoformat())

    assert response.status_code == 201
    user = await reload(AppUser, response.json()["user_id"])
    assert user.expires_at is not None


@pytest.mark.asyncio
async def test_register_then_login(client, application):
    assert (await register(client, application)).status_code == 201

    response = await client.post(
        "/api/v1/login",
        json={"username": "alice", "password": "secret123"},
        headers={"X-API-Key": application.api_key},
    )
    assert response.status_code == 200


@pytest.mark.asyncio
async def test_register_duplicate_username(client, application):
    await register(client, application)

    response = await register(client, application, email="other@example.com")

    assert response.status_code == 400
    assert response.json()["success"] is False
    assert response.json()["message"] == "Username already exists"


@pytest.mark.asyncio
async def test_register_duplicate_email(client, application):
    await register(client, application)

    response = await register(client, application, username="alice2")

    assert response.status_code == 400
    assert response.json()["message"] == "Email already exists"


@pytest.mark.asyncio
async def test_same_username_allowed_in_other_application(client, make_application):
    first = await make_application(name="First")
    second = await make_application(name="Second")

    assert (await register(client, first)).status_code == 201
    assert (await register(client, second)).status_code == 201


@pytest.mark.asyncio
async def test_register_rejects_blacklisted_email(client, application, db_session, owner, session_factory):
    db_session.add(BlacklistEntry(
        owner_id=owner.id, application_id=application.id, type=BlacklistType.EMAIL,
        value="Alice@Example.com", is_active=True,
    ))
    await db_session.commit()

    response = await register(client, application)

    assert response.status_code == 403
    assert response.json()["message"] == "Access denied: email is blacklisted"

    async with session_factory() as session:
        users = await session.execute(select(AppUser).where(AppUser.application_id == application.id))
        assert users.scalars().all() == []
        events = await session.execute(select(ActivityLog.event).where(ActivityLog.application_id == application.id))
        assert events.scalars().all() == ["register_blocked"]


@pytest.mark.asyncio
async def test_register_requires_api_key(client):
    response = await client.post("/api/v1/register", json=register_body())

    assert response.status_code == 401
    assert response.json()["message"] == "API key is required"


@pytest.mark.asyncio
async def test_register_accepts_api_key_query_parameter(client, application):
    response = await client.post(
        "/api/v1/register", params={"api_key": application.api_key}, json=register_body()
    )
    assert response.status_code == 201


@pytest.mark.asyncio
async def test_register_validation_error_shape(client, application):
    response = await register(client, application, password="123")

    assert response.status_code == 400
    data = response.json()
    assert data["success"] is False
    assert data["error_code"] == "ERR_VALIDATION"
    assert "password" in data["message"]


@pytest.mark.asyncio
async def test_verify_active_user(client, application, make_user):
    user = await make_user(application)

    response = await verify(client, application, user.id)

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["message"] == "User verified"
    assert data["user_id"] == user.id
    assert data["username"] == "alice"


@pytest.mark.asyncio
async def test_verify_is_idempotent(client, application, make_user, reload):
    user = await make_user(application, hwid="HW-A", login_attempts=2)

    first = await verify(client, application, user.id)
    second = await verify(client, application, user.id)

    assert first.status_code == second.status_code == 200
    assert first.json() == second.json()

    stored = await reload(AppUser, user.id)
    assert stored.login_attempts == 2
    assert stored.hwid == "HW-A"
    assert stored.last_login_at is None


@pytest.mark.asyncio
async def test_verify_unknown_user(client, application):
    response = await verify(client, application, 9999)

    assert response.status_code == 404
    assert response.json()["message"] == "User not found"


@pytest.mark.asyncio
async def test_verify_user_of_other_application(client, make_application, make_user):
    first = await make_application(name="First")
    second = await make_application(name="Second")
    user = await make_user(first)

    assert (await verify(client, second, user.id)).status_code == 404


@pytest.mark.asyncio
async def test_verify_disabled_user(client, application, make_user):
    user = await make_user(application, is_active=False)

    response = await verify(client, application, user.id)

    assert response.status_code == 401
    assert response.json()["message"] == "Account is disabled!"


@pytest.mark.asyncio
async def test_verify_expired_user(client, application, make_user):
    user = await make_user(application, expires_at=datetime.now(timezone.utc) - timedelta(minutes=5))

    response = await verify(client, application, user.id)

    assert response.status_code == 401
    assert response.json()["message"] == "Account has expired!"


@pytest.mark.asyncio
async def test_verify_ignores_paused_flag(client, application, make_user):
    user = await make_user(application, is_paused=True)

    assert (await verify(client, application, user.id)).status_code == 200


@pytest.mark.asyncio
async def test_verify_with_invalid_api_key(client, application, make_user):
    user = await make_user(application)

    response = await client.post("/api/v1/verify", json={"user_id": user.id}, headers={"X-API-Key": "ag_wrong"})

    assert response.status_code == 401
    assert response.json()["message"] == "Invalid or inactive API key"
