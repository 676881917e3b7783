"""
HWID lock tests.

Service-level checks of the bind/compare logic plus the end-to-end
bind, mismatch, reset, rebind cycle over the client API.
"""

import pytest

from authgate.app.models.app_user import AppUser
from authgate.app.services import hwid_lock
from authgate.app.services.hwid_lock import HwidDecision

PASSWORD = "secret123"


async def login(client, application, hwid=None):
    body = {"username": "alice", "password": PASSWORD}
    if hwid is not None:
        body["hwid"] = hwid
    return await client.post("/api/v1/login", json=body, headers={"X-API-Key": application.api_key})


@pytest.fixture
async def locked_application(make_application):
    return await make_application(hwid_lock_enabled=True)


@pytest.mark.asyncio
async def test_bind_is_compare_and_swap(application, make_user, session_factory, reload):
    user = await make_user(application)

    async with session_factory() as session:
        assert await hwid_lock.bind_hwid(session, user.id, "HW-A") is True
        assert await hwid_lock.bind_hwid(session, user.id, "HW-B") is False
        assert await hwid_lock.get_bound_hwid(session, user.id) == "HW-A"

    assert (await reload(AppUser, user.id)).hwid == "HW-A"


@pytest.mark.asyncio
async def test_check_and_bind_decisions(application, make_user, session_factory):
    user = await make_user(application)

    async with session_factory() as session:
        user = await session.get(AppUser, user.id)

        result = await hwid_lock.check_and_bind(session, user, None)
        assert result.decision == HwidDecision.REQUIRED
        assert not result.allowed

        result = await hwid_lock.check_and_bind(session, user, "HW-A")
        assert result.decision == HwidDecision.BOUND
        assert result.allowed
        assert user.hwid == "HW-A"

        result = await hwid_lock.check_and_bind(session, user, "HW-A")
        assert result.decision == HwidDecision.MATCHED

        result = await hwid_lock.check_and_bind(session, user, "HW-B")
        assert result.decision == HwidDecision.MISMATCH
        assert result.stored_hwid == "HW-A"
        assert not result.allowed


@pytest.mark.asyncio
async def test_losing_bind_race_is_judged_against_winner(application, make_user, session_factory):
    user = await make_user(application)

    async with session_factory() as first, session_factory() as second:
        first_view = await first.get(AppUser, user.id)
        second_view = await second.get(AppUser, user.id)
        assert first_view.hwid is None and second_view.hwid is None

        winner = await hwid_lock.check_and_bind(first, first_view, "HW-A")
        loser = await hwid_lock.check_and_bind(second, second_view, "HW-B")

        assert winner.decision == HwidDecision.BOUND
        assert loser.decision == HwidDecision.MISMATCH
        assert loser.stored_hwid == "HW-A"


@pytest.mark.asyncio
async def test_same_hwid_in_race_is_accepted(application, make_user, session_factory):
    user = await make_user(application)

    async with session_factory() as first, session_factory() as second:
        first_view = await first.get(AppUser, user.id)
        second_view = await second.get(AppUser, user.id)

        await hwid_lock.check_and_bind(first, first_view, "HW-A")
        result = await hwid_lock.check_and_bind(second, second_view, "HW-A")

        assert result.decision == HwidDecision.MATCHED


@pytest.mark.asyncio
async def test_hwid_lock_lifecycle(client, locked_application, make_user, owner_headers, reload):
    user = await make_user(locked_application)

    # (a) first login binds
    response = await login(client, locked_application, hwid="HW-A")
    assert response.status_code == 200
    assert response.json()["hwid_locked"] is True
    assert (await reload(AppUser, user.id)).hwid == "HW-A"

    # (b) same machine keeps working
    assert (await login(client, locked_application, hwid="HW-A")).status_code == 200

    # (c) another machine is refused
    response = await login(client, locked_application, hwid="HW-B")
    assert response.status_code == 403
    assert response.json()["message"] == "Hardware ID mismatch detected!"

    # (d) no HWID at all is refused
    response = await login(client, locked_application)
    assert response.status_code == 400
    assert response.json()["message"] == "Hardware ID is required!"

    # (e) owner reset lets the next machine bind
    response = await client.post(
        f"/api/v1/applications/{locked_application.id}/users/{user.id}/reset-hwid",
        headers=owner_headers,
    )
    assert response.status_code == 200
    assert response.json()["hwid"] is None

    assert (await login(client, locked_application, hwid="HW-B")).status_code == 200
    assert (await reload(AppUser, user.id)).hwid == "HW-B"
    assert (await login(client, locked_application, hwid="HW-A")).status_code == 403


@pytest.mark.asyncio
async def test_mismatch_does_not_touch_attempt_counter(client, locked_application, make_user, reload):
    user = await make_user(locked_application, hwid="HW-A")

    assert (await login(client, locked_application, hwid="HW-B")).status_code == 403

    stored = await reload(AppUser, user.id)
    assert stored.login_attempts == 0
    assert stored.hwid == "HW-A"


@pytest.mark.asyncio
async def test_hwid_ignored_when_lock_disabled(client, application, make_user, reload):
    user = await make_user(application)

    assert (await login(client, application, hwid="HW-A")).status_code == 200
    assert (await login(client, application, hwid="HW-B")).status_code == 200
    assert (await login(client, application)).status_code == 200
    assert (await reload(AppUser, user.id)).hwid is None
