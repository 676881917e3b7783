"""
Centralized Test Configuration.
"""

import os

# Must be set before the settings object is created
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("AUTH_RATE_LIMIT", "1000")
os.environ.setdefault("API_RATE_LIMIT", "1000")

import httpx
import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool

from authgate.app.main import app
from authgate.app.db.session import get_db, Base
from authgate.app.core.redis_client import get_redis
from authgate.app.core.jwt import create_access_token
from authgate.app.core.security import get_password_hash, generate_api_key
from authgate.app.models.owner import Owner
from authgate.app.models.application import Application
from authgate.app.models.app_user import AppUser
from authgate.app.models.webhook import Webhook
from authgate.app.services.notifier import ActivityNotifier, WebhookDispatcher
from authgate.app.services.webhook_delivery import WebhookDeliveryClient
import authgate.app.core.redis_client as redis_client_module

# Setup In-Memory Test Database
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

# Event handler to enable foreign keys for SQLite
from sqlalchemy import event
from sqlalchemy.pool import Pool

@event.listens_for(Pool, "connect")
def set_sqlite_pragma(dbapi_conn, connection_record):
    """Enable foreign key constraints for SQLite."""
    if 'sqlite' in str(type(dbapi_conn)):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

engine = create_async_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestingSessionLocal = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False
)

DEFAULT_PASSWORD = "secret123"


# Mock Redis for reliability in CI/CD
class MockRedis:
    def __init__(self):
        self.store = {}
        self.expiry = {}
        self._closed = False

    async def ping(self):
        if self._closed:
            return False
        return True

    async def get(self, key):
        if self._closed:
            return None
        return self.store.get(key)

    async def set(self, key, value, ex=None):
        if self._closed:
            return False
        self.store[key] = value
        if ex is not None:
            self.expiry[key] = ex
        return True

    async def incr(self, key):
        self.store[key] = int(self.store.get(key, 0)) + 1
        return self.store[key]

    async def expire(self, key, seconds):
        self.expiry[key] = seconds
        return key in self.store

    async def delete(self, key):
        if self._closed:
            return 0
        if key in self.store:
            del self.store[key]
            return 1
        return 0

    async def exists(self, key):
        if self._closed:
            return 0
        return 1 if key in self.store else 0

    async def flushdb(self):
        if not self._closed:
            self.store = {}
            self.expiry = {}

    async def aclose(self):
        self._closed = True
        self.store = {}


class WebhookRecorder:
    """
    Stand-in webhook receiver.

    Queue status codes (or exceptions) in `responses`; once it is empty
    every request gets a 200.
    """

    def __init__(self):
        self.requests = []
        self.responses = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.responses:
            outcome = self.responses.pop(0)
            if isinstance(outcome, type) and issubclass(outcome, Exception):
                raise outcome("simulated failure", request=request)
            return httpx.Response(outcome)
        return httpx.Response(200)


@pytest.fixture
def redis_client():
    return MockRedis()


@pytest.fixture(autouse=True)
def apply_overrides(redis_client):
    """Route DB and Redis dependencies to the test doubles."""
    original_client = redis_client_module.redis_client
    redis_client_module.redis_client = redis_client

    async def override_get_db():
        async with TestingSessionLocal() as session:
            yield session

    async def override_get_redis():
        return redis_client

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_redis] = override_get_redis
    yield

    app.dependency_overrides = {}
    redis_client_module.redis_client = original_client


@pytest.fixture(autouse=True)
async def setup_database():
    """Create tables before each test function and drop after."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
def webhook_recorder():
    return WebhookRecorder()


@pytest.fixture(autouse=True)
async def dispatcher(setup_database, webhook_recorder):
    """
    Dispatcher wired to the recorder, with no backoff.

    The worker is not started: tests call `await dispatcher.drain()` to
    deliver queued events deterministically.
    """
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(webhook_recorder.handler))
    delivery_client = WebhookDeliveryClient(client=http_client, backoff_base=0, max_jitter=0)
    webhook_dispatcher = WebhookDispatcher(
        TestingSessionLocal, delivery_client=delivery_client, inter_delivery_delay=0
    )
    app.state.notifier = ActivityNotifier(webhook_dispatcher)

    yield webhook_dispatcher

    await webhook_dispatcher.stop()
    await http_client.aclose()


@pytest.fixture
async def client():
    """Async client for testing."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


# Shared session for fixture data creation
@pytest.fixture
async def db_session():
    async with TestingSessionLocal() as session:
        yield session


@pytest.fixture
def reload():
    """Fetch a fresh copy of a row, bypassing any session identity map."""
    async def _reload(model, pk):
        async with TestingSessionLocal() as session:
            return await session.get(model, pk)
    return _reload


@pytest.fixture
def session_factory():
    return TestingSessionLocal


@pytest.fixture
def make_owner(db_session):
    async def _make_owner(username="owner", email=None, password=DEFAULT_PASSWORD, is_active=True):
        owner = Owner(
            username=username,
            email=email or f"{username}@example.com",
            hashed_password=get_password_hash(password),
            is_active=is_active,
        )
        db_session.add(owner)
        await db_session.commit()
        await db_session.refresh(owner)
        return owner
    return _make_owner


@pytest.fixture
async def owner(make_owner):
    return await make_owner()


@pytest.fixture
def owner_headers(owner):
    token = create_access_token(data={"sub": owner.username, "owner_id": owner.id})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def make_application(db_session, owner):
    async def _make_application(owner_id=None, name="Test App", **fields):
        application = Application(
            owner_id=owner_id or owner.id,
            name=name,
            api_key=generate_api_key(),
            is_active=fields.pop("is_active", True),
            **fields,
        )
        db_session.add(application)
        await db_session.commit()
        await db_session.refresh(application)
        return application
    return _make_application


@pytest.fixture
async def application(make_application):
    return await make_application()


@pytest.fixture
def make_user(db_session):
    async def _make_user(application, username="alice", password=DEFAULT_PASSWORD, **fields):
        user = AppUser(
            application_id=application.id,
            username=username,
            email=fields.pop("email", f"{username}@example.com"),
            hashed_password=get_password_hash(password),
            is_active=fields.pop("is_active", True),
            is_paused=fields.pop("is_paused", False),
            login_attempts=fields.pop("login_attempts", 0),
            **fields,
        )
        db_session.add(user)
        await db_session.commit()
        await db_session.refresh(user)
        return user
    return _make_user


@pytest.fixture
def make_webhook(db_session, owner):
    async def _make_webhook(url="https://hooks.example.com/auth", events=("user_login",), owner_id=None, **fields):
        webhook = Webhook(
            owner_id=owner_id or owner.id,
            url=url,
            events=list(events),
            is_active=fields.pop("is_active", True),
            failure_count=0,
            **fields,
        )
        db_session.add(webhook)
        await db_session.commit()
        await db_session.refresh(webhook)
        return webhook
    return _make_webhook
