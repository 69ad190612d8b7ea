"""Pytest configuration and fixtures for the asset intake tests.

Every test gets its own in-memory SQLite database, an object store rooted
in a temp directory and an in-process stand-in for the Redis client.
"""

import fnmatch
import os
import tempfile
from typing import AsyncGenerator

# Settings are read at import time
os.environ.setdefault("STORAGE_DIR", tempfile.mkdtemp(prefix="asset-intake-"))
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-testing-only")

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from asset_intake.auth.jwt import create_access_token
from asset_intake.auth.password import hash_password
from asset_intake.database import Base, commit, get_db
from asset_intake.intake.profile import IntakeProfile
from asset_intake.main import app
from asset_intake.models import AdminUser
from asset_intake.routers.intake import get_profile
from asset_intake.storage.base import ImageFile
from asset_intake.storage.local import LocalObjectStore, get_object_store
from asset_intake.utils import cache

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


class FakeRedis:
    """Just enough of redis.asyncio.Redis for caching and revocation."""

    def __init__(self):
        self.store: dict[str, str] = {}
        self.fail = False

    def _check(self):
        if self.fail:
            from redis.exceptions import ConnectionError
            raise ConnectionError("redis unavailable")

    async def get(self, key):
        self._check()
        return self.store.get(key)

    async def setex(self, key, ttl, value):
        self._check()
        self.store[key] = value
        return True

    async def exists(self, *keys):
        self._check()
        return sum(1 for k in keys if k in self.store)

    async def delete(self, *keys):
        self._check()
        return sum(1 for k in keys if self.store.pop(k, None) is not None)

    async def scan_iter(self, match="*"):
        self._check()
        for key in list(self.store):
            if fnmatch.fnmatch(key, match):
                yield key

    async def ping(self):
        self._check()
        return True

    async def close(self):
        pass


# ── Database ─────────────────────────────────────────────────────

@pytest_asyncio.fixture
async def test_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    session_factory = async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session
        await session.rollback()


# ── Collaborators ────────────────────────────────────────────────

@pytest.fixture
def fake_redis(monkeypatch) -> FakeRedis:
    client = FakeRedis()
    monkeypatch.setattr(cache, "_redis_client", client)
    return client


@pytest.fixture
def object_store(tmp_path) -> LocalObjectStore:
    return LocalObjectStore(str(tmp_path / "media"), "asset-images", "http://test/media")


@pytest.fixture
def profile() -> IntakeProfile:
    return IntakeProfile()


@pytest.fixture
def png():
    def _make(name: str = "photo.png", data: bytes = PNG_BYTES, content_type: str = "image/png"):
        return ImageFile(filename=name, data=data, content_type=content_type)
    return _make


@pytest_asyncio.fixture
async def client(db_session, fake_redis, object_store, profile) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client over the app with DB, store, profile and Redis overridden."""

    async def override_get_db():
        yield db_session
        await commit(db_session)

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_object_store] = lambda: object_store
    app.dependency_overrides[get_profile] = lambda: profile

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


# ── Admin accounts ───────────────────────────────────────────────

@pytest_asyncio.fixture
async def admin_user(db_session: AsyncSession) -> AdminUser:
    user = AdminUser(
        email="admin@example.com",
        hashed_password=hash_password("secret123"),
        full_name="Dashboard Admin",
        is_active=True,
    )
    db_session.add(user)
    await db_session.flush()
    return user


@pytest.fixture
def admin_token(admin_user: AdminUser) -> str:
    return create_access_token(user_id=admin_user.id, email=admin_user.email)


@pytest.fixture
def auth_headers(admin_token: str) -> dict:
    return {"Authorization": f"Bearer {admin_token}"}


# ── Form payloads ────────────────────────────────────────────────

@pytest.fixture
def employee_payload() -> dict:
    return {"fullName": "Jane Roe", "contact": "9876543210", "employeeId": "EMP-001"}


@pytest.fixture
def job_payload() -> dict:
    return {"company": "AUTOZONE", "department": "IT", "designation": "Engineer"}


# ── Test Markers ─────────────────────────────────────────────────

def pytest_configure(config):
    """Configure custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "api: HTTP API tests")
