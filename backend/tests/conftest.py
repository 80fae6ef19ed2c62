"""Pytest configuration and fixtures for RiceWeigh tests.

Every test gets a fresh in-memory SQLite database (aiosqlite).  API
tests talk to the app through httpx over ASGI with the database,
session store and Redis cache replaced by in-process doubles.
"""

import fnmatch
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import app.models  # noqa: F401  register every model on Base.metadata
from app.config import settings
from app.database import Base, get_db
from app.main import app
from app.utils.session_store import get_session_store

SESSION_ID = "station-0001"
OTHER_SESSION_ID = "station-0002"


# ── In-process doubles ───────────────────────────────────────────

class MemorySessionStore:
    """Dict-backed stand-in for SessionStore."""

    def __init__(self):
        self.pointers: dict[str, str] = {}

    async def get_current(self, session_id: str) -> str | None:
        return self.pointers.get(session_id)

    async def set_current(self, session_id: str, transaction_id: str) -> None:
        self.pointers[session_id] = transaction_id

    async def clear_current(self, session_id: str) -> None:
        self.pointers.pop(session_id, None)


class MemoryRedis:
    """The handful of redis.asyncio calls the cache helpers make."""

    def __init__(self):
        self.data: dict[str, str] = {}

    async def get(self, key):
        return self.data.get(key)

    async def setex(self, key, ttl, value):
        self.data[key] = value

    async def delete(self, *keys):
        for key in keys:
            self.data.pop(key, None)

    async def scan_iter(self, match="*"):
        for key in list(self.data):
            if fnmatch.fnmatch(key, match):
                yield key

    async def ping(self):
        return True


# ── Database ─────────────────────────────────────────────────────

@pytest_asyncio.fixture
async def test_engine():
    """Fresh in-memory database shared by every session of one test."""
    engine = create_async_engine("sqlite+aiosqlite://", poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Session for service-level tests."""
    async with session_factory() as session:
        yield session


# ── App ──────────────────────────────────────────────────────────

@pytest.fixture(autouse=True)
def no_redis_cache(monkeypatch):
    monkeypatch.setattr(settings, "cache_enabled", False)


@pytest.fixture(autouse=True)
def station_clock(monkeypatch):
    # UTC+7 all year, no DST
    monkeypatch.setattr(settings, "timezone", "Asia/Ho_Chi_Minh")


@pytest.fixture
def session_store() -> MemorySessionStore:
    return MemorySessionStore()


@pytest.fixture
def delete_code(monkeypatch) -> str:
    monkeypatch.setattr(settings, "delete_guard", "passcode")
    monkeypatch.setattr(settings, "delete_passcode", "2468")
    return "2468"


@pytest_asyncio.fixture
async def client(session_factory, session_store) -> AsyncGenerator[AsyncClient, None]:
    """Test client; one committed DB session per request, like production."""

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def override_get_session_store():
        return session_store

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_store] = override_get_session_store

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
        headers={"X-Session-ID": SESSION_ID},
    ) as client:
        yield client

    app.dependency_overrides.clear()


# ── Data helpers ─────────────────────────────────────────────────

def new_transaction_body(
    customer_name: str = "Anh Ba",
    license_plate: str = "51f-123.45",
    batches: list[dict] | None = None,
) -> dict:
    return {
        "customer_name": customer_name,
        "license_plate": license_plate,
        "batches": batches if batches is not None else [
            {"rice_type": "Gạo ST25", "unit_price": 12000},
        ],
    }


async def start_truck(client: AsyncClient, session_id: str | None = None, **kwargs) -> dict:
    """Create a transaction through the API; returns the detail payload."""
    headers = {"X-Session-ID": session_id} if session_id else None
    resp = await client.post(
        "/api/transactions/", json=new_transaction_body(**kwargs), headers=headers
    )
    assert resp.status_code == 201, resp.text
    return resp.json()


async def weigh(client: AsyncClient, transaction_id: str, *weights: float, batch_id=None) -> dict:
    data = None
    for w in weights:
        body = {"weight": w}
        if batch_id:
            body["rice_batch_id"] = batch_id
        resp = await client.post(f"/api/transactions/{transaction_id}/weights", json=body)
        assert resp.status_code == 200, resp.text
        data = resp.json()
    return data


async def completed_truck(client: AsyncClient, *weights: float, session_id=None, **kwargs) -> dict:
    detail = await start_truck(client, session_id=session_id, **kwargs)
    tid = detail["transaction"]["id"]
    await weigh(client, tid, *weights)
    resp = await client.post(f"/api/transactions/{tid}/complete")
    assert resp.status_code == 200, resp.text
    return resp.json()


# ── Test Markers ─────────────────────────────────────────────────

def pytest_configure(config):
    """Configure custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "api: HTTP API tests")
    config.addinivalue_line("markers", "cache: Redis cache helper tests")
