"""
Shared fixtures: an in-memory SQLite database, an in-process generation lock
and an HTTP client wired to both through FastAPI dependency overrides.
"""
from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from redis.exceptions import LockNotOwnedError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel

from clinic_roster.api.deps import get_lock_client
from clinic_roster.db.models import Doctor
from clinic_roster.db.session import get_session
from clinic_roster.main import app
from clinic_roster.services.doctor_service import DoctorService


class InMemoryLock:
    def __init__(self, locks, name):
        self.locks = locks
        self.name = name
        self.token = uuid4().hex

    async def acquire(self, blocking=True):
        if self.name in self.locks.held:
            return False
        self.locks.held[self.name] = self.token
        return True

    async def release(self):
        if self.locks.held.get(self.name) != self.token:
            raise LockNotOwnedError("Cannot release a lock that's no longer owned")
        del self.locks.held[self.name]


class InMemoryLocks:
    """Stand-in for the redis lock client; ``held`` maps lock name to owner token."""

    def __init__(self):
        self.held = {}

    def lock(self, name: str, timeout: int) -> InMemoryLock:
        return InMemoryLock(self, name)


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def lock():
    return InMemoryLocks()


@pytest.fixture
def service(session, lock):
    return DoctorService(session, lock)


@pytest.fixture
def make_doctors(session):
    """Insert doctors with strictly increasing created_at so their order is fixed."""
    async def _make(count, available=True, specialization="General"):
        doctors = []
        base = datetime(2029, 12, 1, tzinfo=timezone.utc)
        for i in range(count):
            doctor = Doctor(
                name=f"Doctor {i + 1}",
                specialization=specialization,
                is_available=available,
                created_at=base + timedelta(minutes=i),
            )
            session.add(doctor)
            doctors.append(doctor)
        await session.commit()
        return doctors

    return _make


@pytest_asyncio.fixture
async def client(session_factory, lock):
    async def override_get_session():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_session] = override_get_session
    app.dependency_overrides[get_lock_client] = lambda: lock
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
