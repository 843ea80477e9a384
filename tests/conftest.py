"""
Shared test fixtures.

Uses a throwaway SQLite database file (via aiosqlite) built from the real
models, so tests run without Docker / PostgreSQL / Redis.  A file rather
than ``:memory:`` lets the notification dispatcher write from its own
connection while the test keeps working.
"""

import uuid
from datetime import date, time, timedelta
from typing import AsyncGenerator

import jwt
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from orbitride.config import settings
from orbitride.domain.entities import Location
from orbitride.domain.enums import UserRole
from orbitride.infrastructure.database import Base
from orbitride.infrastructure.models import ProfileModel
from orbitride.services.booking import BookingWorkflow
from orbitride.services.notifications import NotificationDispatcher, NotificationInbox
from orbitride.services.profiles import ProfileService
from orbitride.services.unit_of_work import UnitOfWork

CAMPUS = Location(18.5293, 73.8567)
AIRPORT = Location(18.5821, 73.9197)


# ── Fixtures ──────────────────────────────────────────────────────────


@pytest_asyncio.fixture
async def session_factory(tmp_path) -> AsyncGenerator[async_sessionmaker, None]:
    """Create tables in a fresh database, yield a session factory."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


@pytest_asyncio.fixture
async def dispatcher(session_factory) -> AsyncGenerator[NotificationDispatcher, None]:
    dispatcher = NotificationDispatcher(
        session_factory, retry_attempts=2, retry_backoff_seconds=0
    )
    yield dispatcher
    await dispatcher.drain()


@pytest_asyncio.fixture
async def uow(session_factory) -> UnitOfWork:
    return UnitOfWork(session_factory, retry_attempts=2, retry_backoff_seconds=0)


@pytest_asyncio.fixture
async def workflow(uow, dispatcher) -> BookingWorkflow:
    return BookingWorkflow(uow, dispatcher, restore_seat_on_cancel=True)


@pytest_asyncio.fixture
async def profiles(uow) -> ProfileService:
    return ProfileService(uow)


@pytest_asyncio.fixture
async def inbox(uow) -> NotificationInbox:
    return NotificationInbox(uow)


@pytest_asyncio.fixture
async def make_profile(session_factory):
    """Factory: insert a profile and return its id."""

    async def _make(name: str = "Test User", role: UserRole = UserRole.RIDER):
        profile_id = uuid.uuid4()
        async with session_factory() as session:
            async with session.begin():
                session.add(
                    ProfileModel(
                        id=profile_id,
                        full_name=name,
                        email=f"{profile_id.hex[:8]}@example.edu",
                        role=role,
                    )
                )
        return profile_id

    return _make


@pytest_asyncio.fixture
async def make_ride(workflow):
    """Factory: offer a ride from campus to the airport tomorrow."""

    async def _make(driver_id: uuid.UUID, seats: int = 2, **overrides):
        fields = dict(
            from_location="COEP Hostel",
            to_location="Pune Airport",
            origin=CAMPUS,
            destination=AIRPORT,
            departure_date=date.today() + timedelta(days=1),
            departure_time=time(7, 30),
            available_seats=seats,
            price=120.0,
        )
        fields.update(overrides)
        return await workflow.create_ride(driver_id, **fields)

    return _make


@pytest_asyncio.fixture
async def driver(make_profile) -> uuid.UUID:
    return await make_profile("Aarav Sharma", UserRole.DRIVER)


@pytest_asyncio.fixture
async def passenger(make_profile) -> uuid.UUID:
    return await make_profile("Sneha Gupta")


# ── API ───────────────────────────────────────────────────────────────


def auth_headers(user_id: uuid.UUID) -> dict[str, str]:
    token = jwt.encode(
        {"sub": str(user_id), "aud": settings.jwt_audience},
        settings.jwt_secret,
        algorithm=settings.jwt_algorithm,
    )
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture
async def app(session_factory):
    from orbitride.api.app import create_app
    from orbitride.api.middleware import limiter

    limiter.reset()
    app = create_app(session_factory)
    app.state.dispatcher.retry_backoff_seconds = 0
    yield app
    await app.state.dispatcher.drain()


@pytest_asyncio.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
