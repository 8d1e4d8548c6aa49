"""
Pytest fixtures for test database, sessions, marketplace entities and client.

Each test gets a fresh SQLite file database (via aiosqlite) so concurrent
sessions really contend for the same store. Point TEST_DATABASE_URL at a
PostgreSQL database to run the suite against it instead.
"""

import os
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

import service_booking.models  # noqa: F401 - registers every table on Base.metadata
from service_booking.db.base import Base
from service_booking.db.session import build_engine, get_db
from service_booking.main import app
from service_booking.models.enums import UserRole, UserStatus
from service_booking.schemas.booking import BookingCreate
from service_booking.services import entity_service

# A fixed day far enough in the future that nothing depends on "now"
DAY = datetime(2030, 1, 15, tzinfo=timezone.utc)


def at(hour: int, minute: int = 0) -> datetime:
    return DAY + timedelta(hours=hour, minutes=minute)


@pytest_asyncio.fixture
async def engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    url = os.environ.get("TEST_DATABASE_URL") or f"sqlite+aiosqlite:///{tmp_path / 'booking_test.db'}"
    test_engine = build_engine(url)
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    yield test_engine

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client whose requests each get a session on the test database."""

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


def detached(db: AsyncSession, obj):
    """Detach a seeded row so a later rollback in db_session cannot expire it."""
    db.expunge(obj)
    return obj


async def make_user(db: AsyncSession, email: str, name: str, role: UserRole):
    user = await entity_service.create_user(db, email, name, role, UserStatus.ACTIVE)
    return detached(db, user)


@pytest_asyncio.fixture
async def provider(db_session: AsyncSession):
    return await make_user(db_session, "pat.provider@example.com", "Pat Provider", UserRole.PROVIDER)


@pytest_asyncio.fixture
async def other_provider(db_session: AsyncSession):
    return await make_user(db_session, "quinn.provider@example.com", "Quinn Provider", UserRole.PROVIDER)


@pytest_asyncio.fixture
async def customer(db_session: AsyncSession):
    return await make_user(db_session, "casey.customer@example.com", "Casey Customer", UserRole.CUSTOMER)


@pytest_asyncio.fixture
async def other_customer(db_session: AsyncSession):
    return await make_user(db_session, "robin.customer@example.com", "Robin Customer", UserRole.CUSTOMER)


@pytest_asyncio.fixture
async def admin(db_session: AsyncSession):
    return await make_user(db_session, "alex.admin@example.com", "Alex Admin", UserRole.ADMIN)


@pytest_asyncio.fixture
async def category(db_session: AsyncSession):
    category = await entity_service.create_category(db_session, "Plumbing")
    return detached(db_session, category)


@pytest_asyncio.fixture
async def service(db_session: AsyncSession, provider, category):
    """Active service, 50.00 USD."""
    service = await entity_service.create_service(
        db_session,
        provider_id=provider.id,
        category_id=category.id,
        title="Leak repair",
        base_price=Decimal("50.00"),
        currency="USD",
        duration_minutes=60,
    )
    return detached(db_session, service)


@pytest_asyncio.fixture
async def other_service(db_session: AsyncSession, other_provider, category):
    service = await entity_service.create_service(
        db_session,
        provider_id=other_provider.id,
        category_id=category.id,
        title="Boiler check",
        base_price=Decimal("80.00"),
        currency="EUR",
    )
    return detached(db_session, service)


@pytest.fixture
def booking_data(provider, customer, service):
    """Factory for BookingCreate payloads on the default provider/customer/service."""

    def make(start: datetime, end: datetime, **overrides) -> BookingCreate:
        fields = dict(
            customer_id=customer.id,
            provider_id=provider.id,
            service_id=service.id,
            scheduled_start=start,
            scheduled_end=end,
            address_line="1 Main St",
            city="Springfield",
            postal_code="12345",
            country="US",
        )
        fields.update(overrides)
        return BookingCreate(**fields)

    return make
