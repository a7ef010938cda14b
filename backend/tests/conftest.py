"""Shared fixtures: a throwaway SQLite database and an in-process API client."""

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

import guesthouse.models  # noqa: F401
from guesthouse.database import Base, get_db
from guesthouse.main import app
from guesthouse.models.booking import Booking
from guesthouse.services.rate_table import price_for_night
from tests.helpers import CUSTOMER, day


@pytest.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
async def client(session_factory):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def make_booking(db):
    """Insert a booking row directly, bypassing the service."""

    async def _make(room_type="deluxe-double", check_in=None, check_out=None, status="pending", guests=2):
        check_in = check_in or day(0)
        check_out = check_out or day(2)
        nights = (check_out - check_in).days
        nightly = price_for_night(room_type, guests, False)
        booking = Booking(
            room_type=room_type,
            check_in=check_in,
            check_out=check_out,
            guests=guests,
            breakfast=False,
            nights=nights,
            nightly_rate=nightly,
            total_price=nightly * nights,
            currency="EUR",
            customer_name=CUSTOMER["name"],
            customer_email=CUSTOMER["email"],
            customer_phone=CUSTOMER["phone"],
            payment_status=status,
        )
        db.add(booking)
        await db.commit()
        return booking

    return _make

