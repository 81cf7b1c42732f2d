"""Test configuration and fixtures."""

import os

# Settings are read at import time; point them at the test backend first
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["WORKERS_ENABLED"] = "false"
os.environ["BEARER_TOKEN_SECRET"] = "test-secret"
os.environ["ENVIRONMENT"] = "development"

from datetime import date, datetime, timedelta, timezone  # noqa: E402

import jwt  # noqa: E402
import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from rental.core.config import settings  # noqa: E402
from rental.core.database import Base, get_db  # noqa: E402
from rental.models import *  # noqa: E402, F403 - Import all models
from rental.schemas.booking import CreateBookingRequest  # noqa: E402
from rental.schemas.equipment import CreateEquipmentRequest  # noqa: E402
from rental.schemas.insurance import CreateInsurancePackageRequest  # noqa: E402
from rental.services.equipment_service import EquipmentService  # noqa: E402
from rental.services.insurance_service import InsuranceService  # noqa: E402

# Test database URL (in-memory SQLite for speed)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

OWNER_ID = "owner-1"
RENTER_ID = "renter-1"

# Friday to the following Tuesday
FRIDAY = date(2026, 11, 6)
TUESDAY = date(2026, 11, 10)


class FixedClock:
    """Settable clock handed to services instead of the wall clock."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest_asyncio.fixture(scope="function")
async def test_engine():
    """Create a test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def test_session(test_engine):
    """Create a test database session."""
    async_session = async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

    async with async_session() as session:
        yield session


@pytest_asyncio.fixture(scope="function")
async def test_app(test_session):
    """Create the application with its database dependency bound to the test session."""
    from rental.main import create_app

    app = create_app()

    async def override_get_db():
        yield test_session

    app.dependency_overrides[get_db] = override_get_db

    yield app

    app.dependency_overrides.clear()


@pytest_asyncio.fixture(scope="function")
async def test_client(test_app):
    """Create a test HTTP client."""
    transport = ASGITransport(app=test_app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def clock():
    """Clock set before the sample rentals start."""
    return FixedClock(datetime(2026, 11, 1, 8, 0, tzinfo=timezone.utc))


@pytest.fixture
def auth_headers():
    """Build Authorization headers for an account and optional roles."""

    def _headers(account_id: str, *roles: str) -> dict[str, str]:
        token = jwt.encode(
            {
                "sub": account_id,
                "roles": list(roles),
                "exp": datetime.now(timezone.utc) + timedelta(hours=1),
            },
            settings.bearer_token_secret,
            algorithm="HS256",
        )
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest_asyncio.fixture
async def equipment(test_session):
    """Single-unit camera body."""
    return await EquipmentService(test_session).create_equipment(
        CreateEquipmentRequest(
            title="Sony A7 IV",
            owner_id=OWNER_ID,
            daily_rate=800_000,
            replacement_price=45_000_000,
            unit_count=1,
        )
    )


@pytest_asyncio.fixture
async def multi_unit_equipment(test_session):
    """Three interchangeable tripods."""
    return await EquipmentService(test_session).create_equipment(
        CreateEquipmentRequest(
            title="Carbon tripod",
            owner_id=OWNER_ID,
            daily_rate=240_000,
            replacement_price=5_000_000,
            unit_count=3,
        )
    )


@pytest_asyncio.fixture
async def insurance_package(test_session):
    return await InsuranceService(test_session).create_package(
        CreateInsurancePackageRequest(
            name="Bảo hiểm cơ bản",
            min_coverage=1_000_000,
            max_coverage=5_000_000,
        )
    )


@pytest.fixture
def booking_request():
    """Build a CreateBookingRequest for an equipment id with optional overrides."""

    def _request(equipment_id, **overrides) -> CreateBookingRequest:
        data = {
            "equipment_id": str(equipment_id),
            "renter_id": RENTER_ID,
            "start_date": FRIDAY,
            "end_date": TUESDAY,
        }
        data.update(overrides)
        return CreateBookingRequest(**data)

    return _request
