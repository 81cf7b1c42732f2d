"""Concurrency tests for booking operations."""

import asyncio
from datetime import date
from uuid import UUID

import pytest
import pytest_asyncio
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from rental.core.database import Base
from rental.core.exceptions import ConflictError, StateError
from rental.models.incident import IncidentOutcome, Severity
from rental.models.reservation import ReservationWindow, WindowStatus
from rental.schemas.booking import CheckinRequest, CheckoutRequest, CreateBookingRequest
from rental.schemas.equipment import CreateEquipmentRequest
from rental.schemas.incident import ResolveIncidentRequest
from rental.services.booking_service import BookingService
from rental.services.equipment_service import EquipmentService
from rental.services.handover_service import HandoverService
from rental.services.incident_service import IncidentService

from ..conftest import OWNER_ID


@pytest_asyncio.fixture
async def session_factory(tmp_path):
    """Sessions on separate connections to one file database."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'concurrency.db'}",
        poolclass=NullPool,
        connect_args={"timeout": 30},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)

    await engine.dispose()


async def _seed_equipment(session_factory, unit_count: int) -> str:
    async with session_factory() as session:
        equipment = await EquipmentService(session).create_equipment(
            CreateEquipmentRequest(
                title="Shared lighting kit",
                owner_id=OWNER_ID,
                daily_rate=300_000,
                replacement_price=12_000_000,
                unit_count=unit_count,
            )
        )
        return str(equipment.id)


async def _attempt(session_factory, equipment_id: str, renter_id: str, start: date, end: date):
    async with session_factory() as session:
        try:
            booking = await BookingService(session).create_booking(
                CreateBookingRequest(
                    equipment_id=equipment_id,
                    renter_id=renter_id,
                    start_date=start,
                    end_date=end,
                )
            )
        except ConflictError as e:
            return e
        return booking.id


async def _active_windows(session_factory) -> list[tuple[int, date, date]]:
    async with session_factory() as session:
        result = await session.execute(
            select(ReservationWindow).where(ReservationWindow.status == WindowStatus.ACTIVE.value)
        )
        return [(w.unit_number, w.start_date, w.end_date) for w in result.scalars()]


@pytest.mark.asyncio
async def test_overlapping_requests_single_winner(session_factory):
    """Two renters racing for overlapping dates: exactly one booking survives."""
    equipment_id = await _seed_equipment(session_factory, unit_count=1)

    results = await asyncio.gather(
        _attempt(session_factory, equipment_id, "renter-a", date(2099, 3, 2), date(2099, 3, 6)),
        _attempt(session_factory, equipment_id, "renter-b", date(2099, 3, 4), date(2099, 3, 8)),
    )

    failures = [r for r in results if isinstance(r, ConflictError)]
    assert len(failures) == 1
    assert failures[0].problem_details["code"] == "DATES_UNAVAILABLE"

    windows = await _active_windows(session_factory)
    assert len(windows) == 1


@pytest.mark.asyncio
async def test_units_never_double_booked(session_factory):
    """More renters than units: each unit is reserved at most once."""
    equipment_id = await _seed_equipment(session_factory, unit_count=3)

    results = await asyncio.gather(*[
        _attempt(session_factory, equipment_id, f"renter-{i}", date(2099, 5, 1), date(2099, 5, 5))
        for i in range(6)
    ])

    successes = [r for r in results if not isinstance(r, ConflictError)]
    assert len(successes) == 3

    windows = await _active_windows(session_factory)
    assert sorted(unit for unit, _, _ in windows) == [0, 1, 2]


@pytest.mark.asyncio
async def test_disjoint_requests_all_succeed(session_factory):
    equipment_id = await _seed_equipment(session_factory, unit_count=1)

    results = await asyncio.gather(*[
        _attempt(session_factory, equipment_id, f"renter-{i}", date(2099, 7, 1 + 4 * i), date(2099, 7, 5 + 4 * i))
        for i in range(4)
    ])

    assert not any(isinstance(r, ConflictError) for r in results)
    assert len(await _active_windows(session_factory)) == 4


async def _incident_under_review(session_factory, equipment_id: str) -> str:
    async with session_factory() as session:
        bookings = BookingService(session)
        booking = await bookings.create_booking(
            CreateBookingRequest(
                equipment_id=equipment_id,
                renter_id="renter-a",
                start_date=date(2099, 9, 1),
                end_date=date(2099, 9, 5),
            )
        )
        booking_id = str(booking.id)
        await bookings.confirm_booking(booking_id)

        handover = HandoverService(session)
        await handover.checkin(CheckinRequest(booking_id=booking_id))
        result = await handover.checkout(CheckoutRequest(booking_id=booking_id, severity=Severity.MAJOR))
        return str(result.incidents[0].id)


@pytest.mark.asyncio
async def test_incident_resolution_written_once(session_factory):
    """A reviewer holding a stale copy cannot overwrite another reviewer's outcome."""
    equipment_id = await _seed_equipment(session_factory, unit_count=1)
    incident_id = await _incident_under_review(session_factory, equipment_id)

    async with session_factory() as late_session, session_factory() as first_session:
        late_reviewer = IncidentService(late_session)
        stale = await late_reviewer.get_incident_by_id(UUID(incident_id))
        assert stale.is_open

        await IncidentService(first_session).resolve_incident(
            ResolveIncidentRequest(incident_id=incident_id, resolution_amount=2_000_000, outcome=IncidentOutcome.CHARGED)
        )

        with pytest.raises(StateError):
            await late_reviewer.resolve_incident(
                ResolveIncidentRequest(incident_id=incident_id, resolution_amount=0, outcome=IncidentOutcome.WAIVED)
            )

    async with session_factory() as session:
        incident = await IncidentService(session).get_incident_by_id(UUID(incident_id))
        assert incident.resolution_amount == 2_000_000
        assert incident.outcome == IncidentOutcome.CHARGED.value
