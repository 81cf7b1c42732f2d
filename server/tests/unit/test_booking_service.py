"""Unit tests for the booking service."""

from datetime import date
from uuid import uuid4

import pytest
from sqlalchemy import func, select

from rental.core.exceptions import NotFoundError, StateError, ValidationError
from rental.models.booking import Booking, BookingStatus
from rental.models.equipment import EquipmentStatus
from rental.models.reservation import ReservationWindow, ReservedDay, WindowStatus
from rental.schemas.booking import CheckinRequest, QuoteRequest
from rental.services.availability_service import AvailabilityService, DatesUnavailableError
from rental.services.booking_service import BookingService
from rental.services.handover_service import HandoverService

from ..conftest import FRIDAY, OWNER_ID, RENTER_ID, TUESDAY


async def _window_count(session, booking_id=None) -> int:
    stmt = select(func.count(ReservationWindow.id)).where(
        ReservationWindow.status == WindowStatus.ACTIVE.value
    )
    if booking_id is not None:
        stmt = stmt.where(ReservationWindow.booking_id == booking_id)
    result = await session.execute(stmt)
    return result.scalar_one()


@pytest.mark.asyncio
async def test_create_booking_prices_and_reserves(test_session, equipment, booking_request, clock):
    service = BookingService(test_session, clock=clock)

    booking = await service.create_booking(booking_request(equipment.id))

    assert booking.status == BookingStatus.PENDING.value
    assert booking.owner_id == OWNER_ID
    assert booking.chargeable_days == 2
    assert booking.base_price == 1_600_000
    assert booking.service_fee == 80_000
    assert booking.insurance_fee == 0
    assert booking.total_price == 1_680_000
    assert await _window_count(test_session, booking.id) == 1


@pytest.mark.asyncio
async def test_create_booking_with_insurance(test_session, equipment, insurance_package, booking_request, clock):
    service = BookingService(test_session, clock=clock)

    booking = await service.create_booking(
        booking_request(equipment.id, insurance_id=str(insurance_package.id))
    )

    assert booking.insurance_id == insurance_package.id
    assert booking.insurance_fee == 15_000
    assert booking.total_price == booking.base_price + booking.service_fee + 15_000


@pytest.mark.asyncio
async def test_explicit_no_insurance(test_session, equipment, booking_request, clock):
    booking = await BookingService(test_session, clock=clock).create_booking(
        booking_request(equipment.id, insurance_id="none")
    )
    assert booking.insurance_id is None
    assert booking.insurance_fee == 0


@pytest.mark.asyncio
async def test_two_day_span_creates_nothing(test_session, equipment, booking_request, clock):
    service = BookingService(test_session, clock=clock)

    with pytest.raises(ValidationError):
        await service.create_booking(
            booking_request(equipment.id, start_date=date(2026, 11, 2), end_date=date(2026, 11, 4))
        )

    assert await _window_count(test_session) == 0


@pytest.mark.asyncio
async def test_overlapping_booking_conflicts(test_session, equipment, booking_request, clock):
    service = BookingService(test_session, clock=clock)
    equipment_id = equipment.id
    first = await service.create_booking(booking_request(equipment_id))
    first_id = first.id

    with pytest.raises(DatesUnavailableError):
        await service.create_booking(
            booking_request(equipment_id, renter_id="renter-2", start_date=date(2026, 11, 8), end_date=date(2026, 11, 12))
        )

    assert await _window_count(test_session) == 1
    still_there = await service.get_booking(str(first_id))
    assert still_there.status == BookingStatus.PENDING.value


@pytest.mark.asyncio
async def test_claimed_day_discards_pending_booking(test_session, equipment, booking_request, clock):
    equipment_id = equipment.id
    test_session.add(ReservedDay(window_id=uuid4(), equipment_id=equipment_id, unit_number=0, day=date(2026, 11, 8)))
    await test_session.commit()

    with pytest.raises(DatesUnavailableError):
        await BookingService(test_session, clock=clock).create_booking(booking_request(equipment_id))

    bookings = await test_session.execute(select(func.count(Booking.id)))
    assert bookings.scalar_one() == 0
    assert await _window_count(test_session) == 0


@pytest.mark.asyncio
async def test_back_to_back_bookings(test_session, equipment, booking_request, clock):
    service = BookingService(test_session, clock=clock)

    await service.create_booking(booking_request(equipment.id))
    second = await service.create_booking(
        booking_request(equipment.id, renter_id="renter-2", start_date=TUESDAY, end_date=date(2026, 11, 14))
    )

    assert second.status == BookingStatus.PENDING.value


@pytest.mark.asyncio
async def test_quantity_reserves_distinct_units(test_session, multi_unit_equipment, booking_request, clock):
    service = BookingService(test_session, clock=clock)
    equipment_id = multi_unit_equipment.id

    booking = await service.create_booking(booking_request(equipment_id, quantity=2))
    assert booking.base_price == 2 * 2 * 240_000
    assert booking.daily_rate == 240_000

    result = await test_session.execute(
        select(ReservationWindow.unit_number).where(ReservationWindow.booking_id == booking.id)
    )
    assert sorted(result.scalars()) == [0, 1]

    with pytest.raises(DatesUnavailableError):
        await service.create_booking(booking_request(equipment_id, renter_id="renter-2", quantity=2))


@pytest.mark.asyncio
async def test_create_booking_policy_checks(test_session, equipment, booking_request, clock):
    service = BookingService(test_session, clock=clock)

    with pytest.raises(ValidationError):
        await service.create_booking(booking_request(equipment.id, owner_id="someone-else"))

    with pytest.raises(ValidationError):
        await service.create_booking(booking_request(equipment.id, renter_id=OWNER_ID))

    with pytest.raises(ValidationError):
        await service.create_booking(booking_request(equipment.id, quantity=2))


@pytest.mark.asyncio
async def test_unavailable_equipment_rejected(test_session, equipment, booking_request, clock):
    equipment.status = EquipmentStatus.UNAVAILABLE.value
    await test_session.commit()

    with pytest.raises(ValidationError):
        await BookingService(test_session, clock=clock).create_booking(booking_request(equipment.id))


@pytest.mark.asyncio
async def test_unknown_references(test_session, equipment, booking_request, clock):
    service = BookingService(test_session, clock=clock)

    with pytest.raises(NotFoundError):
        await service.create_booking(booking_request(uuid4()))

    with pytest.raises(NotFoundError):
        await service.create_booking(booking_request(equipment.id, insurance_id=str(uuid4())))

    with pytest.raises(NotFoundError):
        await service.get_booking("not-a-uuid")


@pytest.mark.asyncio
async def test_quote_matches_created_booking(test_session, equipment, insurance_package, booking_request, clock):
    service = BookingService(test_session, clock=clock)
    insurance_id = str(insurance_package.id)

    quote = await service.quote(
        QuoteRequest(equipment_id=str(equipment.id), start_date=FRIDAY, end_date=TUESDAY, insurance_id=insurance_id)
    )
    assert quote.available is True

    booking = await service.create_booking(booking_request(equipment.id, insurance_id=insurance_id))
    assert booking.total_price == quote.quote.total_price
    assert booking.chargeable_days == quote.quote.chargeable_days

    again = await service.quote(
        QuoteRequest(equipment_id=str(equipment.id), start_date=FRIDAY, end_date=TUESDAY)
    )
    assert again.available is False


@pytest.mark.asyncio
async def test_confirm_then_confirm_again(test_session, equipment, booking_request, clock):
    service = BookingService(test_session, clock=clock)
    booking = await service.create_booking(booking_request(equipment.id))

    confirmed = await service.confirm_booking(str(booking.id), payment_ref="txn-1")
    assert confirmed.status == BookingStatus.CONFIRMED.value

    with pytest.raises(StateError):
        await service.confirm_booking(str(booking.id))


@pytest.mark.asyncio
async def test_cancel_frees_dates_for_next_booking(test_session, equipment, booking_request, clock):
    service = BookingService(test_session, clock=clock)
    booking = await service.create_booking(booking_request(equipment.id))
    await service.confirm_booking(str(booking.id))

    canceled = await service.cancel_booking(str(booking.id))
    assert canceled.status == BookingStatus.CANCELED.value
    assert await _window_count(test_session) == 0
    assert await AvailabilityService(test_session).is_available(equipment.id, 1, 1, FRIDAY, TUESDAY)

    rebooked = await service.create_booking(booking_request(equipment.id, renter_id="renter-2"))
    assert rebooked.status == BookingStatus.PENDING.value


@pytest.mark.asyncio
async def test_cancel_twice_rejected(test_session, equipment, booking_request, clock):
    service = BookingService(test_session, clock=clock)
    booking = await service.create_booking(booking_request(equipment.id))
    booking_id = str(booking.id)
    await service.cancel_booking(booking_id)

    with pytest.raises(StateError):
        await service.cancel_booking(booking_id)

    canceled = await service.get_booking(booking_id)
    assert canceled.status == BookingStatus.CANCELED.value
    assert await _window_count(test_session) == 0


@pytest.mark.asyncio
async def test_cancel_after_checkin_rejected(test_session, equipment, booking_request, clock):
    service = BookingService(test_session, clock=clock)
    booking = await service.create_booking(booking_request(equipment.id))
    await service.confirm_booking(str(booking.id))
    await HandoverService(test_session, clock=clock).checkin(
        CheckinRequest(booking_id=str(booking.id), images=["https://img.example/1.jpg"])
    )

    with pytest.raises(StateError):
        await service.cancel_booking(str(booking.id))

    assert await _window_count(test_session, booking.id) == 1


@pytest.mark.asyncio
async def test_fail_releases_windows(test_session, equipment, booking_request, clock):
    service = BookingService(test_session, clock=clock)
    booking = await service.create_booking(booking_request(equipment.id))

    failed = await service.fail_booking(str(booking.id), reason="card declined")

    assert failed.status == BookingStatus.FAILED.value
    assert await _window_count(test_session) == 0

    with pytest.raises(StateError):
        await service.confirm_booking(str(booking.id))


@pytest.mark.asyncio
async def test_expire_pending_bookings(test_session, equipment, multi_unit_equipment, booking_request, clock):
    service = BookingService(test_session, clock=clock)
    stale = await service.create_booking(booking_request(equipment.id))
    paid = await service.create_booking(booking_request(multi_unit_equipment.id))
    await service.confirm_booking(str(paid.id))

    clock.advance(seconds=299)
    assert await service.expire_pending_bookings() == 0

    clock.advance(seconds=2)
    assert await service.expire_pending_bookings() == 1

    expired = await service.get_booking(str(stale.id))
    assert expired.status == BookingStatus.FAILED.value
    assert await _window_count(test_session, stale.id) == 0

    still_paid = await service.get_booking(str(paid.id))
    assert still_paid.status == BookingStatus.CONFIRMED.value
    assert still_paid.renter_id == RENTER_ID
