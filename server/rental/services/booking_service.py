"""Booking service for reservation and payment lifecycle operations."""

import logging
from datetime import timedelta
from uuid import UUID, uuid4

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.clock import Clock, utcnow
from ..core.config import settings
from ..core.database import acquire_advisory_lock
from ..core.exceptions import ConflictError, NotFoundError, ValidationError
from ..core.ids import parse_id
from ..core.observability import metrics_collector
from ..models.booking import Booking, BookingStatus
from ..models.equipment import Equipment, EquipmentStatus
from ..schemas.booking import CreateBookingRequest, QuoteRequest, QuoteResponse
from .availability_service import AvailabilityService
from .booking_state import transition
from .equipment_service import EquipmentService
from .insurance_service import InsuranceService
from .pricing_service import calculate_price

logger = logging.getLogger(__name__)


class BookingService:
    """Service for booking-related operations."""

    def __init__(self, db: AsyncSession, clock: Clock | None = None):
        self.db = db
        self.clock = clock or utcnow
        self.equipment_service = EquipmentService(db)
        self.insurance_service = InsuranceService(db)
        self.availability_service = AvailabilityService(db)

    def _check_equipment(self, equipment: Equipment, quantity: int) -> None:
        if equipment.status != EquipmentStatus.AVAILABLE.value:
            raise ValidationError(
                detail=f"Equipment {equipment.id} is not available for rent",
                errors={"equipment_id": "equipment is unavailable"}
            )
        if quantity > equipment.unit_count:
            raise ValidationError(
                detail=f"Requested {quantity} units but only {equipment.unit_count} exist",
                errors={"quantity": f"must be <= {equipment.unit_count}"}
            )

    async def quote(self, request: QuoteRequest) -> QuoteResponse:
        """
        Price a rental without writing anything.

        The price uses the same calculation as ``create_booking``; the
        availability flag is advisory only.

        Raises:
            NotFoundError: If equipment or insurance package not found
            ValidationError: If the span or quantity is invalid
        """
        equipment_id = parse_id(request.equipment_id, "equipment")
        equipment = await self.equipment_service.get_equipment_by_id_or_raise(equipment_id)
        self._check_equipment(equipment, request.quantity)

        _, insurance = await self.insurance_service.resolve_selection(request.insurance_id)
        price = calculate_price(
            request.start_date,
            request.end_date,
            equipment.daily_rate,
            insurance=insurance,
            quantity=request.quantity,
            max_days=settings.max_rental_days
        )

        available = await self.availability_service.is_available(
            equipment_id,
            equipment.unit_count,
            request.quantity,
            request.start_date,
            request.end_date
        )

        return QuoteResponse(
            equipment_id=request.equipment_id,
            insurance_id=request.insurance_id,
            available=available,
            quote=price
        )

    async def create_booking(self, request: CreateBookingRequest, idempotency_key: str | None = None) -> Booking:
        """
        Price and reserve a rental, creating a pending booking.

        The booking row and its reservation windows are committed in one
        transaction. If any window cannot be claimed nothing is written.

        Args:
            request: Booking creation request
            idempotency_key: Idempotency key for this operation

        Returns:
            Created booking in ``pending`` state

        Raises:
            NotFoundError: If equipment or insurance package not found
            ValidationError: If the span, quantity or parties are invalid
            DatesUnavailableError: If the dates are taken
        """
        equipment_id = parse_id(request.equipment_id, "equipment")

        # Serialize writers on this equipment (PostgreSQL only)
        equipment = await self.equipment_service.get_equipment_with_lock(equipment_id)
        self._check_equipment(equipment, request.quantity)

        owner_id = request.owner_id or equipment.owner_id
        if owner_id != equipment.owner_id:
            raise ValidationError(
                detail="Owner does not match the equipment listing",
                errors={"owner_id": "must be the equipment owner"}
            )
        if request.renter_id == owner_id:
            raise ValidationError(
                detail="Owners cannot rent their own equipment",
                errors={"renter_id": "must differ from owner_id"}
            )

        insurance_id, insurance = await self.insurance_service.resolve_selection(request.insurance_id)

        # Authoritative price; rejects short spans before anything is reserved
        price = calculate_price(
            request.start_date,
            request.end_date,
            equipment.daily_rate,
            insurance=insurance,
            quantity=request.quantity,
            max_days=settings.max_rental_days
        )

        unit_count = equipment.unit_count
        booking_id = uuid4()
        booking = Booking(
            id=booking_id,
            equipment_id=equipment_id,
            insurance_id=insurance_id,
            renter_id=request.renter_id,
            owner_id=owner_id,
            start_date=request.start_date,
            end_date=request.end_date,
            quantity=request.quantity,
            chargeable_days=price.chargeable_days,
            base_price=price.base_price,
            service_fee=price.service_fee,
            insurance_fee=price.insurance_fee,
            total_price=price.total_price,
            status=BookingStatus.PENDING.value,
            checkin_images=[],
            checkout_images=[],
            notes=request.notes,
            created_at=self.clock()
        )

        self.db.add(booking)
        await self.db.flush()

        try:
            windows = await self.availability_service.reserve_units(
                equipment_id,
                unit_count,
                request.quantity,
                request.start_date,
                request.end_date,
                booking_id=booking_id
            )
        except ConflictError:
            await self.db.rollback()
            logger.warning(
                "Booking creation failed - dates unavailable",
                extra={
                    "equipment_id": str(equipment_id),
                    "renter_id": request.renter_id,
                    "start_date": request.start_date.isoformat(),
                    "end_date": request.end_date.isoformat(),
                    "quantity": request.quantity,
                    "idempotency_key": idempotency_key
                }
            )
            raise

        await self.db.commit()
        await self.db.refresh(booking)

        metrics_collector.record_booking_created()
        logger.info(
            "Booking created successfully",
            extra={
                "booking_id": str(booking.id),
                "equipment_id": str(equipment_id),
                "renter_id": booking.renter_id,
                "units": [window.unit_number for window in windows],
                "chargeable_days": booking.chargeable_days,
                "total_price": booking.total_price,
                "idempotency_key": idempotency_key
            }
        )

        return booking

    async def confirm_booking(self, booking_id: str, payment_ref: str | None = None) -> Booking:
        """
        Mark a pending booking paid.

        Raises:
            NotFoundError: If booking not found
            StateError: If the booking is not pending
        """
        booking = await self.get_booking_for_update(booking_id)
        transition(booking, BookingStatus.CONFIRMED, "confirm")

        await self.db.commit()
        await self.db.refresh(booking)

        logger.info(
            "Booking confirmed",
            extra={"booking_id": booking_id, "payment_ref": payment_ref}
        )
        return booking

    async def fail_booking(self, booking_id: str, reason: str | None = None) -> Booking:
        """
        Fail a booking whose payment did not go through and free its dates.

        Raises:
            NotFoundError: If booking not found
            StateError: If the booking is past confirmation
        """
        booking = await self.get_booking_for_update(booking_id)
        transition(booking, BookingStatus.FAILED, "fail")
        await self.availability_service.release_for_booking(booking.id, self.clock())

        await self.db.commit()
        await self.db.refresh(booking)

        logger.info(
            "Booking failed",
            extra={"booking_id": booking_id, "reason": reason}
        )
        return booking

    async def cancel_booking(self, booking_id: str, idempotency_key: str | None = None) -> Booking:
        """
        Cancel a booking before hand-off and free its dates.

        Evidence images already captured are kept.

        Raises:
            NotFoundError: If booking not found
            StateError: If the booking has been handed off or has ended
        """
        booking = await self.get_booking_for_update(booking_id)

        transition(booking, BookingStatus.CANCELED, "cancel")
        released = await self.availability_service.release_for_booking(booking.id, self.clock())

        await self.db.commit()
        await self.db.refresh(booking)

        logger.info(
            "Booking cancelled successfully",
            extra={
                "booking_id": booking_id,
                "windows_released": released,
                "idempotency_key": idempotency_key
            }
        )
        return booking

    async def get_booking(self, booking_id: str) -> Booking:
        """
        Get booking by ID.

        Raises:
            NotFoundError: If booking not found
        """
        return await self.get_booking_by_id_or_raise(parse_id(booking_id, "booking"))

    async def get_booking_by_id(self, booking_id: UUID, refresh: bool = False) -> Booking | None:
        """Get booking by ID; ``refresh`` re-reads it over any copy already in the session."""
        stmt = select(Booking).where(Booking.id == booking_id)
        if refresh:
            stmt = stmt.execution_options(populate_existing=True)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_booking_by_id_or_raise(self, booking_id: UUID, refresh: bool = False) -> Booking:
        """Get booking by ID or raise NotFoundError."""
        booking = await self.get_booking_by_id(booking_id, refresh=refresh)
        if not booking:
            logger.warning(
                "Booking not found",
                extra={"booking_id": str(booking_id)}
            )
            raise NotFoundError(
                resource_type="booking",
                resource_id=str(booking_id)
            )
        return booking

    async def get_booking_for_update(self, booking_id: str | UUID) -> Booking:
        """Get a booking while holding its advisory lock for the transaction."""
        if not isinstance(booking_id, UUID):
            booking_id = parse_id(booking_id, "booking")
        await acquire_advisory_lock(self.db, f"booking:{booking_id}")
        return await self.get_booking_by_id_or_raise(booking_id, refresh=True)

    async def expire_pending_bookings(self, batch_size: int = 100) -> int:
        """
        Fail bookings left unpaid past the payment timeout.

        Returns:
            Number of bookings expired
        """
        now = self.clock()
        cutoff = now - timedelta(seconds=settings.payment_timeout_seconds)

        stmt = (
            select(Booking.id)
            .where(
                Booking.status == BookingStatus.PENDING.value,
                Booking.created_at <= cutoff
            )
            .order_by(Booking.created_at)
            .limit(batch_size)
        )
        result = await self.db.execute(stmt)
        booking_ids = list(result.scalars())

        expired_count = 0
        for booking_id in booking_ids:
            booking = await self.get_booking_for_update(booking_id)
            # Paid or cancelled since the scan
            if booking.status != BookingStatus.PENDING.value:
                continue

            transition(booking, BookingStatus.FAILED, "expire")
            await self.availability_service.release_for_booking(booking.id, now)
            expired_count += 1

        if expired_count:
            await self.db.commit()
            metrics_collector.record_pending_expired(expired_count)
            logger.info(
                "Expired unpaid bookings",
                extra={"expired_count": expired_count, "cutoff": cutoff.isoformat()}
            )

        return expired_count
