"""Availability index: per-unit reservation windows over date ranges."""

import logging
from datetime import date, datetime, timedelta, timezone
from typing import AsyncIterator
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.exceptions import ConflictError, ValidationError
from ..core.observability import metrics_collector
from ..models.reservation import ReservationWindow, ReservedDay, WindowStatus
from ..schemas.equipment import DateRange

logger = logging.getLogger(__name__)


class DatesUnavailableError(ConflictError):
    """Exception when the requested dates are already reserved."""

    def __init__(self, equipment_id: str, start_date: date, end_date: date, unit_number: int | None = None):
        conflicting = {
            "equipment_id": equipment_id,
            "start_date": start_date.isoformat(),
            "end_date": end_date.isoformat(),
        }
        if unit_number is not None:
            conflicting["unit_number"] = unit_number

        super().__init__(
            detail="The selected dates are no longer available",
            conflicting_resource=conflicting
        )
        self.problem_details.update({
            "code": "DATES_UNAVAILABLE",
            "retryable": False
        })


def _days(start_date: date, end_date: date):
    current = start_date
    while current < end_date:
        yield current
        current += timedelta(days=1)


class AvailabilityService:
    """
    Service for reserving equipment units over half-open date ranges.

    Reservations flush but never commit; the calling operation owns the
    transaction so a booking and its windows land together. A unique
    violation on reserved days leaves the session needing a rollback,
    which the caller performs before reusing it.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    def _overlapping(self, equipment_id: UUID, start_date: date, end_date: date):
        return select(ReservationWindow).where(
            ReservationWindow.equipment_id == equipment_id,
            ReservationWindow.status == WindowStatus.ACTIVE.value,
            ReservationWindow.start_date < end_date,
            ReservationWindow.end_date > start_date
        )

    async def busy_units(self, equipment_id: UUID, start_date: date, end_date: date) -> set[int]:
        """Unit numbers holding an active window that overlaps [start_date, end_date)."""
        result = await self.db.execute(self._overlapping(equipment_id, start_date, end_date))
        return {window.unit_number for window in result.scalars()}

    async def free_units(
        self, equipment_id: UUID, unit_count: int, start_date: date, end_date: date
    ) -> list[int]:
        busy = await self.busy_units(equipment_id, start_date, end_date)
        return [unit for unit in range(unit_count) if unit not in busy]

    async def is_available(
        self,
        equipment_id: UUID,
        unit_count: int,
        quantity: int,
        start_date: date,
        end_date: date
    ) -> bool:
        """Display helper: whether ``quantity`` units are free right now."""
        free = await self.free_units(equipment_id, unit_count, start_date, end_date)
        return len(free) >= quantity

    async def reserve(
        self,
        equipment_id: UUID,
        unit_number: int,
        start_date: date,
        end_date: date,
        booking_id: UUID | None = None
    ) -> ReservationWindow:
        """
        Reserve one unit over [start_date, end_date).

        Back-to-back windows (one ending the day the next starts) do not
        overlap.

        Raises:
            ValidationError: If the range is empty
            DatesUnavailableError: If an active window overlaps, or a
                concurrent writer claimed one of the days first
        """
        if start_date >= end_date:
            raise ValidationError(
                detail="Reservation start must be before its end",
                errors={"end_date": "must be after start_date"}
            )

        stmt = self._overlapping(equipment_id, start_date, end_date).where(
            ReservationWindow.unit_number == unit_number
        ).limit(1)
        result = await self.db.execute(stmt)
        if result.scalar_one_or_none() is not None:
            metrics_collector.record_reservation_conflict()
            logger.warning(
                "Reservation rejected - overlapping window",
                extra={
                    "equipment_id": str(equipment_id),
                    "unit_number": unit_number,
                    "start_date": start_date.isoformat(),
                    "end_date": end_date.isoformat()
                }
            )
            raise DatesUnavailableError(str(equipment_id), start_date, end_date, unit_number)

        window = ReservationWindow(
            booking_id=booking_id,
            equipment_id=equipment_id,
            unit_number=unit_number,
            start_date=start_date,
            end_date=end_date,
            status=WindowStatus.ACTIVE.value
        )

        try:
            self.db.add(window)
            await self.db.flush()
            self.db.add_all(
                ReservedDay(
                    window_id=window.id,
                    equipment_id=equipment_id,
                    unit_number=unit_number,
                    day=day
                )
                for day in _days(start_date, end_date)
            )
            await self.db.flush()
        except IntegrityError as e:
            metrics_collector.record_reservation_conflict()
            logger.warning(
                "Reservation rejected - concurrent writer claimed the dates",
                extra={
                    "equipment_id": str(equipment_id),
                    "unit_number": unit_number,
                    "start_date": start_date.isoformat(),
                    "end_date": end_date.isoformat(),
                    "error": str(e.orig)
                }
            )
            raise DatesUnavailableError(str(equipment_id), start_date, end_date, unit_number) from e

        logger.info(
            "Reservation window created",
            extra={
                "window_id": str(window.id),
                "equipment_id": str(equipment_id),
                "unit_number": unit_number,
                "booking_id": str(booking_id) if booking_id else None,
                "start_date": start_date.isoformat(),
                "end_date": end_date.isoformat()
            }
        )

        return window

    async def reserve_units(
        self,
        equipment_id: UUID,
        unit_count: int,
        quantity: int,
        start_date: date,
        end_date: date,
        booking_id: UUID | None = None
    ) -> list[ReservationWindow]:
        """
        Reserve ``quantity`` distinct units, lowest unit numbers first.

        Raises:
            DatesUnavailableError: If fewer than ``quantity`` units are free
        """
        free = await self.free_units(equipment_id, unit_count, start_date, end_date)
        if len(free) < quantity:
            metrics_collector.record_reservation_conflict()
            logger.warning(
                "Reservation rejected - not enough free units",
                extra={
                    "equipment_id": str(equipment_id),
                    "requested": quantity,
                    "free_units": len(free),
                    "start_date": start_date.isoformat(),
                    "end_date": end_date.isoformat()
                }
            )
            raise DatesUnavailableError(str(equipment_id), start_date, end_date)

        windows = []
        for unit_number in free[:quantity]:
            windows.append(
                await self.reserve(equipment_id, unit_number, start_date, end_date, booking_id)
            )
        return windows

    async def release(self, window_id: UUID, now: datetime | None = None) -> ReservationWindow | None:
        """
        Release a window and free its days.

        Releasing an unknown or already released window is a no-op.
        """
        window = await self.db.get(ReservationWindow, window_id)
        if window is None or window.status == WindowStatus.RELEASED.value:
            return window

        await self._release_window(window, now or datetime.now(timezone.utc))
        await self.db.flush()
        return window

    async def release_for_booking(self, booking_id: UUID, now: datetime | None = None) -> int:
        """Release every active window held by a booking; returns the count released."""
        stmt = select(ReservationWindow).where(
            ReservationWindow.booking_id == booking_id,
            ReservationWindow.status == WindowStatus.ACTIVE.value
        )
        result = await self.db.execute(stmt)
        windows = list(result.scalars())

        released_at = now or datetime.now(timezone.utc)
        for window in windows:
            await self._release_window(window, released_at)
        await self.db.flush()

        if windows:
            logger.info(
                "Released reservation windows for booking",
                extra={"booking_id": str(booking_id), "released": len(windows)}
            )
        return len(windows)

    async def _release_window(self, window: ReservationWindow, released_at: datetime) -> None:
        await self.db.execute(delete(ReservedDay).where(ReservedDay.window_id == window.id))
        window.status = WindowStatus.RELEASED.value
        window.released_at = released_at

    async def iter_blocked_ranges(
        self, equipment_id: UUID, unit_number: int | None = None
    ) -> AsyncIterator[DateRange]:
        """
        Yield blocked [start, end) ranges ordered by start date.

        With no ``unit_number`` each booking contributes a single range,
        however many units it holds.
        """
        stmt = select(ReservationWindow).where(
            ReservationWindow.equipment_id == equipment_id,
            ReservationWindow.status == WindowStatus.ACTIVE.value
        )
        if unit_number is not None:
            stmt = stmt.where(ReservationWindow.unit_number == unit_number)
        stmt = stmt.order_by(
            ReservationWindow.start_date,
            ReservationWindow.end_date,
            ReservationWindow.unit_number
        )

        result = await self.db.execute(stmt)
        seen = set()
        for window in result.scalars():
            owner = window.booking_id or window.id
            if unit_number is None and owner in seen:
                continue
            seen.add(owner)
            yield DateRange(start=window.start_date, end=window.end_date)

    async def list_booked_ranges(self, equipment_id: UUID, unit_number: int | None = None) -> list[DateRange]:
        return [blocked async for blocked in self.iter_blocked_ranges(equipment_id, unit_number)]
