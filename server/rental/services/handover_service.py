"""Check-in and check-out processing."""

import logging
import math
from datetime import datetime, time, timedelta, timezone
from typing import NamedTuple

from sqlalchemy.ext.asyncio import AsyncSession

from ..core.clock import Clock, utcnow
from ..core.config import settings
from ..core.exceptions import StateError
from ..models.booking import Booking, BookingStatus
from ..models.incident import Incident, IncidentStage, IncidentType, Severity
from ..schemas.booking import CheckinRequest, CheckoutRequest, ExtraCharges
from .booking_state import transition
from .equipment_service import EquipmentService
from .incident_service import IncidentService
from .pricing_service import damage_charge, late_charge

logger = logging.getLogger(__name__)

NOTES_SEPARATOR = " | "


class CheckinResult(NamedTuple):
    booking: Booking
    incident: Incident | None


class CheckoutResult(NamedTuple):
    booking: Booking
    incidents: list[Incident]
    charges: ExtraCharges


def append_notes(existing: str | None, extra: str | None) -> str | None:
    if not extra or not extra.strip():
        return existing
    if not existing:
        return extra.strip()
    return f"{existing}{NOTES_SEPARATOR}{extra.strip()}"


def minutes_past_deadline(end_date, now: datetime, grace_minutes: int = 0) -> int:
    """Whole minutes elapsed since 00:00 UTC of the return day plus grace."""
    deadline = datetime.combine(end_date, time.min, tzinfo=timezone.utc) + timedelta(minutes=grace_minutes)
    if now <= deadline:
        return 0
    return math.floor((now - deadline).total_seconds() / 60)


class HandoverService:
    """Service recording the physical hand-off and return of equipment."""

    def __init__(self, db: AsyncSession, clock: Clock | None = None, late_grace_minutes: int | None = None):
        self.db = db
        self.clock = clock or utcnow
        self.late_grace_minutes = (
            settings.late_grace_minutes if late_grace_minutes is None else late_grace_minutes
        )
        self.equipment_service = EquipmentService(db)
        self.incident_service = IncidentService(db, clock=self.clock)
        self.booking_service = self.incident_service.booking_service

    async def checkin(self, request: CheckinRequest, reporter_id: str | None = None) -> CheckinResult:
        """
        Hand the equipment to the renter.

        A condition report attached to the hand-off is recorded as an
        incident but does not block it.

        Raises:
            NotFoundError: If booking not found
            StateError: If the booking is not confirmed or was already checked in
        """
        booking = await self.booking_service.get_booking_for_update(request.booking_id)

        if booking.checkin_time is not None:
            logger.warning(
                "Check-in rejected - already checked in",
                extra={"booking_id": request.booking_id, "status": booking.status}
            )
            raise StateError(
                current_status=booking.status,
                action="checkin",
                detail=f"Booking {request.booking_id} has already been checked in"
            )

        transition(booking, BookingStatus.ONGOING, "checkin")
        booking.checkin_time = self.clock()
        booking.checkin_images = list(request.images)
        booking.notes = append_notes(booking.notes, request.notes)

        incident = None
        report = request.incident
        if report is not None and report.is_reportable:
            equipment = await self.equipment_service.get_equipment_by_id_or_raise(booking.equipment_id)
            if report.type:
                incident_type = IncidentType(report.type)
            elif report.severity != Severity.NONE:
                incident_type = IncidentType.DAMAGE
            else:
                incident_type = IncidentType.OTHER

            incident = self.incident_service.record_incident(
                booking,
                reporter_id=reporter_id or booking.renter_id,
                incident_type=incident_type,
                stage=IncidentStage.CHECKIN,
                estimated_charge=damage_charge(equipment.replacement_price, report.severity),
                severity=report.severity,
                description=report.description,
                images=report.images
            )

        await self.db.commit()
        await self.db.refresh(booking)
        if incident is not None:
            await self.db.refresh(incident)

        logger.info(
            "Booking checked in",
            extra={
                "booking_id": request.booking_id,
                "images": len(request.images),
                "incident_reported": incident is not None
            }
        )
        return CheckinResult(booking=booking, incident=incident)

    async def checkout(self, request: CheckoutRequest, reporter_id: str | None = None) -> CheckoutResult:
        """
        Take the equipment back and estimate damage and lateness surcharges.

        Lateness is the larger of the reported minutes and the minutes
        elapsed since the return deadline. The booking goes to review while
        any incident on it is open, otherwise it completes.

        Raises:
            NotFoundError: If booking not found
            StateError: If the booking is not ongoing
        """
        booking = await self.booking_service.get_booking_for_update(request.booking_id)

        # reviewing -> completed belongs to incident resolution
        if booking.status != BookingStatus.ONGOING.value:
            logger.warning(
                "Check-out rejected - booking not ongoing",
                extra={"booking_id": request.booking_id, "status": booking.status}
            )
            raise StateError(
                current_status=booking.status,
                action="checkout",
                detail=f"Booking {request.booking_id} is not ongoing"
            )

        now = self.clock()
        late_minutes = max(
            request.late_minutes,
            minutes_past_deadline(booking.end_date, now, self.late_grace_minutes)
        )
        equipment = await self.equipment_service.get_equipment_by_id_or_raise(booking.equipment_id)

        damage = damage_charge(equipment.replacement_price, request.severity)
        late = late_charge(booking.daily_rate, late_minutes)
        charges = ExtraCharges(damage=damage, late=late, total=damage + late)

        booking.checkout_time = now
        booking.checkout_images = list(request.images)
        booking.notes = append_notes(booking.notes, request.notes)

        reporter = reporter_id or booking.owner_id
        incidents = []
        if charges.late > 0:
            incidents.append(
                self.incident_service.record_incident(
                    booking,
                    reporter_id=reporter,
                    incident_type=IncidentType.LATE,
                    stage=IncidentStage.CHECKOUT,
                    estimated_charge=charges.late,
                    severity=Severity.MINOR,
                    description=request.late_reason
                )
            )
        if charges.damage > 0:
            incidents.append(
                self.incident_service.record_incident(
                    booking,
                    reporter_id=reporter,
                    incident_type=IncidentType.DAMAGE,
                    stage=IncidentStage.CHECKOUT,
                    estimated_charge=charges.damage,
                    severity=request.severity,
                    description=request.issue_description,
                    images=request.images
                )
            )
        await self.db.flush()

        open_incidents = await self.incident_service.count_open_incidents(booking.id)
        target = BookingStatus.REVIEWING if open_incidents else BookingStatus.COMPLETED
        transition(booking, target, "checkout")

        await self.db.commit()
        await self.db.refresh(booking)
        for incident in incidents:
            await self.db.refresh(incident)

        logger.info(
            "Booking checked out",
            extra={
                "booking_id": request.booking_id,
                "status": booking.status,
                "late_minutes": late_minutes,
                "damage_charge": charges.damage,
                "late_charge": charges.late,
                "open_incidents": open_incidents
            }
        )
        return CheckoutResult(booking=booking, incidents=incidents, charges=charges)
