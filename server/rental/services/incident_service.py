"""Incident ledger and booking settlement."""

import logging
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.clock import Clock, utcnow
from ..core.database import acquire_advisory_lock
from ..core.exceptions import NotFoundError, StateError, ValidationError
from ..core.ids import parse_id
from ..core.observability import metrics_collector
from ..models.booking import Booking, BookingStatus
from ..models.incident import Incident, IncidentOutcome, IncidentStage, IncidentType, Severity
from ..schemas.booking import Settlement, SurchargeBreakdown
from ..schemas.incident import ResolveIncidentRequest
from .booking_service import BookingService
from .booking_state import transition

logger = logging.getLogger(__name__)


def _breakdown(amounts: dict[str, int]) -> SurchargeBreakdown:
    return SurchargeBreakdown(
        damage=amounts.get(IncidentType.DAMAGE.value, 0),
        late=amounts.get(IncidentType.LATE.value, 0),
        other=amounts.get(IncidentType.OTHER.value, 0),
        total=sum(amounts.values())
    )


class IncidentService:
    """
    Append-only incident ledger.

    ``estimated_charge`` is written once when an incident is recorded and
    never recomputed; resolution writes the settled amount beside it.
    """

    def __init__(self, db: AsyncSession, clock: Clock | None = None):
        self.db = db
        self.clock = clock or utcnow
        self.booking_service = BookingService(db, clock=self.clock)

    def record_incident(
        self,
        booking: Booking,
        reporter_id: str,
        incident_type: IncidentType,
        stage: IncidentStage,
        estimated_charge: int,
        severity: Severity = Severity.NONE,
        description: str | None = None,
        images: list[str] | None = None
    ) -> Incident:
        """Add an incident to the session; the caller commits."""
        incident = Incident(
            booking_id=booking.id,
            reporter_id=reporter_id,
            type=incident_type.value,
            severity=severity.value,
            stage=stage.value,
            description=description,
            images=list(images or []),
            estimated_charge=estimated_charge,
            created_at=self.clock()
        )
        self.db.add(incident)

        metrics_collector.record_incident_created(incident_type.value, severity.value, estimated_charge)
        logger.info(
            "Incident recorded",
            extra={
                "booking_id": str(booking.id),
                "type": incident_type.value,
                "severity": severity.value,
                "stage": stage.value,
                "estimated_charge": estimated_charge
            }
        )
        return incident

    async def count_open_incidents(self, booking_id: UUID) -> int:
        stmt = select(func.count(Incident.id)).where(
            Incident.booking_id == booking_id,
            Incident.resolution_amount.is_(None)
        )
        result = await self.db.execute(stmt)
        return result.scalar_one()

    async def get_incident_by_id(self, incident_id: UUID, refresh: bool = False) -> Incident | None:
        """Get incident by ID; ``refresh`` re-reads it over any copy already in the session."""
        stmt = select(Incident).where(Incident.id == incident_id)
        if refresh:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_incident_by_id_or_raise(self, incident_id: UUID, refresh: bool = False) -> Incident:
        incident = await self.get_incident_by_id(incident_id, refresh=refresh)
        if not incident:
            logger.warning("Incident not found", extra={"incident_id": str(incident_id)})
            raise NotFoundError(resource_type="incident", resource_id=str(incident_id))
        return incident

    async def resolve_incident(self, request: ResolveIncidentRequest, reviewer_id: str | None = None) -> Incident:
        """
        Record the review outcome of an incident.

        Resolving the last open incident of a booking under review
        completes the booking in the same transaction.

        Raises:
            NotFoundError: If incident not found
            ValidationError: If a waived incident carries an amount
            StateError: If the incident was already resolved
        """
        incident_id = parse_id(request.incident_id, "incident")
        incident = await self.get_incident_by_id_or_raise(incident_id)
        booking = await self.booking_service.get_booking_for_update(incident.booking_id)

        # A concurrent reviewer may have resolved it while we waited for the lock
        incident = await self.get_incident_by_id_or_raise(incident_id, refresh=True)

        if not incident.is_open:
            logger.warning(
                "Incident already resolved",
                extra={"incident_id": request.incident_id, "outcome": incident.outcome}
            )
            raise StateError(
                current_status="resolved",
                action="resolve",
                detail=f"Incident {request.incident_id} has already been resolved"
            )

        if request.outcome == IncidentOutcome.WAIVED and request.resolution_amount != 0:
            raise ValidationError(
                detail="A waived incident cannot carry a resolution amount",
                errors={"resolution_amount": "must be 0 when outcome is waived"}
            )

        incident.resolution_amount = request.resolution_amount
        incident.outcome = request.outcome.value
        incident.resolved_at = self.clock()
        await self.db.flush()

        remaining = await self.count_open_incidents(booking.id)
        if remaining == 0 and booking.status == BookingStatus.REVIEWING.value:
            transition(booking, BookingStatus.COMPLETED, "resolve")

        await self.db.commit()
        await self.db.refresh(incident)

        metrics_collector.record_incident_resolved(request.outcome.value)
        logger.info(
            "Incident resolved",
            extra={
                "incident_id": request.incident_id,
                "booking_id": str(incident.booking_id),
                "reviewer_id": reviewer_id,
                "outcome": request.outcome.value,
                "resolution_amount": request.resolution_amount,
                "estimated_charge": incident.estimated_charge,
                "open_incidents": remaining
            }
        )
        return incident

    async def list_incidents(self, booking_id: str | UUID) -> list[Incident]:
        """
        List a booking's incidents in the order they were recorded.

        Raises:
            NotFoundError: If booking not found
        """
        if not isinstance(booking_id, UUID):
            booking_id = parse_id(booking_id, "booking")
        await self.booking_service.get_booking_by_id_or_raise(booking_id)

        stmt = (
            select(Incident)
            .where(Incident.booking_id == booking_id)
            .order_by(Incident.created_at, Incident.stage, Incident.type)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars())

    async def get_settlement(self, booking_id: str) -> Settlement:
        """
        Summarize what the booking owes beyond its quote.

        Only incidents resolved as ``charged`` add to the renter's total;
        insured and waived incidents are settled without a surcharge.

        Raises:
            NotFoundError: If booking not found
        """
        booking = await self.booking_service.get_booking(booking_id)
        incidents = await self.list_incidents(booking.id)

        estimated: dict[str, int] = {}
        settled: dict[str, int] = {}
        open_count = 0
        for incident in incidents:
            estimated[incident.type] = estimated.get(incident.type, 0) + incident.estimated_charge
            if incident.is_open:
                open_count += 1
            elif incident.outcome == IncidentOutcome.CHARGED.value:
                settled[incident.type] = settled.get(incident.type, 0) + incident.resolution_amount

        settled_surcharges = _breakdown(settled)

        return Settlement(
            booking_id=str(booking.id),
            status=booking.status,
            base_price=booking.base_price,
            service_fee=booking.service_fee,
            insurance_fee=booking.insurance_fee,
            quoted_total=booking.total_price,
            estimated_surcharges=_breakdown(estimated),
            settled_surcharges=settled_surcharges,
            open_incidents=open_count,
            settled_total=booking.total_price + settled_surcharges.total,
            owner_payout=booking.base_price,
            is_final=booking.status == BookingStatus.COMPLETED.value and open_count == 0
        )
