"""Incident router for the review step."""

import logging
from typing import Optional

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.dependencies import Actor, CurrentActor, IdempotencyKey, require_party, require_role
from ..schemas.common import PROBLEM_RESPONSES
from ..schemas.incident import Incident, ListIncidentsRequest, ListIncidentsResponse, ResolveIncidentRequest
from ..services.incident_service import IncidentService
from .common import DB_DEPENDENCY, convert_incident_to_schema, handle_idempotent_operation

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/incident", tags=["incident"], responses=PROBLEM_RESPONSES)


@router.post("/list", response_model=ListIncidentsResponse)
async def list_incidents(
    request: ListIncidentsRequest,
    db: AsyncSession = DB_DEPENDENCY,
    actor: Actor = CurrentActor
) -> JSONResponse:
    """List a booking's incidents in recording order."""
    incident_service = IncidentService(db)

    if not actor.has_any_role({"reviewer"}):
        booking = await incident_service.booking_service.get_booking(request.booking_id)
        require_party(actor, booking.renter_id, booking.owner_id)

    incidents = await incident_service.list_incidents(request.booking_id)
    response_data = ListIncidentsResponse(items=[convert_incident_to_schema(i) for i in incidents])
    return JSONResponse(status_code=200, content=response_data.model_dump(mode="json"))


@router.post("/resolve", response_model=Incident)
async def resolve_incident(
    request: ResolveIncidentRequest,
    db: AsyncSession = DB_DEPENDENCY,
    actor: Actor = CurrentActor,
    idempotency_key: Optional[str] = IdempotencyKey
) -> JSONResponse:
    """
    Record the review outcome of an incident.

    Resolving the last open incident completes a booking under review.
    """
    incident_service = IncidentService(db)

    async def operation():
        require_role(actor, "reviewer")
        incident = await incident_service.resolve_incident(request, reviewer_id=actor.account_id)
        return convert_incident_to_schema(incident).model_dump(mode="json")

    return await handle_idempotent_operation(
        method="incident/resolve",
        idempotency_key=idempotency_key,
        request_body=request.model_dump(mode="json"),
        operation_func=operation,
        db=db
    )
