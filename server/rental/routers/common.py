"""Helpers shared by the RPC routers."""

import logging
from typing import Any, Awaitable, Callable

from fastapi import Depends
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.database import get_db
from ..core.exceptions import ProblemDetailsException
from ..models.booking import Booking as BookingModel
from ..models.equipment import Equipment as EquipmentModel
from ..models.incident import Incident as IncidentModel
from ..schemas.booking import Booking
from ..schemas.equipment import Equipment
from ..schemas.incident import Incident
from ..services.idempotency_service import IdempotencyService

logger = logging.getLogger(__name__)

# Define dependencies to avoid B008 linting errors
DB_DEPENDENCY = Depends(get_db)


def _str_or_none(value) -> str | None:
    return str(value) if value is not None else None


def convert_booking_to_schema(booking_model: BookingModel) -> Booking:
    """Convert booking model to schema."""
    return Booking(
        id=str(booking_model.id),
        equipment_id=str(booking_model.equipment_id),
        renter_id=booking_model.renter_id,
        owner_id=booking_model.owner_id,
        start_date=booking_model.start_date,
        end_date=booking_model.end_date,
        quantity=booking_model.quantity,
        chargeable_days=booking_model.chargeable_days,
        base_price=booking_model.base_price,
        service_fee=booking_model.service_fee,
        insurance_fee=booking_model.insurance_fee,
        total_price=booking_model.total_price,
        status=booking_model.status,
        insurance_id=_str_or_none(booking_model.insurance_id),
        checkin_time=booking_model.checkin_time,
        checkout_time=booking_model.checkout_time,
        checkin_images=list(booking_model.checkin_images or []),
        checkout_images=list(booking_model.checkout_images or []),
        notes=booking_model.notes,
        created_at=booking_model.created_at
    )


def convert_incident_to_schema(incident_model: IncidentModel) -> Incident:
    """Convert incident model to schema."""
    return Incident(
        id=str(incident_model.id),
        booking_id=str(incident_model.booking_id),
        reporter_id=incident_model.reporter_id,
        type=incident_model.type,
        severity=incident_model.severity,
        stage=incident_model.stage,
        description=incident_model.description,
        images=list(incident_model.images or []),
        estimated_charge=incident_model.estimated_charge,
        resolution_amount=incident_model.resolution_amount,
        outcome=incident_model.outcome,
        resolved_at=incident_model.resolved_at,
        created_at=incident_model.created_at
    )


def convert_equipment_to_schema(equipment_model: EquipmentModel) -> Equipment:
    """Convert equipment model to schema."""
    return Equipment(
        id=str(equipment_model.id),
        title=equipment_model.title,
        owner_id=equipment_model.owner_id,
        daily_rate=equipment_model.daily_rate,
        replacement_price=equipment_model.replacement_price,
        unit_count=equipment_model.unit_count,
        status=equipment_model.status
    )


async def handle_idempotent_operation(
    method: str,
    idempotency_key: str | None,
    request_body: dict[str, Any],
    operation_func: Callable[[], Awaitable[dict[str, Any]]],
    db: AsyncSession
) -> JSONResponse:
    """
    Run a mutating operation, replaying the stored outcome for a repeated key.

    Without an Idempotency-Key the operation simply runs. Problem Details
    outcomes are stored too, so a replay fails the same way.
    """
    if idempotency_key is None:
        return JSONResponse(status_code=200, content=await operation_func())

    idempotency_service = IdempotencyService(db)

    cached_response = await idempotency_service.check_idempotency(
        idempotency_key=idempotency_key,
        method=method,
        request_body=request_body
    )

    if cached_response:
        status_code, response_body = cached_response
        media_type = "application/problem+json" if status_code >= 400 else "application/json"
        return JSONResponse(status_code=status_code, content=response_body, media_type=media_type)

    try:
        response_dict = await operation_func()
    except ProblemDetailsException as e:
        # Discard partial changes before recording the failure
        await db.rollback()
        await idempotency_service.store_response(
            idempotency_key=idempotency_key,
            method=method,
            request_body=request_body,
            status_code=e.status_code,
            response_body=e.problem_details
        )
        raise

    await idempotency_service.store_response(
        idempotency_key=idempotency_key,
        method=method,
        request_body=request_body,
        status_code=200,
        response_body=response_dict
    )

    return JSONResponse(status_code=200, content=response_dict)
