"""Booking router for booking lifecycle operations."""

import logging
from typing import Optional

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.dependencies import Actor, CurrentActor, IdempotencyKey, require_party, require_role
from ..core.exceptions import AuthorizationError
from ..schemas.booking import (
    Booking,
    CancelBookingRequest,
    CheckinRequest,
    CheckinResponse,
    CheckoutRequest,
    CheckoutResponse,
    ConfirmBookingRequest,
    CreateBookingRequest,
    FailBookingRequest,
    GetBookingRequest,
    QuoteRequest,
    QuoteResponse,
    Settlement,
)
from ..schemas.common import PROBLEM_RESPONSES
from ..services.booking_service import BookingService
from ..services.handover_service import HandoverService
from ..services.incident_service import IncidentService
from .common import (
    DB_DEPENDENCY,
    convert_booking_to_schema,
    convert_incident_to_schema,
    handle_idempotent_operation,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/booking", tags=["booking"], responses=PROBLEM_RESPONSES)


async def _get_party_booking(booking_service: BookingService, booking_id: str, actor: Actor):
    booking = await booking_service.get_booking(booking_id)
    require_party(actor, booking.renter_id, booking.owner_id)
    return booking


@router.post("/quote", response_model=QuoteResponse)
async def quote_booking(
    request: QuoteRequest,
    db: AsyncSession = DB_DEPENDENCY
) -> JSONResponse:
    """
    Preview the price of a rental.

    Nothing is reserved; the availability flag may be stale by the time
    the booking is created.
    """
    booking_service = BookingService(db)
    response_data = await booking_service.quote(request)
    return JSONResponse(status_code=200, content=response_data.model_dump(mode="json"))


@router.post("/create", response_model=Booking)
async def create_booking(
    request: CreateBookingRequest,
    db: AsyncSession = DB_DEPENDENCY,
    actor: Actor = CurrentActor,
    idempotency_key: Optional[str] = IdempotencyKey
) -> JSONResponse:
    """
    Create a pending booking and reserve its dates.

    This operation is idempotent based on the optional Idempotency-Key header.
    """
    booking_service = BookingService(db)

    async def operation():
        if request.renter_id != actor.account_id and not actor.has_any_role({"admin"}):
            raise AuthorizationError(detail="Bookings can only be created for the calling account")

        booking = await booking_service.create_booking(request, idempotency_key)
        return convert_booking_to_schema(booking).model_dump(mode="json")

    return await handle_idempotent_operation(
        method="booking/create",
        idempotency_key=idempotency_key,
        request_body=request.model_dump(mode="json"),
        operation_func=operation,
        db=db
    )


@router.post("/confirm", response_model=Booking)
async def confirm_booking(
    request: ConfirmBookingRequest,
    db: AsyncSession = DB_DEPENDENCY,
    actor: Actor = CurrentActor,
    idempotency_key: Optional[str] = IdempotencyKey
) -> JSONResponse:
    """Mark a booking paid. Called by the payment integration."""
    booking_service = BookingService(db)

    async def operation():
        require_role(actor, "payments")
        booking = await booking_service.confirm_booking(request.booking_id, request.payment_ref)
        return convert_booking_to_schema(booking).model_dump(mode="json")

    return await handle_idempotent_operation(
        method="booking/confirm",
        idempotency_key=idempotency_key,
        request_body=request.model_dump(mode="json"),
        operation_func=operation,
        db=db
    )


@router.post("/fail", response_model=Booking)
async def fail_booking(
    request: FailBookingRequest,
    db: AsyncSession = DB_DEPENDENCY,
    actor: Actor = CurrentActor,
    idempotency_key: Optional[str] = IdempotencyKey
) -> JSONResponse:
    """Fail a booking whose payment did not succeed. Called by the payment integration."""
    booking_service = BookingService(db)

    async def operation():
        require_role(actor, "payments")
        booking = await booking_service.fail_booking(request.booking_id, request.reason)
        return convert_booking_to_schema(booking).model_dump(mode="json")

    return await handle_idempotent_operation(
        method="booking/fail",
        idempotency_key=idempotency_key,
        request_body=request.model_dump(mode="json"),
        operation_func=operation,
        db=db
    )


@router.post("/cancel", response_model=Booking)
async def cancel_booking(
    request: CancelBookingRequest,
    db: AsyncSession = DB_DEPENDENCY,
    actor: Actor = CurrentActor,
    idempotency_key: Optional[str] = IdempotencyKey
) -> JSONResponse:
    """
    Cancel a booking before hand-off.

    This operation is idempotent based on the optional Idempotency-Key header.
    """
    booking_service = BookingService(db)

    async def operation():
        await _get_party_booking(booking_service, request.booking_id, actor)
        booking = await booking_service.cancel_booking(request.booking_id, idempotency_key)

        logger.info(
            "Booking cancelled by party",
            extra={"booking_id": request.booking_id, "actor_id": actor.account_id}
        )
        return convert_booking_to_schema(booking).model_dump(mode="json")

    return await handle_idempotent_operation(
        method="booking/cancel",
        idempotency_key=idempotency_key,
        request_body=request.model_dump(mode="json"),
        operation_func=operation,
        db=db
    )


@router.post("/get", response_model=Booking)
async def get_booking(
    request: GetBookingRequest,
    db: AsyncSession = DB_DEPENDENCY,
    actor: Actor = CurrentActor
) -> JSONResponse:
    """Get booking details."""
    booking_service = BookingService(db)
    booking = await _get_party_booking(booking_service, request.booking_id, actor)
    return JSONResponse(
        status_code=200,
        content=convert_booking_to_schema(booking).model_dump(mode="json")
    )


@router.post("/checkin", response_model=CheckinResponse)
async def checkin_booking(
    request: CheckinRequest,
    db: AsyncSession = DB_DEPENDENCY,
    actor: Actor = CurrentActor,
    idempotency_key: Optional[str] = IdempotencyKey
) -> JSONResponse:
    """Record the hand-off of the equipment to the renter."""
    handover_service = HandoverService(db)

    async def operation():
        await _get_party_booking(handover_service.booking_service, request.booking_id, actor)
        result = await handover_service.checkin(request, reporter_id=actor.account_id)

        response_data = CheckinResponse(
            booking=convert_booking_to_schema(result.booking),
            incidents=[convert_incident_to_schema(result.incident)] if result.incident else []
        )
        return response_data.model_dump(mode="json")

    return await handle_idempotent_operation(
        method="booking/checkin",
        idempotency_key=idempotency_key,
        request_body=request.model_dump(mode="json"),
        operation_func=operation,
        db=db
    )


@router.post("/checkout", response_model=CheckoutResponse)
async def checkout_booking(
    request: CheckoutRequest,
    db: AsyncSession = DB_DEPENDENCY,
    actor: Actor = CurrentActor,
    idempotency_key: Optional[str] = IdempotencyKey
) -> JSONResponse:
    """Record the return of the equipment and estimate surcharges."""
    handover_service = HandoverService(db)

    async def operation():
        await _get_party_booking(handover_service.booking_service, request.booking_id, actor)
        result = await handover_service.checkout(request, reporter_id=actor.account_id)

        response_data = CheckoutResponse(
            booking=convert_booking_to_schema(result.booking),
            incidents=[convert_incident_to_schema(incident) for incident in result.incidents],
            charges=result.charges
        )
        return response_data.model_dump(mode="json")

    return await handle_idempotent_operation(
        method="booking/checkout",
        idempotency_key=idempotency_key,
        request_body=request.model_dump(mode="json"),
        operation_func=operation,
        db=db
    )


@router.post("/settlement", response_model=Settlement)
async def get_settlement(
    request: GetBookingRequest,
    db: AsyncSession = DB_DEPENDENCY,
    actor: Actor = CurrentActor
) -> JSONResponse:
    """Report the booking's quote, surcharges and owner payout."""
    incident_service = IncidentService(db)
    await _get_party_booking(incident_service.booking_service, request.booking_id, actor)
    settlement = await incident_service.get_settlement(request.booking_id)
    return JSONResponse(status_code=200, content=settlement.model_dump(mode="json"))
