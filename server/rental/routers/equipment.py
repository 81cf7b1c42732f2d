"""Equipment catalog and availability router."""

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.ids import parse_id
from ..schemas.common import PROBLEM_RESPONSES
from ..schemas.equipment import BookedRangesRequest, BookedRangesResponse, Equipment, GetEquipmentRequest
from ..services.availability_service import AvailabilityService
from ..services.equipment_service import EquipmentService
from .common import DB_DEPENDENCY, convert_equipment_to_schema

router = APIRouter(prefix="/v1/equipment", tags=["equipment"], responses=PROBLEM_RESPONSES)


@router.post("/get", response_model=Equipment)
async def get_equipment(
    request: GetEquipmentRequest,
    db: AsyncSession = DB_DEPENDENCY
) -> JSONResponse:
    """Get an equipment listing."""
    equipment_service = EquipmentService(db)
    equipment = await equipment_service.get_equipment_by_id_or_raise(
        parse_id(request.equipment_id, "equipment")
    )
    return JSONResponse(
        status_code=200,
        content=convert_equipment_to_schema(equipment).model_dump(mode="json")
    )


@router.post("/booked-ranges", response_model=BookedRangesResponse)
async def booked_ranges(
    request: BookedRangesRequest,
    db: AsyncSession = DB_DEPENDENCY
) -> JSONResponse:
    """
    List the date ranges blocked for an equipment listing.

    For display only: a range that is free here can still be taken
    before a booking is created.
    """
    equipment_id = parse_id(request.equipment_id, "equipment")
    await EquipmentService(db).get_equipment_by_id_or_raise(equipment_id)

    ranges = await AvailabilityService(db).list_booked_ranges(equipment_id, request.unit_number)
    response_data = BookedRangesResponse(equipment_id=request.equipment_id, items=ranges)
    return JSONResponse(status_code=200, content=response_data.model_dump(mode="json"))
