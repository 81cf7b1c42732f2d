"""Insurance catalog router."""

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from ..schemas.insurance import ListInsurancePackagesResponse
from ..services.insurance_service import InsuranceService
from .common import DB_DEPENDENCY

router = APIRouter(prefix="/v1/insurance", tags=["insurance"])


@router.post("/list", response_model=ListInsurancePackagesResponse)
async def list_insurance_packages(db: AsyncSession = DB_DEPENDENCY) -> JSONResponse:
    """List selectable insurance packages, "none" first."""
    packages = await InsuranceService(db).list_packages()
    response_data = ListInsurancePackagesResponse(items=packages)
    return JSONResponse(status_code=200, content=response_data.model_dump(mode="json"))
