"""Insurance catalog read model."""

import logging
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.exceptions import NotFoundError, ValidationError
from ..core.ids import parse_id
from ..models.insurance import InsurancePackage, InsuranceStatus
from ..schemas.insurance import NO_INSURANCE_ID, CreateInsurancePackageRequest
from ..schemas.insurance import InsurancePackage as InsurancePackageSchema
from ..schemas.pricing import InsuranceSelection

logger = logging.getLogger(__name__)

NO_INSURANCE = InsurancePackageSchema(
    id=NO_INSURANCE_ID,
    name="Không bảo hiểm",
    description="No insurance coverage",
    min_coverage=0,
    max_coverage=0,
)


class InsuranceService:
    """Service for insurance catalog operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create_package(self, request: CreateInsurancePackageRequest) -> InsurancePackage:
        """Add an active insurance package to the catalog."""
        package = InsurancePackage(
            name=request.name,
            description=request.description,
            min_coverage=request.min_coverage,
            max_coverage=request.max_coverage,
            status=InsuranceStatus.ACTIVE.value
        )

        self.db.add(package)
        await self.db.commit()
        await self.db.refresh(package)

        logger.info(
            "Insurance package created",
            extra={
                "insurance_id": str(package.id),
                "min_coverage": package.min_coverage,
                "max_coverage": package.max_coverage
            }
        )

        return package

    async def list_packages(self) -> list[InsurancePackageSchema]:
        """
        List selectable packages.

        The zero-fee "none" package always comes first, followed by active
        packages ordered by coverage.
        """
        stmt = (
            select(InsurancePackage)
            .where(InsurancePackage.status == InsuranceStatus.ACTIVE.value)
            .order_by(InsurancePackage.min_coverage, InsurancePackage.name)
        )
        result = await self.db.execute(stmt)

        packages = [NO_INSURANCE]
        for package in result.scalars():
            packages.append(
                InsurancePackageSchema(
                    id=str(package.id),
                    name=package.name,
                    description=package.description,
                    min_coverage=package.min_coverage,
                    max_coverage=package.max_coverage
                )
            )
        return packages

    async def get_package_by_id(self, insurance_id: UUID) -> InsurancePackage | None:
        stmt = select(InsurancePackage).where(InsurancePackage.id == insurance_id)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def resolve_selection(
        self, insurance_id: str | None
    ) -> tuple[UUID | None, InsuranceSelection | None]:
        """
        Turn a requested insurance id into the package id and its coverage.

        ``None`` and ``"none"`` both mean no insurance.

        Raises:
            NotFoundError: If the package does not exist
            ValidationError: If the package is no longer offered
        """
        if insurance_id is None or insurance_id == NO_INSURANCE_ID:
            return None, None

        package_id = parse_id(insurance_id, "insurance_package")
        package = await self.get_package_by_id(package_id)
        if not package:
            logger.warning(
                "Insurance package not found",
                extra={"insurance_id": insurance_id}
            )
            raise NotFoundError(resource_type="insurance_package", resource_id=insurance_id)

        if package.status != InsuranceStatus.ACTIVE.value:
            raise ValidationError(
                detail=f"Insurance package {insurance_id} is no longer offered",
                errors={"insurance_id": "package is inactive"}
            )

        return package.id, InsuranceSelection(
            min_coverage=package.min_coverage,
            max_coverage=package.max_coverage
        )
