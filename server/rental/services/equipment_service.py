"""Equipment catalog read model."""

import logging
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.database import acquire_advisory_lock
from ..core.exceptions import NotFoundError
from ..models.equipment import Equipment
from ..schemas.equipment import CreateEquipmentRequest

logger = logging.getLogger(__name__)


class EquipmentService:
    """Service for equipment catalog operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create_equipment(self, request: CreateEquipmentRequest) -> Equipment:
        """
        Add an equipment listing to the catalog.

        Args:
            request: Equipment creation request

        Returns:
            Created equipment entity
        """
        equipment = Equipment(
            title=request.title,
            owner_id=request.owner_id,
            daily_rate=request.daily_rate,
            replacement_price=request.replacement_price,
            unit_count=request.unit_count,
            status=request.status.value
        )

        self.db.add(equipment)
        await self.db.commit()
        await self.db.refresh(equipment)

        logger.info(
            "Equipment created successfully",
            extra={
                "equipment_id": str(equipment.id),
                "owner_id": equipment.owner_id,
                "daily_rate": equipment.daily_rate,
                "unit_count": equipment.unit_count
            }
        )

        return equipment

    async def get_equipment_by_id(self, equipment_id: UUID) -> Equipment | None:
        """Get equipment by ID."""
        stmt = select(Equipment).where(Equipment.id == equipment_id)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_equipment_by_id_or_raise(self, equipment_id: UUID) -> Equipment:
        """Get equipment by ID or raise NotFoundError."""
        equipment = await self.get_equipment_by_id(equipment_id)
        if not equipment:
            logger.warning(
                "Equipment not found",
                extra={"equipment_id": str(equipment_id)}
            )
            raise NotFoundError(
                resource_type="equipment",
                resource_id=str(equipment_id)
            )
        return equipment

    async def get_equipment_with_lock(self, equipment_id: UUID) -> Equipment:
        """
        Get equipment and serialize reservation writers on it.

        On PostgreSQL this takes a transaction-scoped advisory lock keyed on
        the equipment id; the reserved-day unique constraint guards other
        backends.

        Raises:
            NotFoundError: If equipment not found
        """
        await acquire_advisory_lock(self.db, f"equipment:{equipment_id}")
        return await self.get_equipment_by_id_or_raise(equipment_id)
