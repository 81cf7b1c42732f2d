"""Equipment catalog model definition."""

from datetime import datetime
from enum import Enum
from uuid import UUID, uuid4

from sqlalchemy import CheckConstraint, DateTime, Integer, String, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from ..core.database import Base


class EquipmentStatus(str, Enum):
    """Catalog availability of an equipment listing."""
    AVAILABLE = "available"
    UNAVAILABLE = "unavailable"


class Equipment(Base):
    """
    Equipment listing read from the catalog.

    ``unit_count`` physical units are numbered ``0..unit_count-1``; each
    unit is reserved independently by the availability index.
    """

    __tablename__ = "equipment"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)

    title: Mapped[str] = mapped_column(String(100), nullable=False)
    owner_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)

    # Money is stored in integer currency units
    daily_rate: Mapped[int] = mapped_column(Integer, nullable=False)
    replacement_price: Mapped[int] = mapped_column(Integer, nullable=False)

    unit_count: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=EquipmentStatus.AVAILABLE.value
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now()
    )

    __table_args__ = (
        CheckConstraint("daily_rate >= 0", name="ck_equipment_daily_rate_non_negative"),
        CheckConstraint("replacement_price >= 0", name="ck_equipment_replacement_price_non_negative"),
        CheckConstraint("unit_count >= 1", name="ck_equipment_unit_count_positive"),
        CheckConstraint("length(owner_id) > 0", name="ck_equipment_owner_id_not_empty"),
    )

    def __repr__(self) -> str:
        return (
            f"<Equipment(id={self.id}, title='{self.title}', "
            f"daily_rate={self.daily_rate}, units={self.unit_count})>"
        )
