"""Insurance package model definition."""

from datetime import datetime
from enum import Enum
from uuid import UUID, uuid4

from sqlalchemy import CheckConstraint, DateTime, Integer, String, Text, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from ..core.database import Base


class InsuranceStatus(str, Enum):
    """Whether a package can be selected for new bookings."""
    ACTIVE = "active"
    INACTIVE = "inactive"


class InsurancePackage(Base):
    """Insurance package offered at booking time."""

    __tablename__ = "insurance_packages"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    min_coverage: Mapped[int] = mapped_column(Integer, nullable=False)
    max_coverage: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=InsuranceStatus.ACTIVE.value,
        index=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now()
    )

    __table_args__ = (
        CheckConstraint("min_coverage >= 0", name="ck_insurance_min_coverage_non_negative"),
        CheckConstraint("max_coverage >= min_coverage", name="ck_insurance_coverage_range"),
    )

    def __repr__(self) -> str:
        return (
            f"<InsurancePackage(id={self.id}, name='{self.name}', "
            f"coverage={self.min_coverage}..{self.max_coverage})>"
        )
