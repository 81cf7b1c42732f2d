"""Incident ledger model definition."""

from datetime import datetime
from enum import Enum
from uuid import UUID, uuid4

from sqlalchemy import JSON, CheckConstraint, DateTime, ForeignKey, Integer, String, Text, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from ..core.database import Base


class IncidentType(str, Enum):
    DAMAGE = "damage"
    LATE = "late"
    OTHER = "other"


class Severity(str, Enum):
    NONE = "none"
    MINOR = "minor"
    MAJOR = "major"
    CRITICAL = "critical"


class IncidentStage(str, Enum):
    """Hand-over step that recorded the incident."""
    CHECKIN = "checkin"
    CHECKOUT = "checkout"


class IncidentOutcome(str, Enum):
    """How the review step settled an incident."""
    CHARGED = "charged"
    WAIVED = "waived"
    INSURED = "insured"


class Incident(Base):
    """
    Append-only incident tied to a booking.

    ``estimated_charge`` is written once when the incident is recorded.
    ``resolution_amount`` and ``outcome`` are written once by review, so
    the row keeps both what the system estimated and what was settled.
    """

    __tablename__ = "incidents"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)

    booking_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("bookings.id", ondelete="RESTRICT"),
        nullable=False,
        index=True
    )
    reporter_id: Mapped[str] = mapped_column(String(64), nullable=False)

    type: Mapped[str] = mapped_column(String(20), nullable=False)
    severity: Mapped[str] = mapped_column(String(20), nullable=False, default=Severity.NONE.value)
    stage: Mapped[str] = mapped_column(String(20), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    images: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)

    estimated_charge: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    resolution_amount: Mapped[int | None] = mapped_column(Integer, nullable=True)
    outcome: Mapped[str | None] = mapped_column(String(20), nullable=True)
    resolved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now()
    )

    __table_args__ = (
        CheckConstraint("estimated_charge >= 0", name="ck_incident_estimated_charge_non_negative"),
        CheckConstraint(
            "resolution_amount IS NULL OR resolution_amount >= 0",
            name="ck_incident_resolution_amount_non_negative"
        ),
        CheckConstraint(
            "(resolution_amount IS NULL) = (outcome IS NULL)",
            name="ck_incident_resolution_complete"
        ),
    )

    @property
    def is_open(self) -> bool:
        return self.resolution_amount is None

    def __repr__(self) -> str:
        return (
            f"<Incident(id={self.id}, booking_id={self.booking_id}, type={self.type}, "
            f"severity={self.severity}, estimated={self.estimated_charge}, "
            f"resolved={self.resolution_amount})>"
        )
