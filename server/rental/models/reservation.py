"""Reservation window models backing the availability index."""

from datetime import date, datetime
from enum import Enum
from uuid import UUID, uuid4

from sqlalchemy import (
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
    Uuid,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from ..core.database import Base


class WindowStatus(str, Enum):
    """Reservation window status."""
    ACTIVE = "active"
    RELEASED = "released"


class ReservationWindow(Base):
    """Half-open interval [start_date, end_date) blocking one equipment unit."""

    __tablename__ = "reservation_windows"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)

    booking_id: Mapped[UUID | None] = mapped_column(
        Uuid,
        ForeignKey("bookings.id", ondelete="RESTRICT"),
        nullable=True,
        index=True
    )
    equipment_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("equipment.id", ondelete="RESTRICT"),
        nullable=False
    )
    unit_number: Mapped[int] = mapped_column(Integer, nullable=False)

    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=WindowStatus.ACTIVE.value
    )
    released_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now()
    )

    __table_args__ = (
        CheckConstraint("start_date < end_date", name="ck_window_date_order"),
        CheckConstraint("unit_number >= 0", name="ck_window_unit_number_non_negative"),
        Index("ix_window_unit_status_start", "equipment_id", "unit_number", "status", "start_date"),
    )

    def __repr__(self) -> str:
        return (
            f"<ReservationWindow(id={self.id}, equipment_id={self.equipment_id}, "
            f"unit={self.unit_number}, {self.start_date}..{self.end_date}, status={self.status})>"
        )


class ReservedDay(Base):
    """
    One blocked calendar day of an active window.

    The unique constraint on (equipment, unit, day) is the conditional
    write that makes check-and-reserve atomic: two overlapping windows
    cannot both insert the same day.
    """

    __tablename__ = "reserved_days"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    window_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("reservation_windows.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    equipment_id: Mapped[UUID] = mapped_column(Uuid, nullable=False)
    unit_number: Mapped[int] = mapped_column(Integer, nullable=False)
    day: Mapped[date] = mapped_column(Date, nullable=False)

    __table_args__ = (
        UniqueConstraint("equipment_id", "unit_number", "day", name="uq_reserved_day_unit"),
    )
