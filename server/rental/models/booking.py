"""Booking model definition."""

from datetime import date, datetime
from enum import Enum
from uuid import UUID, uuid4

from sqlalchemy import JSON, CheckConstraint, Date, DateTime, ForeignKey, Integer, String, Text, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from ..core.database import Base


class BookingStatus(str, Enum):
    """Booking lifecycle states."""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    ONGOING = "ongoing"
    REVIEWING = "reviewing"
    COMPLETED = "completed"
    CANCELED = "canceled"
    FAILED = "failed"


class Booking(Base):
    """
    Rental booking of one equipment listing over a date range.

    ``total_price`` is fixed at creation as base + service + insurance;
    damage and lateness surcharges live only in the incident ledger.
    """

    __tablename__ = "bookings"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)

    equipment_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("equipment.id", ondelete="RESTRICT"),
        nullable=False,
        index=True
    )
    insurance_id: Mapped[UUID | None] = mapped_column(
        Uuid,
        ForeignKey("insurance_packages.id", ondelete="RESTRICT"),
        nullable=True
    )

    # Accounts are owned by the identity service
    renter_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    owner_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)

    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    # Quote captured at creation, integer currency units
    chargeable_days: Mapped[int] = mapped_column(Integer, nullable=False)
    base_price: Mapped[int] = mapped_column(Integer, nullable=False)
    service_fee: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    insurance_fee: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_price: Mapped[int] = mapped_column(Integer, nullable=False)

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=BookingStatus.PENDING.value,
        index=True
    )

    # Hand-over evidence
    checkin_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    checkin_images: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    checkout_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    checkout_images: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)

    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        index=True
    )

    __table_args__ = (
        CheckConstraint("start_date < end_date", name="ck_booking_date_order"),
        CheckConstraint("quantity >= 1", name="ck_booking_quantity_positive"),
        CheckConstraint("chargeable_days >= 1", name="ck_booking_chargeable_days_positive"),
        CheckConstraint("base_price >= 0", name="ck_booking_base_price_non_negative"),
        CheckConstraint("service_fee >= 0", name="ck_booking_service_fee_non_negative"),
        CheckConstraint("insurance_fee >= 0", name="ck_booking_insurance_fee_non_negative"),
        CheckConstraint(
            "total_price = base_price + service_fee + insurance_fee",
            name="ck_booking_total_price_sum"
        ),
        CheckConstraint(
            "checkout_time IS NULL OR checkin_time IS NOT NULL",
            name="ck_booking_checkout_after_checkin"
        ),
        CheckConstraint("length(renter_id) > 0", name="ck_booking_renter_id_not_empty"),
    )

    @property
    def daily_rate(self) -> int:
        """Per-unit daily rate captured in the quote."""
        return self.base_price // (self.chargeable_days * self.quantity)

    def __repr__(self) -> str:
        return (
            f"<Booking(id={self.id}, equipment_id={self.equipment_id}, "
            f"{self.start_date}..{self.end_date}, status={self.status})>"
        )
