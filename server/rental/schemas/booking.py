"""Booking-related Pydantic schemas."""

from datetime import date, datetime

from pydantic import BaseModel, Field

from ..models.booking import BookingStatus
from ..models.incident import Severity
from .incident import Incident, IncidentReport
from .pricing import PriceQuote


class QuoteRequest(BaseModel):
    """Request schema for an unauthoritative price preview."""

    equipment_id: str = Field(..., description="Equipment to rent")
    start_date: date = Field(..., description="Pickup day")
    end_date: date = Field(..., description="Return day")
    quantity: int = Field(1, ge=1, le=50, description="Units to rent")
    insurance_id: str | None = Field(None, description="Insurance package, or 'none'")


class QuoteResponse(BaseModel):
    """Price preview and current availability."""

    equipment_id: str
    insurance_id: str | None = None
    available: bool = Field(..., description="Whether enough units are free right now")
    quote: PriceQuote


class CreateBookingRequest(BaseModel):
    """Request schema for creating a booking."""

    equipment_id: str = Field(..., description="Equipment to rent")
    renter_id: str = Field(..., min_length=1, max_length=64, description="Renter account")
    owner_id: str | None = Field(None, max_length=64, description="Owner account; defaults to the equipment owner")
    start_date: date = Field(..., description="Pickup day")
    end_date: date = Field(..., description="Return day")
    quantity: int = Field(1, ge=1, le=50, description="Units to rent")
    insurance_id: str | None = Field(None, description="Insurance package, or 'none'")
    notes: str | None = Field(None, max_length=1000, description="Free-form notes")


class GetBookingRequest(BaseModel):
    """Request schema for getting a booking."""

    booking_id: str = Field(..., description="Booking to retrieve")


class ConfirmBookingRequest(BaseModel):
    """Payment captured for a pending booking."""

    booking_id: str = Field(..., description="Booking to confirm")
    payment_ref: str | None = Field(None, max_length=128, description="Gateway transaction reference")


class FailBookingRequest(BaseModel):
    """Payment failed or authorization expired."""

    booking_id: str = Field(..., description="Booking to fail")
    reason: str | None = Field(None, max_length=500, description="Failure reason")


class CancelBookingRequest(BaseModel):
    """Request schema for cancelling a booking."""

    booking_id: str = Field(..., description="Booking to cancel")


class CheckinRequest(BaseModel):
    """Hand-off of the equipment to the renter."""

    booking_id: str = Field(..., description="Booking being handed off")
    images: list[str] = Field(default_factory=list, description="Evidence image URLs")
    notes: str | None = Field(None, max_length=1000)
    incident: IncidentReport | None = Field(None, description="Condition issue noticed at hand-off")


class CheckoutRequest(BaseModel):
    """Return of the equipment by the renter."""

    booking_id: str = Field(..., description="Booking being returned")
    images: list[str] = Field(default_factory=list, description="Evidence image URLs")
    notes: str | None = Field(None, max_length=1000)
    severity: Severity = Field(Severity.NONE, description="Damage severity found on return")
    issue_description: str | None = Field(None, max_length=1000)
    late_minutes: int = Field(0, ge=0, description="Minutes past the return deadline")
    late_reason: str | None = Field(None, max_length=500)


class Booking(BaseModel):
    """Booking response schema."""

    id: str = Field(..., description="Unique booking ID")
    equipment_id: str
    renter_id: str
    owner_id: str
    start_date: date
    end_date: date
    quantity: int
    chargeable_days: int
    base_price: int
    service_fee: int
    insurance_fee: int
    total_price: int
    status: BookingStatus
    insurance_id: str | None = None
    checkin_time: datetime | None = None
    checkout_time: datetime | None = None
    checkin_images: list[str] = Field(default_factory=list)
    checkout_images: list[str] = Field(default_factory=list)
    notes: str | None = None
    created_at: datetime | None = None


class CheckinResponse(BaseModel):
    booking: Booking
    incidents: list[Incident] = Field(default_factory=list)


class ExtraCharges(BaseModel):
    """Surcharges estimated at check-out."""

    damage: int = 0
    late: int = 0
    total: int = 0


class CheckoutResponse(BaseModel):
    booking: Booking
    incidents: list[Incident] = Field(default_factory=list)
    charges: ExtraCharges


class SurchargeBreakdown(BaseModel):
    damage: int = 0
    late: int = 0
    other: int = 0
    total: int = 0


class Settlement(BaseModel):
    """Monetary settlement of a booking: quote plus ledger surcharges."""

    booking_id: str
    status: BookingStatus
    base_price: int
    service_fee: int
    insurance_fee: int
    quoted_total: int = Field(..., description="Total fixed at booking creation")
    estimated_surcharges: SurchargeBreakdown
    settled_surcharges: SurchargeBreakdown
    open_incidents: int
    settled_total: int = Field(..., description="quoted_total plus settled surcharges")
    owner_payout: int = Field(..., description="Rent paid out to the owner")
    is_final: bool
