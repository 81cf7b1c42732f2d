"""Pricing schemas shared by quotes and committed bookings."""

from datetime import date

from pydantic import BaseModel, Field


class InsuranceSelection(BaseModel):
    """Coverage range of the selected insurance package."""

    min_coverage: int = Field(..., ge=0, description="Minimum coverage in currency units")
    max_coverage: int = Field(..., ge=0, description="Maximum coverage in currency units")


class PriceQuote(BaseModel):
    """Cost breakdown for a rental span, in integer currency units."""

    start_date: date = Field(..., description="Pickup day")
    end_date: date = Field(..., description="Return day")
    total_days: int = Field(..., ge=0, description="Calendar days between pickup and return")
    chargeable_days: int = Field(..., ge=1, description="Days billed after pickup/return exclusion and weekend bundling")
    daily_rate: int = Field(..., ge=0, description="Daily rate per unit")
    quantity: int = Field(..., ge=1, description="Units rented")
    base_price: int = Field(..., ge=0, description="chargeable_days x daily_rate x quantity")
    service_fee: int = Field(..., ge=0, description="5% of base price")
    insurance_fee: int = Field(..., ge=0, description="Insurance premium")
    total_price: int = Field(..., ge=0, description="base_price + service_fee + insurance_fee")
