"""Equipment catalog and availability schemas."""

from datetime import date

from pydantic import BaseModel, Field, model_validator

from ..models.equipment import EquipmentStatus


class CreateEquipmentRequest(BaseModel):
    """Catalog entry used when seeding equipment."""

    title: str = Field(..., min_length=1, max_length=100)
    owner_id: str = Field(..., min_length=1, max_length=64)
    daily_rate: int = Field(..., ge=0, description="Price per day in currency units")
    replacement_price: int = Field(..., ge=0, description="Cost to replace one unit")
    unit_count: int = Field(1, ge=1, le=500, description="Physical units in stock")
    status: EquipmentStatus = EquipmentStatus.AVAILABLE


class GetEquipmentRequest(BaseModel):
    equipment_id: str = Field(..., description="Equipment to retrieve")


class Equipment(BaseModel):
    """Equipment response schema."""

    id: str
    title: str
    owner_id: str
    daily_rate: int
    replacement_price: int
    unit_count: int
    status: EquipmentStatus


class BookedRangesRequest(BaseModel):
    equipment_id: str = Field(..., description="Equipment to inspect")
    unit_number: int | None = Field(None, ge=0, description="Restrict to one physical unit")


class DateRange(BaseModel):
    """Blocked half-open range [start, end)."""

    start: date
    end: date

    @model_validator(mode="after")
    def check_order(self):
        if self.start >= self.end:
            raise ValueError("start must be before end")
        return self


class BookedRangesResponse(BaseModel):
    equipment_id: str
    items: list[DateRange]
