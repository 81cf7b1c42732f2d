"""Incident ledger schemas."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

from ..models.incident import IncidentOutcome, Severity


class IncidentReport(BaseModel):
    """Condition issue reported while handing the equipment off."""

    type: Literal["damage", "other"] | None = Field(None, description="Defaults to damage when severity is set")
    severity: Severity = Field(Severity.NONE)
    description: str | None = Field(None, max_length=1000)
    images: list[str] = Field(default_factory=list)

    @property
    def is_reportable(self) -> bool:
        return self.severity != Severity.NONE or bool(self.description and self.description.strip())


class Incident(BaseModel):
    """Incident response schema."""

    id: str
    booking_id: str
    reporter_id: str
    type: str
    severity: str
    stage: str
    description: str | None = None
    images: list[str] = Field(default_factory=list)
    estimated_charge: int
    resolution_amount: int | None = None
    outcome: str | None = None
    resolved_at: datetime | None = None
    created_at: datetime | None = None


class ResolveIncidentRequest(BaseModel):
    """Outcome of the external review step."""

    incident_id: str = Field(..., description="Incident to resolve")
    resolution_amount: int = Field(..., ge=0, description="Amount actually settled")
    outcome: IncidentOutcome = Field(..., description="How the incident was settled")


class ListIncidentsRequest(BaseModel):
    booking_id: str = Field(..., description="Booking whose incidents to list")


class ListIncidentsResponse(BaseModel):
    items: list[Incident]
