"""Models module exporting all database models."""

from .booking import Booking, BookingStatus
from .equipment import Equipment, EquipmentStatus
from .idempotency import IdempotencyRecord
from .incident import Incident, IncidentOutcome, IncidentStage, IncidentType, Severity
from .insurance import InsurancePackage, InsuranceStatus
from .reservation import ReservationWindow, ReservedDay, WindowStatus

__all__ = [
    # Catalog
    "Equipment",
    "EquipmentStatus",
    "InsurancePackage",
    "InsuranceStatus",

    # Bookings and availability
    "Booking",
    "BookingStatus",
    "ReservationWindow",
    "ReservedDay",
    "WindowStatus",

    # Incident ledger
    "Incident",
    "IncidentType",
    "IncidentStage",
    "IncidentOutcome",
    "Severity",

    # Idempotency
    "IdempotencyRecord",
]
