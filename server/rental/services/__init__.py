"""Service layer package."""

from .availability_service import AvailabilityService, DatesUnavailableError
from .booking_service import BookingService
from .equipment_service import EquipmentService
from .handover_service import CheckinResult, CheckoutResult, HandoverService
from .idempotency_service import IdempotencyMismatchError, IdempotencyService
from .incident_service import IncidentService
from .insurance_service import InsuranceService

__all__ = [
    "AvailabilityService",
    "BookingService",
    "CheckinResult",
    "CheckoutResult",
    "DatesUnavailableError",
    "EquipmentService",
    "HandoverService",
    "IdempotencyMismatchError",
    "IdempotencyService",
    "IncidentService",
    "InsuranceService",
]
