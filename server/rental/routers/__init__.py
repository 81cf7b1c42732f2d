"""FastAPI routers package."""

from .booking import router as booking_router
from .equipment import router as equipment_router
from .health import router as health_router
from .incident import router as incident_router
from .insurance import router as insurance_router
from .metrics import router as metrics_router

__all__ = [
    "booking_router",
    "equipment_router",
    "health_router",
    "incident_router",
    "insurance_router",
    "metrics_router",
]
