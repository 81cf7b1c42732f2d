"""Background workers for the rental booking service."""

from .idempotency_cleanup_worker import IdempotencyCleanupWorker
from .pending_expiry_worker import PendingExpiryWorker

__all__ = ["IdempotencyCleanupWorker", "PendingExpiryWorker"]
