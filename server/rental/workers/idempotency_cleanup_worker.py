"""Background worker purging expired idempotency records."""

import logging

from ..core.database import async_session_factory
from ..services.idempotency_service import IdempotencyService
from .base import BaseWorker

logger = logging.getLogger(__name__)


class IdempotencyCleanupWorker(BaseWorker):
    """Deletes stored responses whose idempotency TTL has passed."""

    def __init__(self, interval_seconds: int = 3600, session_factory=async_session_factory):
        super().__init__(name="IdempotencyCleanup", interval_seconds=interval_seconds)
        self.session_factory = session_factory

    async def process(self) -> None:
        async with self.session_factory() as db:
            try:
                await IdempotencyService(db).cleanup_expired_records()
            except Exception:
                await db.rollback()
                raise
