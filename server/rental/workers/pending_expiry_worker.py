"""Background worker failing bookings whose payment never arrived."""

import logging

from ..core.database import async_session_factory
from ..services.booking_service import BookingService
from .base import BaseWorker

logger = logging.getLogger(__name__)


class PendingExpiryWorker(BaseWorker):
    """
    Background worker that expires unpaid bookings.

    Bookings still ``pending`` after the payment timeout move to ``failed``
    and their reservation windows are released.
    """

    def __init__(self, interval_seconds: int = 60, session_factory=async_session_factory):
        super().__init__(name="PendingExpiry", interval_seconds=interval_seconds)
        self.session_factory = session_factory

    async def process(self) -> None:
        """Expire one batch of unpaid bookings."""
        async with self.session_factory() as db:
            try:
                expired_count = await BookingService(db).expire_pending_bookings()

                if expired_count > 0:
                    logger.info(
                        f"Expired {expired_count} unpaid bookings",
                        extra={"expired_count": expired_count, "worker": self.name}
                    )

            except Exception as e:
                await db.rollback()
                logger.error(
                    f"Error expiring unpaid bookings: {e!s}",
                    exc_info=True,
                    extra={"worker": self.name}
                )
                raise
