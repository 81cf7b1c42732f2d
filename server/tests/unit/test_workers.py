"""Tests for the background workers."""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from rental.core.config import settings
from rental.models.booking import BookingStatus
from rental.models.idempotency import IdempotencyRecord
from rental.services.booking_service import BookingService
from rental.services.idempotency_service import IdempotencyService
from rental.workers.base import BaseWorker
from rental.workers.idempotency_cleanup_worker import IdempotencyCleanupWorker
from rental.workers.manager import WorkerManager
from rental.workers.pending_expiry_worker import PendingExpiryWorker

from ..conftest import FixedClock


@pytest.fixture
def session_factory(test_engine):
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest.mark.asyncio
async def test_pending_expiry_worker_fails_unpaid_bookings(test_session, session_factory, equipment, booking_request):
    an_hour_ago = FixedClock(datetime.now(timezone.utc) - timedelta(hours=1))
    booking = await BookingService(test_session, clock=an_hour_ago).create_booking(booking_request(equipment.id))
    booking_id = str(booking.id)

    await PendingExpiryWorker(session_factory=session_factory).process()

    async with session_factory() as db:
        expired = await BookingService(db).get_booking(booking_id)
        assert expired.status == BookingStatus.FAILED.value


@pytest.mark.asyncio
async def test_pending_expiry_worker_keeps_fresh_bookings(test_session, session_factory, equipment, booking_request):
    booking = await BookingService(test_session).create_booking(booking_request(equipment.id))
    booking_id = str(booking.id)

    await PendingExpiryWorker(session_factory=session_factory).process()

    async with session_factory() as db:
        fresh = await BookingService(db).get_booking(booking_id)
        assert fresh.status == BookingStatus.PENDING.value


@pytest.mark.asyncio
async def test_idempotency_cleanup_worker(test_session, session_factory):
    two_days_ago = FixedClock(datetime.now(timezone.utc) - timedelta(days=2))
    await IdempotencyService(test_session, clock=two_days_ago).store_response(
        idempotency_key="stale", method="booking/create", request_body={}, status_code=200, response_body={}
    )
    await IdempotencyService(test_session).store_response(
        idempotency_key="fresh", method="booking/create", request_body={}, status_code=200, response_body={}
    )

    await IdempotencyCleanupWorker(session_factory=session_factory).process()

    async with session_factory() as db:
        result = await db.execute(select(IdempotencyRecord.idempotency_key))
        assert list(result.scalars()) == ["fresh"]


class CountingWorker(BaseWorker):
    def __init__(self):
        super().__init__(name="Counting", interval_seconds=3600)
        self.iterations = 0

    async def process(self) -> None:
        self.iterations += 1


@pytest.mark.asyncio
async def test_worker_runs_until_stopped():
    worker = CountingWorker()

    await worker.start()
    assert worker.is_running
    await asyncio.sleep(0)
    await asyncio.sleep(0)
    await worker.stop()

    assert not worker.is_running
    assert worker.iterations == 1


def test_worker_manager_registers_workers():
    manager = WorkerManager()

    assert manager.get_worker_status() == {"pending_expiry": False, "idempotency_cleanup": False}
    assert manager.get_worker("pending_expiry").interval_seconds == settings.pending_expiry_interval_seconds
