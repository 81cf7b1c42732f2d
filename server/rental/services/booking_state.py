"""Booking lifecycle transition table."""

import logging

from ..core.exceptions import StateError
from ..core.observability import metrics_collector
from ..models.booking import Booking, BookingStatus

logger = logging.getLogger(__name__)

TRANSITIONS: dict[BookingStatus, frozenset[BookingStatus]] = {
    BookingStatus.PENDING: frozenset({BookingStatus.CONFIRMED, BookingStatus.CANCELED, BookingStatus.FAILED}),
    BookingStatus.CONFIRMED: frozenset({BookingStatus.ONGOING, BookingStatus.CANCELED, BookingStatus.FAILED}),
    BookingStatus.ONGOING: frozenset({BookingStatus.REVIEWING, BookingStatus.COMPLETED}),
    BookingStatus.REVIEWING: frozenset({BookingStatus.COMPLETED}),
    BookingStatus.COMPLETED: frozenset(),
    BookingStatus.CANCELED: frozenset(),
    BookingStatus.FAILED: frozenset(),
}

TERMINAL_STATES = frozenset(status for status, targets in TRANSITIONS.items() if not targets)


def can_transition(current: BookingStatus | str, target: BookingStatus | str) -> bool:
    return BookingStatus(target) in TRANSITIONS[BookingStatus(current)]


def assert_transition(booking: Booking, target: BookingStatus, action: str) -> None:
    """
    Raise StateError unless the booking may move to ``target``.

    Raises:
        StateError: If the transition is not in the table
    """
    if not can_transition(booking.status, target):
        logger.warning(
            "Rejected booking transition",
            extra={
                "booking_id": str(booking.id),
                "action": action,
                "current_status": booking.status,
                "target_status": target.value,
            }
        )
        raise StateError(current_status=booking.status, action=action)


def transition(booking: Booking, target: BookingStatus, action: str) -> None:
    """Validate and apply a status change on the (unflushed) booking."""
    assert_transition(booking, target, action)
    previous = booking.status
    booking.status = target.value
    metrics_collector.record_transition(previous, target.value)
    logger.info(
        "Booking transitioned",
        extra={
            "booking_id": str(booking.id),
            "action": action,
            "from_status": previous,
            "to_status": target.value,
        }
    )
