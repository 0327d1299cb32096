"""Booking state machine checks shared by drivers, customers and admins."""

from .enums import BOOKING_TRANSITIONS, TERMINAL_STATUSES, BookingStatus
from .errors import InvalidTransition


def can_transition(current: BookingStatus, new: BookingStatus) -> bool:
    return new in BOOKING_TRANSITIONS.get(BookingStatus(current), set())


def ensure_transition(current: BookingStatus, new: BookingStatus) -> None:
    """Raise ``InvalidTransition`` unless *current* -> *new* is in the table."""
    if not can_transition(current, new):
        raise InvalidTransition(
            f"Cannot change status from {BookingStatus(current).value} "
            f"to {BookingStatus(new).value}"
        )


def is_terminal(status: BookingStatus) -> bool:
    return BookingStatus(status) in TERMINAL_STATUSES
