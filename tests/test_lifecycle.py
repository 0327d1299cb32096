"""Unit tests for the booking state machine."""

import pytest

from movenow.domain.enums import (
    ACTIVE_JOB_STATUSES,
    BOOKING_TRANSITIONS,
    TERMINAL_STATUSES,
    BookingStatus,
)
from movenow.domain.errors import InvalidTransition
from movenow.domain.lifecycle import can_transition, ensure_transition, is_terminal

CHAIN = [
    BookingStatus.PENDING,
    BookingStatus.ACCEPTED,
    BookingStatus.DRIVER_EN_ROUTE,
    BookingStatus.ARRIVED_PICKUP,
    BookingStatus.LOADING,
    BookingStatus.IN_TRANSIT,
    BookingStatus.ARRIVED_DESTINATION,
    BookingStatus.UNLOADING,
    BookingStatus.COMPLETED,
]
NON_TERMINAL = [s for s in BookingStatus if s not in TERMINAL_STATUSES]


class TestBookingStateMachine:
    # ── Valid transitions ─────────────────────────────────────────

    @pytest.mark.parametrize("current, new", list(zip(CHAIN, CHAIN[1:])))
    def test_chain_step(self, current, new):
        ensure_transition(current, new)

    @pytest.mark.parametrize("current", NON_TERMINAL)
    def test_cancel_from_any_open_status(self, current):
        assert can_transition(current, BookingStatus.CANCELLED)

    def test_accepts_raw_values(self):
        assert can_transition("loading", BookingStatus.IN_TRANSIT)

    # ── Invalid transitions ───────────────────────────────────────

    def test_pending_to_completed_fails(self):
        with pytest.raises(InvalidTransition) as exc:
            ensure_transition(BookingStatus.PENDING, BookingStatus.COMPLETED)
        assert "from pending to completed" in str(exc.value)

    def test_skipping_a_step_fails(self):
        with pytest.raises(InvalidTransition):
            ensure_transition(BookingStatus.ACCEPTED, BookingStatus.LOADING)

    def test_going_back_fails(self):
        with pytest.raises(InvalidTransition):
            ensure_transition(BookingStatus.IN_TRANSIT, BookingStatus.LOADING)

    @pytest.mark.parametrize("terminal", sorted(TERMINAL_STATUSES))
    @pytest.mark.parametrize("new", list(BookingStatus))
    def test_terminal_statuses_are_final(self, terminal, new):
        assert not can_transition(terminal, new)
        with pytest.raises(InvalidTransition):
            ensure_transition(terminal, new)

    # ── Table shape ───────────────────────────────────────────────

    def test_every_status_has_an_entry(self):
        assert set(BOOKING_TRANSITIONS) == set(BookingStatus)

    def test_active_statuses(self):
        assert BookingStatus.PENDING not in ACTIVE_JOB_STATUSES
        assert not ACTIVE_JOB_STATUSES & TERMINAL_STATUSES
        assert len(ACTIVE_JOB_STATUSES) == 7

    def test_is_terminal(self):
        assert is_terminal(BookingStatus.COMPLETED)
        assert is_terminal("cancelled")
        assert not is_terminal(BookingStatus.UNLOADING)
