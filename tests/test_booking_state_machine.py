"""
Tests for the booking lifecycle rules.

The state machine is pure, so these tests need no database.
"""

import itertools

import pytest

from core.booking_state import (
    ACTIVE,
    BOOKING_STATUSES,
    CANCELLED,
    COMPLETED,
    CONFIRMED,
    OWNER,
    PENDING,
    RENTER,
    TRANSITIONS,
    BookingStateMachine,
    party_role,
)
from core.exceptions import ActionNotAllowed, InvalidTransition, PaymentNotCompleted


@pytest.fixture
def machine():
    return BookingStateMachine()


# ============================================================================
# Allowed transitions
# ============================================================================

class TestAllowedTransitions:

    def test_owner_confirms_paid_booking(self, machine):
        machine.validate(PENDING, CONFIRMED, OWNER, 'paid')

    @pytest.mark.parametrize('role', [OWNER, RENTER])
    def test_either_party_cancels_pending(self, machine, role):
        machine.validate(PENDING, CANCELLED, role, 'pending')

    @pytest.mark.parametrize('role', [OWNER, RENTER])
    def test_either_party_cancels_confirmed(self, machine, role):
        machine.validate(CONFIRMED, CANCELLED, role, 'paid')

    def test_owner_hands_over(self, machine):
        machine.validate(CONFIRMED, ACTIVE, OWNER, 'paid')

    def test_owner_completes(self, machine):
        machine.validate(ACTIVE, COMPLETED, OWNER, 'paid')

    def test_allowed_targets(self, machine):
        assert machine.allowed_targets(PENDING) == [CANCELLED, CONFIRMED]
        assert machine.allowed_targets(ACTIVE) == [COMPLETED]
        assert machine.allowed_targets(COMPLETED) == []


# ============================================================================
# Rejected transitions
# ============================================================================

class TestRejectedTransitions:

    @pytest.mark.parametrize('payment_status', ['pending', 'failed', 'expired', None, 'PAID'])
    def test_confirm_requires_paid_payment(self, machine, payment_status):
        with pytest.raises(PaymentNotCompleted):
            machine.validate(PENDING, CONFIRMED, OWNER, payment_status)

    def test_renter_cannot_confirm(self, machine):
        with pytest.raises(ActionNotAllowed) as exc_info:
            machine.validate(PENDING, CONFIRMED, RENTER, 'paid')
        assert 'Only the product owner can confirm' in exc_info.value.message

    def test_renter_cannot_hand_over(self, machine):
        with pytest.raises(ActionNotAllowed):
            machine.validate(CONFIRMED, ACTIVE, RENTER, 'paid')

    def test_renter_cannot_complete(self, machine):
        with pytest.raises(ActionNotAllowed):
            machine.validate(ACTIVE, COMPLETED, RENTER, 'paid')

    def test_outsider_rejected_before_anything_else(self, machine):
        with pytest.raises(ActionNotAllowed):
            machine.validate(COMPLETED, PENDING, None, 'paid')

    @pytest.mark.parametrize('status', BOOKING_STATUSES)
    def test_same_status_fails(self, machine, status):
        with pytest.raises(InvalidTransition):
            machine.validate(status, status, OWNER, 'paid')

    @pytest.mark.parametrize('current', [COMPLETED, CANCELLED])
    @pytest.mark.parametrize('new', [PENDING, CONFIRMED, ACTIVE])
    def test_terminal_states_are_final(self, machine, current, new):
        with pytest.raises(InvalidTransition):
            machine.validate(current, new, OWNER, 'paid')

    def test_cannot_skip_confirmation(self, machine):
        with pytest.raises(InvalidTransition):
            machine.validate(PENDING, ACTIVE, OWNER, 'paid')

    def test_active_booking_cannot_be_cancelled(self, machine):
        with pytest.raises(InvalidTransition):
            machine.validate(ACTIVE, CANCELLED, OWNER, 'paid')

    def test_unknown_status(self, machine):
        with pytest.raises(InvalidTransition):
            machine.validate(PENDING, 'archived', OWNER, 'paid')


def test_only_listed_edges_are_accepted(machine):
    """The owner with a paid payment may take exactly the edges in TRANSITIONS."""
    for current, new in itertools.product(BOOKING_STATUSES, repeat=2):
        ok, _message = machine.can_transition_to(current, new, OWNER, 'paid')
        assert ok == (new in TRANSITIONS[current]), (current, new)


def test_can_transition_to_returns_message(machine):
    ok, message = machine.can_transition_to(PENDING, CONFIRMED, OWNER, 'pending')
    assert ok is False
    assert 'payment' in message.lower()


class _Booking:
    owner_id = 1
    renter_id = 2


class _User:
    def __init__(self, pk):
        self.pk = pk


def test_party_role():
    booking = _Booking()
    assert party_role(booking, _User(1)) == OWNER
    assert party_role(booking, _User(2)) == RENTER
    assert party_role(booking, _User(3)) is None
    assert party_role(booking, None) is None
