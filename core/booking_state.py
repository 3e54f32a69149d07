"""
Booking lifecycle rules.

    pending -> confirmed -> active -> completed
       |           |
       +-----------+--> cancelled

The state machine is pure: it knows nothing about the database. Callers pass
the current status, the requested status, the acting party's role and the
payment status; BookingService applies the result inside a transaction.
"""

from .exceptions import ActionNotAllowed, InvalidTransition, PaymentNotCompleted

PENDING = 'pending'
CONFIRMED = 'confirmed'
ACTIVE = 'active'
COMPLETED = 'completed'
CANCELLED = 'cancelled'

BOOKING_STATUSES = (PENDING, CONFIRMED, ACTIVE, COMPLETED, CANCELLED)
TERMINAL_STATUSES = frozenset({COMPLETED, CANCELLED})

OWNER = 'owner'
RENTER = 'renter'

# from_status -> {to_status: roles allowed to take that edge}
TRANSITIONS = {
    PENDING: {
        CONFIRMED: frozenset({OWNER}),
        CANCELLED: frozenset({OWNER, RENTER}),
    },
    CONFIRMED: {
        ACTIVE: frozenset({OWNER}),
        CANCELLED: frozenset({OWNER, RENTER}),
    },
    ACTIVE: {
        COMPLETED: frozenset({OWNER}),
    },
    COMPLETED: {},
    CANCELLED: {},
}

_ROLE_ACTIONS = {
    CONFIRMED: 'confirm',
    ACTIVE: 'hand over',
    COMPLETED: 'complete',
    CANCELLED: 'cancel',
}


def party_role(booking, user):
    """
    Which side of the booking the user is on.

    Returns:
        str or None: OWNER, RENTER, or None for anyone else
    """
    if user is None or getattr(user, 'pk', None) is None:
        return None
    if booking.owner_id == user.pk:
        return OWNER
    if booking.renter_id == user.pk:
        return RENTER
    return None


class BookingStateMachine:
    """
    Validates booking status transitions.

    Every pair not listed in TRANSITIONS fails, including re-entrant
    requests (pending -> pending) and anything leaving a terminal state.
    """

    def __init__(self, transitions=None):
        self.transitions = transitions or TRANSITIONS

    def allowed_targets(self, current_status):
        """Statuses reachable from current_status in one step."""
        return sorted(self.transitions.get(current_status, {}))

    def is_edge(self, current_status, new_status):
        return new_status in self.transitions.get(current_status, {})

    def validate(self, current_status, new_status, role, payment_status=None):
        """
        Check a requested transition.

        Args:
            current_status: Status the booking is in now
            new_status: Requested status
            role: OWNER, RENTER, or None when the actor is not a party
            payment_status: Status of the booking's payment

        Raises:
            ActionNotAllowed: Actor is not a party or may not take this edge
            InvalidTransition: The edge does not exist
            PaymentNotCompleted: Confirming while payment is not 'paid'
        """
        if role not in (OWNER, RENTER):
            raise ActionNotAllowed('You do not have permission to modify this booking.')

        if new_status not in BOOKING_STATUSES:
            raise InvalidTransition(
                f"Invalid status. Must be one of: {', '.join(BOOKING_STATUSES)}."
            )

        if current_status == new_status:
            raise InvalidTransition(f'Booking is already {current_status}.')

        if current_status in TERMINAL_STATUSES:
            raise InvalidTransition(f'Cannot modify a {current_status} booking.')

        if not self.is_edge(current_status, new_status):
            raise InvalidTransition(
                f'Invalid status transition from {current_status} to {new_status}.'
            )

        allowed_roles = self.transitions[current_status][new_status]
        if role not in allowed_roles:
            action = _ROLE_ACTIONS.get(new_status, 'update')
            raise ActionNotAllowed(f'Only the product owner can {action} this booking.')

        if new_status == CONFIRMED and payment_status != 'paid':
            raise PaymentNotCompleted()

    def can_transition_to(self, current_status, new_status, role, payment_status=None):
        """
        Non-raising variant of validate().

        Returns:
            tuple: (is_valid: bool, error_message: str or None)
        """
        try:
            self.validate(current_status, new_status, role, payment_status)
        except (ActionNotAllowed, InvalidTransition, PaymentNotCompleted) as exc:
            return False, exc.message
        return True, None
