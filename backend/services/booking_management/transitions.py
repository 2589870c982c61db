"""
Booking state machine.

Every status change goes through this table. ``confirmed`` can only be
entered through acceptance, which also assigns the driver and is only
possible from ``pending``. ``completed`` and ``cancelled`` are set by a plain
update from any other status.
"""

from common.exceptions import InvalidStateError, ValidationError

PENDING = 'pending'
CONFIRMED = 'confirmed'
COMPLETED = 'completed'
CANCELLED = 'cancelled'

STATUSES = (PENDING, CONFIRMED, COMPLETED, CANCELLED)

TRANSITIONS = {
    PENDING: {CONFIRMED, COMPLETED, CANCELLED},
    CONFIRMED: {COMPLETED, CANCELLED},
    COMPLETED: {CANCELLED},
    CANCELLED: {COMPLETED},
}

# Targets that require a dedicated operation rather than a plain update
ACCEPT_ONLY = {CONFIRMED}

# Timestamp field stamped when a booking enters the state
TIMESTAMP_FIELDS = {
    CONFIRMED: 'accepted_at',
    COMPLETED: 'completed_at',
    CANCELLED: 'cancelled_at',
}


def sources_for(target: str) -> set:
    """Statuses a booking may leave to enter ``target``."""
    return {current for current, targets in TRANSITIONS.items() if target in targets}


def can_transition(current: str, target: str, via_accept: bool = False) -> bool:
    if target not in TRANSITIONS.get(current, set()):
        return False
    if target in ACCEPT_ONLY and not via_accept:
        return False
    return True


def check_transition(current: str, target: str, via_accept: bool = False) -> None:
    """
    Raise if ``current -> target`` is not allowed.

    Raises:
        ValidationError: target is not a known status
        InvalidStateError: the transition is not in the table
    """
    if target not in TRANSITIONS:
        raise ValidationError(f"Unknown status: {target}")

    if target in ACCEPT_ONLY and not via_accept:
        raise InvalidStateError(f"A booking can only become {target} by being accepted")

    if not can_transition(current, target, via_accept=via_accept):
        raise InvalidStateError(f"Cannot change booking status from {current} to {target}")
