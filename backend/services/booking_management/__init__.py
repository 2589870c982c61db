"""
Booking Management Service.

Handles the booking lifecycle:
- Creating bookings (REST or WebSocket ride_request)
- Accepting bookings (drivers only, single conditional update)
- Updating status and trip figures through the transition table
- Listing, fetching and deleting bookings
"""

from .booking_lifecycle import (
    create_booking,
    accept_booking,
    update_booking,
    get_booking,
    list_bookings,
    delete_booking,
    find_assigned_booking,
    MAX_PAGE_SIZE,
)
from .transitions import can_transition, check_transition, sources_for, STATUSES, TRANSITIONS

__all__ = [
    "create_booking",
    "accept_booking",
    "update_booking",
    "get_booking",
    "list_bookings",
    "delete_booking",
    "find_assigned_booking",
    "MAX_PAGE_SIZE",
    "can_transition",
    "check_transition",
    "sources_for",
    "STATUSES",
    "TRANSITIONS",
]
