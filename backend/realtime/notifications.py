"""
Notification helpers for sending booking events to connected clients.

This module provides functions to:
- Announce new bookings to every connected driver
- Tell a rider that their booking was accepted
- Relay a driver's live location to the rider of a confirmed booking

Delivery is best effort. A failure is logged and reported through the
return value, never raised to the caller whose operation already succeeded.
"""

from __future__ import annotations

import logging
from typing import Any, Dict

from .groups import DRIVERS_GROUP, get_membership, user_group

logger = logging.getLogger(__name__)


def _booking_data(booking) -> Dict[str, Any]:
    from bookings.serializers import BookingSerializer
    return BookingSerializer(booking).data


# ---------------------- Booking Event Notifications ----------------------

def notify_drivers_event(
    event_type: str,
    booking,
    message: str = "",
    extra: Dict[str, Any] = None,
) -> bool:
    """
    Send a booking event to every connected driver through: drivers

    Args:
        event_type: Handler name in consumer (new_ride_request)
        booking: Booking model instance
        message: Optional message to include
        extra: Additional payload data

    Returns:
        True if sent successfully, False otherwise
    """
    payload = {
        "type": event_type,
        "booking": _booking_data(booking),
        **(extra or {}),
    }
    if message:
        payload["message"] = message

    return _publish(DRIVERS_GROUP, payload)


def notify_rider_event(
    event_type: str,
    booking,
    message: str = "",
    extra: Dict[str, Any] = None,
) -> bool:
    """
    Send a booking event to the rider through: user_<rider_id>

    Args:
        event_type: Handler name in consumer (ride_accepted)
        booking: Booking model instance
        message: Optional message to include
        extra: Additional payload data

    Returns:
        True if sent successfully, False otherwise
    """
    rider_id = booking.rider_id
    if not rider_id:
        return False

    payload = {
        "type": event_type,
        "booking_id": booking.id,
        "driver_id": booking.driver_id,
        "status": booking.status,
        "booking": _booking_data(booking),
        **(extra or {}),
    }
    if message:
        payload["message"] = message

    return _publish(user_group(rider_id), payload)


async def relay_driver_location(booking, driver_id: int, lat: float, lng: float, eta=None) -> bool:
    """Forward a driver position to the rider of ``booking``."""
    if not booking.rider_id:
        return False

    payload = {
        "type": "driver_location",
        "booking_id": booking.id,
        "rider_id": booking.rider_id,
        "driver_id": driver_id,
        "lat": lat,
        "lng": lng,
        "eta": eta,
    }
    group = user_group(booking.rider_id)
    try:
        await get_membership().publish(group, payload)
    except Exception:
        logger.exception("Failed to relay location to %s", group)
        return False
    return True


def _publish(group: str, payload: Dict[str, Any]) -> bool:
    logger.debug("WS -> %s: %s", group, payload)
    try:
        get_membership().publish_sync(group, payload)
    except Exception:
        logger.exception("Failed to send %s to %s", payload.get("type"), group)
        return False
    return True
