"""Booking WebSocket consumer shared by riders and drivers."""

import logging
from typing import Dict, Any

from channels.db import database_sync_to_async

from common.exceptions import AuthorizationError, ValidationError
from realtime.notifications import relay_driver_location
from services import booking_management
from .base import BaseConsumer

logger = logging.getLogger(__name__)


class BookingConsumer(BaseConsumer):
    """
    WebSocket consumer for booking events.

    Handles:
        - ride_request: rider creates a booking, drivers are told about it
        - ride_accepted: driver accepts a pending booking
        - driver_location: driver streams its position to the rider

    Receives (group events):
        - new_ride_request (drivers group)
        - ride_accepted, driver_location (user_<id> group)
    """

    async def handle_message(self, msg_type: str, data: Dict[str, Any]):
        if msg_type == "ride_request":
            await self._handle_ride_request(data)
        elif msg_type == "ride_accepted":
            await self._handle_ride_accepted(data)
        elif msg_type == "driver_location":
            await self._handle_driver_location(data)
        else:
            await self.send_error(f"Unknown message type: {msg_type}", code="validation_error")

    # ---------------------- Message Handlers ----------------------

    async def _handle_ride_request(self, data: Dict[str, Any]):
        payload = {key: value for key, value in data.items() if key != "type"}
        booking = await database_sync_to_async(booking_management.create_booking)(payload, rider=self.user)
        await self.send_success(
            "ride_request_created",
            booking_id=booking.id,
            status=booking.status,
        )

    async def _handle_ride_accepted(self, data: Dict[str, Any]):
        booking_id = _int_field(data, "booking_id", required=True)

        # Role may have changed since the socket connected
        await database_sync_to_async(self.user.refresh_from_db)(fields=["role"])
        self.role = self.user.role

        booking = await database_sync_to_async(booking_management.accept_booking)(booking_id, self.user)
        await self.send_success(
            "booking_accepted",
            booking_id=booking.id,
            status=booking.status,
        )

    async def _handle_driver_location(self, data: Dict[str, Any]):
        booking_id = _int_field(data, "booking_id")
        rider_id = _int_field(data, "rider_id")
        if booking_id is None and rider_id is None:
            raise ValidationError("driver_location requires booking_id or rider_id")

        lat = _float_field(data, "lat")
        lng = _float_field(data, "lng")

        booking = await database_sync_to_async(booking_management.find_assigned_booking)(
            self.user, booking_id=booking_id, rider_id=rider_id,
        )
        if booking is None:
            raise AuthorizationError("Not the assigned driver for this booking")

        await relay_driver_location(booking, self.user_id, lat, lng, eta=data.get("eta"))
        await self.send_success("location_relayed", booking_id=booking.id)

    # ---------------------- Group Event Handlers ----------------------

    async def new_ride_request(self, event):
        """Sent by server to all drivers when a booking is created."""
        await self.send_json({
            "type": "new_ride_request",
            "booking": event.get("booking"),
        })

    async def ride_accepted(self, event):
        """Sent to the rider when a driver accepts the booking."""
        await self.send_json({
            "type": "ride_accepted",
            "booking_id": event.get("booking_id"),
            "driver_id": event.get("driver_id"),
            "booking": event.get("booking", {}),
            "message": event.get("message", ""),
        })

    async def driver_location(self, event):
        """Live driver position for the rider."""
        await self.send_json({
            "type": "driver_location",
            "booking_id": event.get("booking_id"),
            "rider_id": event.get("rider_id"),
            "driver_id": event.get("driver_id"),
            "lat": event.get("lat"),
            "lng": event.get("lng"),
            "eta": event.get("eta"),
        })


def _int_field(data, name, required=False):
    value = data.get(name)
    if value is None:
        if required:
            raise ValidationError(f"{name} is required")
        return None
    if isinstance(value, bool):
        raise ValidationError(f"{name} must be an integer")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{name} must be an integer")


def _float_field(data, name):
    value = data.get(name)
    if value is None or isinstance(value, bool):
        raise ValidationError(f"{name} must be a number")
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{name} must be a number")
