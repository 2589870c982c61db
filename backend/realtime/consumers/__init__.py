"""Realtime consumers for WebSocket communication."""

from .base import BaseConsumer
from .booking_consumer import BookingConsumer

__all__ = [
    "BaseConsumer",
    "BookingConsumer",
]
