"""WebSocket URL routing for the realtime app."""

from django.urls import re_path

from .consumers.booking_consumer import BookingConsumer

websocket_urlpatterns = [
    # Booking events for riders and drivers
    # URL: ws://localhost:8000/ws/bookings/
    re_path(
        r"ws/bookings/$",
        BookingConsumer.as_asgi(),
        name="bookings-ws"
    ),
]
