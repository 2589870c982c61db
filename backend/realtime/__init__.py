"""
Realtime app for WebSocket booking events.

This app provides:
- The booking WebSocket consumer shared by riders and drivers
- Group membership over the Channels layer (user_<id>, drivers)
- Notification helpers used by the booking services
- Session token authentication middleware for WebSocket handshakes

Key Components:
    - groups.py: membership interface (register / unregister / publish)
    - consumers/: WebSocket consumers
    - notifications.py: booking event notification helpers
    - middleware.py: SessionTokenAuthMiddleware

Usage:
    from realtime.consumers import BookingConsumer
    from realtime.notifications import notify_drivers_event, notify_rider_event
    from realtime.groups import get_membership
"""
