"""Base WebSocket consumer with shared functionality for all consumers."""

import logging
from typing import Dict, Any, List

from channels.generic.websocket import AsyncJsonWebsocketConsumer

from common.exceptions import ServiceError
from realtime.groups import get_membership

logger = logging.getLogger(__name__)


class BaseConsumer(AsyncJsonWebsocketConsumer):
    """
    Base consumer with shared connection management and helper methods.

    Subclasses should override:
        - handle_message(msg_type, data): handle incoming messages
    """

    async def connect(self):
        self.user = self.scope.get("user")

        # Refuse the handshake for anonymous scopes
        if self.user is None or self.user.is_anonymous:
            await self.close()
            return

        self.user_id = self.user.id
        self.role = self.user.role
        self.membership = get_membership()

        # user_<id> always; drivers also get the shared drivers group
        self.joined_groups: List[str] = await self.membership.register(self.user, self.channel_name)

        await self.accept()
        await self.on_connect()

    async def on_connect(self):
        """Override in subclass for custom connect logic."""
        await self.send_json({
            "type": "connection_established",
            "user_id": self.user_id,
            "role": self.role,
        })

    async def disconnect(self, close_code):
        """Leave all joined groups on disconnect."""
        groups = getattr(self, "joined_groups", None)
        if not groups:
            return
        try:
            await self.membership.unregister(self.channel_name, groups)
            self.joined_groups = []
            await self.on_disconnect(close_code)
        except Exception:
            logger.exception("Error during disconnect for user %s", getattr(self, 'user_id', 'unknown'))

    async def on_disconnect(self, close_code):
        """Override in subclass for custom disconnect logic."""
        pass

    async def receive_json(self, data: Dict[str, Any]):
        """Route incoming messages to appropriate handlers."""
        msg_type = data.get("type") if isinstance(data, dict) else None
        if not msg_type:
            await self.send_error("Message type is required", code="validation_error")
            return

        try:
            await self.handle_message(msg_type, data)
        except ServiceError as e:
            await self.send_error(e.message, code=e.code)
        except Exception:
            logger.exception("Error handling message type %s", msg_type)
            await self.send_error(f"Error processing {msg_type}", code="internal_error")

    async def handle_message(self, msg_type: str, data: Dict[str, Any]):
        """Override in subclass to handle specific message types."""
        await self.send_error(f"Unknown message type: {msg_type}")

    # ---------------------- Response Helpers ----------------------

    async def send_error(self, message: str, code: str = None):
        """Send an error message to the client."""
        payload = {
            "type": "error",
            "message": message,
        }
        if code:
            payload["code"] = code
        await self.send_json(payload)

    async def send_success(self, event_type: str, **kwargs):
        """Send a success response to the client."""
        await self.send_json({
            "type": event_type,
            **kwargs,
        })
