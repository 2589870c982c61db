"""
Connection group membership.

Every connection joins its private ``user_<id>`` group; drivers also join the
shared ``drivers`` group. Callers go through ``ChannelLayerMembership`` and
never touch the channel layer directly, so the layer backend (in-memory or
Redis) can change without touching them.
"""

import logging
from typing import Any, Dict, Iterable, List

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer

logger = logging.getLogger(__name__)

DRIVERS_GROUP = "drivers"


def user_group(user_id: int) -> str:
    return f"user_{user_id}"


def groups_for(identity) -> List[str]:
    """Groups a connection for ``identity`` belongs to."""
    groups = [user_group(identity.id)]
    if identity.role == "driver":
        groups.append(DRIVERS_GROUP)
    return groups


class ChannelLayerMembership:
    """Group membership and fan-out over a Channels layer."""

    def __init__(self, channel_layer=None):
        self._channel_layer = channel_layer

    @property
    def channel_layer(self):
        if self._channel_layer is None:
            self._channel_layer = get_channel_layer()
        return self._channel_layer

    async def register(self, identity, channel_name: str) -> List[str]:
        """Add ``channel_name`` to every group of ``identity``; returns them."""
        groups = groups_for(identity)
        for group in groups:
            await self.channel_layer.group_add(group, channel_name)
        logger.debug("Channel %s joined %s", channel_name, groups)
        return groups

    async def unregister(self, channel_name: str, groups: Iterable[str]):
        for group in groups:
            await self.channel_layer.group_discard(group, channel_name)
        logger.debug("Channel %s left %s", channel_name, list(groups))

    async def publish(self, group: str, event: Dict[str, Any]):
        """
        Send ``event`` to every connection in ``group``.

        ``event["type"]`` names the consumer handler that receives it.
        """
        await self.channel_layer.group_send(group, event)

    def publish_sync(self, group: str, event: Dict[str, Any]):
        async_to_sync(self.publish)(group, event)


def get_membership() -> ChannelLayerMembership:
    return ChannelLayerMembership()
