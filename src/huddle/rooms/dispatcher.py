"""Room fan-out and direct delivery."""

import logging
from typing import Any

import anyio

from huddle.marshaling import encode_event
from huddle.models import WireModel
from huddle.rooms.registry import RoomRegistry

logger = logging.getLogger(__name__)


class BroadcastDispatcher:
    """Delivers frames to room members or to a single connection.

    Delivery is fire-and-forget: no retries, and a failing member transport
    never affects delivery to the others or the caller.
    """

    def __init__(self, registry: RoomRegistry) -> None:
        self._registry = registry

    async def broadcast(
        self,
        room: str,
        event: str,
        payload: WireModel | dict[str, Any],
        *,
        exclude: str | None = None,
    ) -> int:
        """Send an event to every current member of ``room``.

        Args:
            room: Room name.
            event: Event name.
            payload: Event payload.
            exclude: Optional connection id that should not receive it.

        Returns:
            Number of members the frame was handed to without error.
        """
        frame = encode_event(event, payload)
        targets = [c for c in self._registry.members_of(room) if c != exclude]
        delivered = 0

        async def deliver(connection_id: str) -> None:
            nonlocal delivered
            if await self.send_frame(connection_id, frame):
                delivered += 1

        async with anyio.create_task_group() as tg:
            for connection_id in targets:
                tg.start_soon(deliver, connection_id)

        logger.debug(
            "Broadcast %s to %s: %d/%d delivered",
            event,
            room,
            delivered,
            len(targets),
        )
        return delivered

    async def send_to(
        self,
        connection_id: str,
        event: str,
        payload: WireModel | dict[str, Any],
    ) -> bool:
        """Send an event to one connection only."""
        return await self.send_frame(connection_id, encode_event(event, payload))

    async def send_frame(self, connection_id: str, frame: dict[str, Any]) -> bool:
        """Send a pre-built frame to one connection.

        Returns False when the connection is unknown or its transport failed.
        """
        channel = self._registry.channel_of(connection_id)
        if channel is None:
            return False
        try:
            await channel.send(frame)
        except Exception:
            logger.debug("Delivery to %s failed", connection_id, exc_info=True)
            return False
        return True
