"""Room membership and fan-out."""

from huddle.rooms.channel import Channel
from huddle.rooms.dispatcher import BroadcastDispatcher
from huddle.rooms.registry import RoomRegistry

__all__ = ["BroadcastDispatcher", "Channel", "RoomRegistry"]
