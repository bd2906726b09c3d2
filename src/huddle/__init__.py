"""huddle: Room-scoped real-time messaging for project collaboration.

This package re-exports the core components:
    from huddle import RealtimeServer, SQLGateway, create_app
"""

from huddle.asgi import create_app
from huddle.config import ServerConfig
from huddle.core import __version__
from huddle.errors import (
    AuthenticationMissing,
    AuthorizationDenied,
    HuddleError,
    NotFound,
    PersistenceFailure,
    ValidationFailed,
)
from huddle.gateway import PersistenceGateway
from huddle.models import Message, Project, Task, TaskStatus
from huddle.policy import can_act
from huddle.rooms import BroadcastDispatcher, Channel, RoomRegistry
from huddle.server import RealtimeServer
from huddle.session import ConnectionSession, Handshake, SessionState
from huddle.sql import SQLGateway, StoreConfig

__all__ = [
    "__version__",
    # errors
    "AuthenticationMissing",
    "AuthorizationDenied",
    "HuddleError",
    "NotFound",
    "PersistenceFailure",
    "ValidationFailed",
    # model
    "Message",
    "Project",
    "Task",
    "TaskStatus",
    "can_act",
    # persistence
    "PersistenceGateway",
    "SQLGateway",
    "StoreConfig",
    # runtime
    "BroadcastDispatcher",
    "Channel",
    "ConnectionSession",
    "Handshake",
    "RealtimeServer",
    "RoomRegistry",
    "ServerConfig",
    "SessionState",
    "create_app",
]
