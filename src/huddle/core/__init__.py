"""huddle.core: Version info for the huddle package.

Import from subpackages:
    from huddle.session import ConnectionSession, default_router
    from huddle.rooms import RoomRegistry, BroadcastDispatcher
    from huddle.sql import SQLGateway
"""

__version__ = "0.1.0"
