"""Handlers for the client event surface."""

import logging

from huddle.errors import AuthorizationDenied, ValidationFailed
from huddle.marshaling import (
    JOIN_ROOM,
    LEAVE_ROOM,
    NEW_MESSAGE,
    PEER_JOINED,
    PEER_LEFT,
    SEND_MESSAGE,
    TASK_UPDATED,
    UPDATE_TASK_STATUS,
)
from huddle.models import (
    JoinRoom,
    LeaveRoom,
    NewMessage,
    PeerJoined,
    PeerLeft,
    SendMessage,
    TaskStatus,
    TaskUpdated,
    UpdateTaskStatus,
)
from huddle.policy import can_act
from huddle.session.router import EventRouter
from huddle.session.session import ConnectionSession
from huddle.session.types import Broadcast, Middleware, Outcome

logger = logging.getLogger(__name__)


async def join_room(cmd: JoinRoom, session: ConnectionSession) -> Outcome:
    """Handle join-room: owners and members get the project's broadcasts."""
    user_id = session.require_user()
    project = await session.gateway.get_project(cmd.project_id)
    if not can_act(user_id, project):
        raise AuthorizationDenied

    room = session.room_for(cmd.project_id)
    if not session.join_room(room):
        return Outcome.success()

    logger.info("User %s joined project %s", user_id, cmd.project_id)
    return Outcome.success(
        Broadcast(
            room=room,
            event=PEER_JOINED,
            payload=PeerJoined(user_id=user_id, project_id=cmd.project_id),
            exclude=session.connection_id,
        )
    )


async def leave_room(cmd: LeaveRoom, session: ConnectionSession) -> Outcome:
    """Handle leave-room. Leaving a room not joined does nothing."""
    user_id = session.require_user()
    room = session.room_for(cmd.project_id)
    if not session.leave_room(room):
        return Outcome.success()

    logger.info("User %s left project %s", user_id, cmd.project_id)
    return Outcome.success(
        Broadcast(
            room=room,
            event=PEER_LEFT,
            payload=PeerLeft(user_id=user_id, project_id=cmd.project_id),
        )
    )


async def send_message(cmd: SendMessage, session: ConnectionSession) -> Outcome:
    """Handle send-message: persist, then broadcast to the room, sender included."""
    user_id = session.require_user()
    if not cmd.content.strip():
        raise ValidationFailed("Message content is required")

    message = await session.gateway.create_message_if_authorized(
        user_id, cmd.project_id, cmd.content
    )
    logger.info("Message sent in project %s by user %s", cmd.project_id, user_id)
    return Outcome.success(
        Broadcast(
            room=session.room_for(message.project_id),
            event=NEW_MESSAGE,
            payload=NewMessage.from_message(message),
        )
    )


async def update_task_status(
    cmd: UpdateTaskStatus, session: ConnectionSession
) -> Outcome:
    """Handle update-task-status: validate the literal, persist, broadcast."""
    user_id = session.require_user()
    try:
        status = TaskStatus(cmd.status)
    except ValueError:
        raise ValidationFailed("Invalid status") from None

    task = await session.gateway.update_task_status_if_authorized(
        user_id, cmd.task_id, status
    )
    logger.info("Task %s status updated to %s by user %s", task.id, status, user_id)
    return Outcome.success(
        Broadcast(
            room=session.room_for(task.project_id),
            event=TASK_UPDATED,
            payload=TaskUpdated.from_task(task, updated_by=user_id),
        )
    )


def default_router(*middlewares: Middleware) -> EventRouter:
    """Build a router with the standard event surface registered."""
    router = EventRouter(middlewares)
    router.handler(JOIN_ROOM, failure_message="Failed to join project")(join_room)
    router.handler(LEAVE_ROOM, failure_message="Failed to leave project")(leave_room)
    router.handler(
        SEND_MESSAGE, acknowledged=True, failure_message="Failed to send message"
    )(send_message)
    router.handler(
        UPDATE_TASK_STATUS,
        acknowledged=True,
        failure_message="Failed to update task status",
    )(update_task_status)
    return router
