"""Domain records and wire payloads.

Python attributes are snake_case; payloads travel camelCase on the wire.
"""

from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def utcnow() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(UTC)


class TaskStatus(StrEnum):
    """The only statuses a task may be moved to."""

    TODO = "todo"
    IN_PROGRESS = "in-progress"
    DONE = "done"
    BLOCKED = "blocked"


class WireModel(BaseModel):
    """Base for everything that crosses the connection."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        coerce_numbers_to_str=True,
        frozen=True,
    )

    def to_wire(self) -> dict[str, Any]:
        """Dump to a JSON-compatible dict using wire (camelCase) names."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# Persisted records


class Project(WireModel):
    id: str
    name: str = ""
    owner_id: str
    member_ids: frozenset[str] = frozenset()


class Message(WireModel):
    id: str
    project_id: str
    sender_id: str
    content: str
    created_at: datetime


class Task(WireModel):
    id: str
    project_id: str
    title: str = ""
    status: TaskStatus = TaskStatus.TODO
    updated_by: str | None = None
    updated_at: datetime


# Client -> server


class JoinRoom(WireModel):
    """Ask to receive broadcasts for a project."""

    project_id: str


class LeaveRoom(WireModel):
    """Stop receiving broadcasts for a project."""

    project_id: str


class SendMessage(WireModel):
    """Post a chat message to a project room."""

    project_id: str
    content: str = ""


class UpdateTaskStatus(WireModel):
    """Move a task to another status.

    ``status`` is kept as a plain string so that an unknown literal is
    rejected by the handler with a specific error instead of a generic
    payload error.
    """

    task_id: str
    status: str


# Server -> client


class PeerJoined(WireModel):
    user_id: str
    project_id: str
    timestamp: datetime = Field(default_factory=utcnow)


class PeerLeft(WireModel):
    user_id: str
    project_id: str
    timestamp: datetime = Field(default_factory=utcnow)


class NewMessage(WireModel):
    id: str
    content: str
    sender: str
    project_id: str
    created_at: datetime

    @classmethod
    def from_message(cls, message: Message) -> "NewMessage":
        return cls(
            id=message.id,
            content=message.content,
            sender=message.sender_id,
            project_id=message.project_id,
            created_at=message.created_at,
        )


class TaskUpdated(WireModel):
    task_id: str
    status: TaskStatus
    updated_at: datetime
    updated_by: str

    @classmethod
    def from_task(cls, task: Task, updated_by: str) -> "TaskUpdated":
        return cls(
            task_id=task.id,
            status=task.status,
            updated_at=task.updated_at,
            updated_by=updated_by,
        )


class ErrorEvent(WireModel):
    message: str


class AckResult(WireModel):
    """Direct response to the connection that sent an acknowledged event."""

    success: bool
    error: str | None = None
