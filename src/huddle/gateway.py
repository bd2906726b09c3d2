"""Persistence interface consumed by the session layer."""

from typing import Protocol, runtime_checkable

from huddle.models import Message, Project, Task, TaskStatus


@runtime_checkable
class PersistenceGateway(Protocol):
    """Storage for projects, tasks and messages.

    The two ``*_if_authorized`` operations must run the access check and
    the write inside one transaction.
    """

    async def get_project(self, project_id: str) -> Project | None:
        """Look up a project with its member set."""
        ...

    async def find_project_access(
        self, project_id: str, user_id: str
    ) -> Project | None:
        """Return the project only if the user may act on it."""
        ...

    async def create_message_if_authorized(
        self, user_id: str, project_id: str, content: str
    ) -> Message:
        """Persist a message. Raises AuthorizationDenied."""
        ...

    async def update_task_status_if_authorized(
        self, user_id: str, task_id: str, status: TaskStatus
    ) -> Task:
        """Persist a status change. Raises NotFound or AuthorizationDenied."""
        ...

    async def ping(self) -> None:
        """Raise if the backing store is unreachable."""
        ...
