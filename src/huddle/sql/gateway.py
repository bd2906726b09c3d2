"""SQL persistence gateway implementation."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any
from uuid import uuid4

import aiosqlite
import anyio

from huddle.errors import HuddleError, NotFound, PersistenceFailure
from huddle.models import Message, Project, Task, TaskStatus, utcnow
from huddle.policy import can_act, ensure_can_act
from huddle.sql.config import StoreConfig
from huddle.sql.dialect import Dialect, SchemaQueries, SQLiteDialect

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_LIMIT = 50


def _new_id() -> str:
    return uuid4().hex


class SQLGateway:
    """Gateway that stores projects, tasks and messages in SQL tables.

    Access checks and writes share one ``BEGIN IMMEDIATE`` transaction, so a
    membership revoked concurrently cannot let a write through. Transactions
    on the shared connection are serialized by a lock owned by the gateway.
    """

    def __init__(
        self,
        connection: aiosqlite.Connection,
        dialect: Dialect | None = None,
        config: StoreConfig | None = None,
    ) -> None:
        """Initialize the SQL gateway.

        Args:
            connection: Open aiosqlite connection. The gateway never closes it.
            dialect: SQL dialect for query generation.
            config: Gateway configuration.
        """
        self._connection = connection
        self._dialect = dialect or SQLiteDialect()
        self._config = config or StoreConfig()
        self._queries: SchemaQueries = self._dialect.queries(self._config.table_prefix)
        self._lock = anyio.Lock()
        self._schema_ready = False
        self._closed = False

    async def _ensure_schema(self) -> None:
        """Create tables if auto_create_tables is enabled."""
        if self._schema_ready or not self._config.auto_create_tables:
            return
        for statement in self._queries.create_tables:
            await self._connection.execute(statement)
        await self._connection.commit()
        self._schema_ready = True

    @asynccontextmanager
    async def _transaction(self) -> AsyncIterator[aiosqlite.Connection]:
        """Run the body inside one write transaction.

        Domain errors propagate untouched; driver errors become
        PersistenceFailure.
        """
        if self._closed:
            msg = "Gateway is closed"
            raise RuntimeError(msg)

        async with self._lock:
            try:
                await self._ensure_schema()
                await self._connection.execute(self._queries.begin)
                try:
                    yield self._connection
                except BaseException:
                    with anyio.CancelScope(shield=True):
                        await self._connection.rollback()
                    raise
                await self._connection.commit()
            except HuddleError:
                raise
            except (aiosqlite.Error, ValueError) as exc:
                raise PersistenceFailure(exc) from exc

    async def _fetch_one(
        self, conn: aiosqlite.Connection, query: str, params: Sequence[Any] = ()
    ) -> Any:
        async with conn.execute(query, params) as cursor:
            return await cursor.fetchone()

    async def _fetch_all(
        self, conn: aiosqlite.Connection, query: str, params: Sequence[Any] = ()
    ) -> list[Any]:
        async with conn.execute(query, params) as cursor:
            return list(await cursor.fetchall())

    async def _load_project(
        self, conn: aiosqlite.Connection, project_id: str
    ) -> Project | None:
        row = await self._fetch_one(conn, self._queries.select_project, (project_id,))
        if row is None:
            return None
        members = await self._fetch_all(
            conn, self._queries.select_members, (project_id,)
        )
        return Project(
            id=row[0],
            name=row[1],
            owner_id=row[2],
            member_ids=frozenset(m[0] for m in members),
        )

    async def _load_task(self, conn: aiosqlite.Connection, task_id: str) -> Task | None:
        row = await self._fetch_one(conn, self._queries.select_task, (task_id,))
        if row is None:
            return None
        return Task(
            id=row[0],
            project_id=row[1],
            title=row[2],
            status=TaskStatus(row[3]),
            updated_by=row[4],
            updated_at=datetime.fromisoformat(row[5]),
        )

    # Real-time operations

    async def get_project(self, project_id: str) -> Project | None:
        """Look up a project with its member set."""
        async with self._transaction() as conn:
            return await self._load_project(conn, project_id)

    async def find_project_access(
        self, project_id: str, user_id: str
    ) -> Project | None:
        """Return the project only if the user owns it or is a member."""
        project = await self.get_project(project_id)
        return project if can_act(user_id, project) else None

    async def create_message_if_authorized(
        self, user_id: str, project_id: str, content: str
    ) -> Message:
        """Check access and insert a message in one transaction.

        The stored content is trimmed. A missing project is reported as
        AuthorizationDenied, the same as a project the user cannot see.
        """
        async with self._transaction() as conn:
            ensure_can_act(user_id, await self._load_project(conn, project_id))
            message = Message(
                id=_new_id(),
                project_id=project_id,
                sender_id=user_id,
                content=content.strip(),
                created_at=utcnow(),
            )
            await conn.execute(
                self._queries.insert_message,
                (
                    message.id,
                    message.project_id,
                    message.sender_id,
                    message.content,
                    message.created_at.isoformat(),
                ),
            )
        logger.debug("Stored message %s in project %s", message.id, project_id)
        return message

    async def update_task_status_if_authorized(
        self, user_id: str, task_id: str, status: TaskStatus
    ) -> Task:
        """Check access to the task's project and update its status."""
        async with self._transaction() as conn:
            task = await self._load_task(conn, task_id)
            if task is None:
                raise NotFound("Task not found")
            ensure_can_act(user_id, await self._load_project(conn, task.project_id))
            updated = task.model_copy(
                update={"status": status, "updated_by": user_id, "updated_at": utcnow()}
            )
            await conn.execute(
                self._queries.update_task_status,
                (
                    updated.status.value,
                    updated.updated_by,
                    updated.updated_at.isoformat(),
                    updated.id,
                ),
            )
        logger.debug("Task %s moved to %s by %s", task_id, status.value, user_id)
        return updated

    async def ping(self) -> None:
        """Run a trivial query; raises PersistenceFailure when unreachable."""
        async with self._transaction() as conn:
            await self._fetch_one(conn, self._queries.ping)

    # Provisioning

    async def create_project(
        self,
        owner_id: str,
        name: str = "",
        *,
        member_ids: Sequence[str] = (),
        project_id: str | None = None,
    ) -> Project:
        """Create a project owned by ``owner_id``."""
        project = Project(
            id=project_id or _new_id(),
            name=name,
            owner_id=owner_id,
            member_ids=frozenset(member_ids),
        )
        async with self._transaction() as conn:
            await conn.execute(
                self._queries.insert_project,
                (project.id, project.name, project.owner_id, utcnow().isoformat()),
            )
            for member_id in project.member_ids:
                await conn.execute(self._queries.insert_member, (project.id, member_id))
        return project

    async def add_member(self, project_id: str, user_id: str) -> None:
        """Add a member; no-op if already present."""
        async with self._transaction() as conn:
            if await self._load_project(conn, project_id) is None:
                raise NotFound("Project not found")
            await conn.execute(self._queries.insert_member, (project_id, user_id))

    async def remove_member(self, project_id: str, user_id: str) -> None:
        """Remove a member; no-op if absent."""
        async with self._transaction() as conn:
            await conn.execute(self._queries.delete_member, (project_id, user_id))

    async def create_task(
        self,
        project_id: str,
        title: str = "",
        *,
        status: TaskStatus = TaskStatus.TODO,
        task_id: str | None = None,
    ) -> Task:
        """Create a task inside an existing project."""
        task = Task(
            id=task_id or _new_id(),
            project_id=project_id,
            title=title,
            status=status,
            updated_at=utcnow(),
        )
        async with self._transaction() as conn:
            if await self._load_project(conn, project_id) is None:
                raise NotFound("Project not found")
            await conn.execute(
                self._queries.insert_task,
                (
                    task.id,
                    task.project_id,
                    task.title,
                    task.status.value,
                    task.updated_by,
                    task.updated_at.isoformat(),
                ),
            )
        return task

    async def get_task(self, task_id: str) -> Task | None:
        """Look up a task."""
        async with self._transaction() as conn:
            return await self._load_task(conn, task_id)

    async def recent_messages(
        self, project_id: str, limit: int = DEFAULT_HISTORY_LIMIT
    ) -> list[Message]:
        """Return up to ``limit`` latest messages, oldest first."""
        async with self._transaction() as conn:
            rows = await self._fetch_all(
                conn, self._queries.select_recent_messages, (project_id, limit)
            )
        return [
            Message(
                id=row[0],
                project_id=row[1],
                sender_id=row[2],
                content=row[3],
                created_at=datetime.fromisoformat(row[4]),
            )
            for row in reversed(rows)
        ]

    async def close(self) -> None:
        """Close the gateway. The underlying connection is left open."""
        self._closed = True

    async def __aenter__(self) -> SQLGateway:
        """Enter async context."""
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        """Exit async context."""
        await self.close()
