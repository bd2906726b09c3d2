"""Tests for the SQL persistence gateway."""

from dataclasses import replace

import aiosqlite
import pytest

from huddle.errors import AuthorizationDenied, NotFound, PersistenceFailure
from huddle.gateway import PersistenceGateway
from huddle.models import Project, TaskStatus
from huddle.sql import SchemaQueries, SQLGateway, SQLiteDialect, StoreConfig

pytestmark = pytest.mark.anyio


class BrokenMessagesDialect(SQLiteDialect):
    """Dialect whose message insert targets a table that does not exist."""

    def queries(self, table_prefix: str) -> SchemaQueries:
        return replace(
            super().queries(table_prefix),
            insert_message="INSERT INTO missing_table VALUES (?, ?, ?, ?, ?)",
        )


@pytest.fixture
async def project(gateway: SQLGateway) -> Project:
    return await gateway.create_project(
        "alice", "Launch", member_ids=["carol"], project_id="p1"
    )


class TestProjects:
    async def test_satisfies_protocol(self, gateway: SQLGateway) -> None:
        assert isinstance(gateway, PersistenceGateway)

    async def test_get_project_with_members(
        self, gateway: SQLGateway, project: Project
    ) -> None:
        loaded = await gateway.get_project("p1")
        assert loaded is not None
        assert loaded.owner_id == "alice"
        assert loaded.name == "Launch"
        assert loaded.member_ids == frozenset({"carol"})

    async def test_get_missing_project(self, gateway: SQLGateway) -> None:
        assert await gateway.get_project("nope") is None

    async def test_find_project_access(
        self, gateway: SQLGateway, project: Project
    ) -> None:
        assert await gateway.find_project_access("p1", "alice") is not None
        assert await gateway.find_project_access("p1", "carol") is not None
        assert await gateway.find_project_access("p1", "bob") is None
        assert await gateway.find_project_access("nope", "alice") is None

    async def test_add_and_remove_member(
        self, gateway: SQLGateway, project: Project
    ) -> None:
        await gateway.add_member("p1", "bob")
        await gateway.add_member("p1", "bob")
        loaded = await gateway.get_project("p1")
        assert loaded is not None
        assert loaded.member_ids == frozenset({"carol", "bob"})

        await gateway.remove_member("p1", "bob")
        await gateway.remove_member("p1", "bob")
        loaded = await gateway.get_project("p1")
        assert loaded is not None
        assert loaded.member_ids == frozenset({"carol"})

    async def test_add_member_to_missing_project(self, gateway: SQLGateway) -> None:
        with pytest.raises(NotFound, match="Project not found"):
            await gateway.add_member("nope", "bob")

    async def test_custom_table_prefix(
        self, sqlite_connection: aiosqlite.Connection
    ) -> None:
        gateway = SQLGateway(
            sqlite_connection, config=StoreConfig(table_prefix="team_")
        )
        await gateway.create_project("alice", project_id="p9")
        async with sqlite_connection.execute(
            "SELECT owner_id FROM team_projects WHERE id = ?", ("p9",)
        ) as cursor:
            row = await cursor.fetchone()
        assert row == ("alice",)


class TestMessages:
    async def test_owner_and_member_can_post(
        self, gateway: SQLGateway, project: Project
    ) -> None:
        first = await gateway.create_message_if_authorized("alice", "p1", "hi")
        second = await gateway.create_message_if_authorized("carol", "p1", "hey")
        assert first.sender_id == "alice"
        assert second.project_id == "p1"
        assert first.id != second.id

    async def test_content_is_trimmed(
        self, gateway: SQLGateway, project: Project
    ) -> None:
        message = await gateway.create_message_if_authorized(
            "alice", "p1", "  hello world \n"
        )
        assert message.content == "hello world"
        history = await gateway.recent_messages("p1")
        assert [m.content for m in history] == ["hello world"]

    async def test_stranger_is_denied_and_nothing_is_stored(
        self, gateway: SQLGateway, project: Project
    ) -> None:
        with pytest.raises(AuthorizationDenied):
            await gateway.create_message_if_authorized("bob", "p1", "hi")
        assert await gateway.recent_messages("p1") == []

    async def test_missing_project_is_denied(self, gateway: SQLGateway) -> None:
        with pytest.raises(AuthorizationDenied, match="Access denied"):
            await gateway.create_message_if_authorized("alice", "nope", "hi")

    async def test_revoked_member_is_denied(
        self, gateway: SQLGateway, project: Project
    ) -> None:
        await gateway.create_message_if_authorized("carol", "p1", "before")
        await gateway.remove_member("p1", "carol")
        with pytest.raises(AuthorizationDenied):
            await gateway.create_message_if_authorized("carol", "p1", "after")

    async def test_recent_messages_oldest_first_with_limit(
        self, gateway: SQLGateway, project: Project
    ) -> None:
        for text in ["one", "two", "three", "four"]:
            await gateway.create_message_if_authorized("alice", "p1", text)
        history = await gateway.recent_messages("p1", limit=3)
        assert [m.content for m in history] == ["two", "three", "four"]

    async def test_driver_error_becomes_persistence_failure(
        self, sqlite_connection: aiosqlite.Connection
    ) -> None:
        gateway = SQLGateway(sqlite_connection, dialect=BrokenMessagesDialect())
        await gateway.create_project("alice", project_id="p1")
        with pytest.raises(PersistenceFailure) as exc_info:
            await gateway.create_message_if_authorized("alice", "p1", "hi")
        assert isinstance(exc_info.value.cause, aiosqlite.Error)
        assert exc_info.value.message == "Internal error"

        # the failed transaction was rolled back; the gateway keeps working
        assert await gateway.get_project("p1") is not None


class TestTasks:
    async def test_member_updates_status(
        self, gateway: SQLGateway, project: Project
    ) -> None:
        task = await gateway.create_task("p1", "Write docs", task_id="t1")
        assert task.status is TaskStatus.TODO

        updated = await gateway.update_task_status_if_authorized(
            "carol", "t1", TaskStatus.DONE
        )
        assert updated.status is TaskStatus.DONE
        assert updated.updated_by == "carol"
        assert updated.updated_at >= task.updated_at

        stored = await gateway.get_task("t1")
        assert stored is not None
        assert stored.status is TaskStatus.DONE
        assert stored.updated_by == "carol"
        assert stored.title == "Write docs"

    async def test_missing_task(
        self, gateway: SQLGateway, project: Project
    ) -> None:
        with pytest.raises(NotFound, match="Task not found"):
            await gateway.update_task_status_if_authorized(
                "alice", "nope", TaskStatus.DONE
            )

    async def test_stranger_cannot_update(
        self, gateway: SQLGateway, project: Project
    ) -> None:
        await gateway.create_task("p1", task_id="t1")
        with pytest.raises(AuthorizationDenied):
            await gateway.update_task_status_if_authorized(
                "bob", "t1", TaskStatus.BLOCKED
            )
        stored = await gateway.get_task("t1")
        assert stored is not None
        assert stored.status is TaskStatus.TODO

    async def test_create_task_in_missing_project(self, gateway: SQLGateway) -> None:
        with pytest.raises(NotFound, match="Project not found"):
            await gateway.create_task("nope", "Orphan")


class TestLifecycle:
    async def test_ping(self, gateway: SQLGateway) -> None:
        await gateway.ping()

    async def test_closed_gateway_refuses_work(
        self, sqlite_connection: aiosqlite.Connection
    ) -> None:
        async with SQLGateway(sqlite_connection) as gateway:
            await gateway.ping()
        with pytest.raises(RuntimeError, match="closed"):
            await gateway.get_project("p1")
