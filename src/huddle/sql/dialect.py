"""SQL dialect abstraction for the gateway schema."""

from dataclasses import dataclass
from typing import Protocol


@dataclass(frozen=True)
class SchemaQueries:
    """Pre-generated SQL for one table prefix."""

    create_tables: tuple[str, ...]
    begin: str
    select_project: str
    select_members: str
    insert_project: str
    insert_member: str
    delete_member: str
    select_task: str
    insert_task: str
    update_task_status: str
    insert_message: str
    select_recent_messages: str
    ping: str


class Dialect(Protocol):
    """Protocol for SQL dialect differences."""

    def queries(self, table_prefix: str) -> SchemaQueries:
        """Generate all queries for the given table prefix."""
        ...


class SQLiteDialect:
    """SQLite dialect using aiosqlite.

    Note: SQLite has a single writer. ``BEGIN IMMEDIATE`` takes the write
    lock up front so the access check and the write see the same snapshot.
    """

    def _quote(self, name: str) -> str:
        """Quote identifier for SQLite."""
        return '"' + name.replace('"', '""') + '"'

    def queries(self, table_prefix: str) -> SchemaQueries:
        """Generate SQLite queries for the gateway tables."""
        projects = self._quote(f"{table_prefix}projects")
        members = self._quote(f"{table_prefix}project_members")
        tasks = self._quote(f"{table_prefix}tasks")
        messages = self._quote(f"{table_prefix}messages")
        messages_idx = self._quote(f"idx_{table_prefix}messages_project")
        return SchemaQueries(
            create_tables=(
                f"""
                CREATE TABLE IF NOT EXISTS {projects} (
                    id TEXT PRIMARY KEY,
                    name TEXT NOT NULL DEFAULT '',
                    owner_id TEXT NOT NULL,
                    created_at TEXT NOT NULL
                )
                """,
                f"""
                CREATE TABLE IF NOT EXISTS {members} (
                    project_id TEXT NOT NULL REFERENCES {projects} (id),
                    user_id TEXT NOT NULL,
                    PRIMARY KEY (project_id, user_id)
                )
                """,
                f"""
                CREATE TABLE IF NOT EXISTS {tasks} (
                    id TEXT PRIMARY KEY,
                    project_id TEXT NOT NULL REFERENCES {projects} (id),
                    title TEXT NOT NULL DEFAULT '',
                    status TEXT NOT NULL DEFAULT 'todo',
                    updated_by TEXT,
                    updated_at TEXT NOT NULL
                )
                """,
                f"""
                CREATE TABLE IF NOT EXISTS {messages} (
                    id TEXT PRIMARY KEY,
                    project_id TEXT NOT NULL REFERENCES {projects} (id),
                    sender_id TEXT NOT NULL,
                    content TEXT NOT NULL,
                    created_at TEXT NOT NULL
                )
                """,
                f"""
                CREATE INDEX IF NOT EXISTS {messages_idx}
                ON {messages} (project_id, created_at)
                """,
            ),
            begin="BEGIN IMMEDIATE",
            select_project=f"""
                SELECT id, name, owner_id FROM {projects} WHERE id = ?
            """,
            select_members=f"""
                SELECT user_id FROM {members} WHERE project_id = ?
            """,
            insert_project=f"""
                INSERT INTO {projects} (id, name, owner_id, created_at)
                VALUES (?, ?, ?, ?)
            """,
            insert_member=f"""
                INSERT OR IGNORE INTO {members} (project_id, user_id)
                VALUES (?, ?)
            """,
            delete_member=f"""
                DELETE FROM {members} WHERE project_id = ? AND user_id = ?
            """,
            select_task=f"""
                SELECT id, project_id, title, status, updated_by, updated_at
                FROM {tasks} WHERE id = ?
            """,
            insert_task=f"""
                INSERT INTO {tasks}
                    (id, project_id, title, status, updated_by, updated_at)
                VALUES (?, ?, ?, ?, ?, ?)
            """,
            update_task_status=f"""
                UPDATE {tasks}
                SET status = ?, updated_by = ?, updated_at = ?
                WHERE id = ?
            """,
            insert_message=f"""
                INSERT INTO {messages}
                    (id, project_id, sender_id, content, created_at)
                VALUES (?, ?, ?, ?, ?)
            """,
            select_recent_messages=f"""
                SELECT id, project_id, sender_id, content, created_at
                FROM {messages}
                WHERE project_id = ?
                ORDER BY created_at DESC, rowid DESC
                LIMIT ?
            """,
            ping="SELECT 1",
        )
