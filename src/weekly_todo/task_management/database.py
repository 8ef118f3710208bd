"""Indexed task storage backend using SQLite."""

import asyncio
import json
import logging
from collections.abc import AsyncIterator, Mapping
from contextlib import asynccontextmanager
from dataclasses import replace
from datetime import date, datetime
from typing import Any

import aiosqlite

from weekly_todo.task_management.config import SCHEMA_VERSION
from weekly_todo.task_management.exceptions import DatabaseError, TaskNotFoundError
from weekly_todo.task_management.interfaces import TaskRepository
from weekly_todo.task_management.models import (
    Task,
    TaskCreate,
    TaskPriority,
    TaskStatus,
    apply_update,
    format_timestamp,
    new_task,
    next_order,
    to_local_naive,
)

logger = logging.getLogger(__name__)


class TaskDatabase(TaskRepository):
    """SQLite database for task storage with secondary indexes."""

    def __init__(self, db_path: str, wal_mode: bool = True) -> None:
        """
        Initialize database connection.

        Args:
            db_path: Path to SQLite database file (use ":memory:" for in-memory)
            wal_mode: Enable WAL mode for concurrent access
        """
        self.db_path = db_path
        self.wal_mode = wal_mode
        self._connection: aiosqlite.Connection | None = None
        # One connection is shared, so statements from concurrent coroutines
        # must not interleave with an open transaction.
        self._lock = asyncio.Lock()

    async def initialize(self) -> None:
        """Initialize database schema and connection."""
        try:
            if self._connection is None:
                self._connection = await aiosqlite.connect(self.db_path)
                self._connection.row_factory = aiosqlite.Row

                # Enable WAL mode for concurrent access (not supported in :memory:)
                if self.wal_mode and self.db_path != ":memory:":
                    await self._connection.execute("PRAGMA journal_mode=WAL")

            await self._create_schema()
        except aiosqlite.Error as e:
            raise DatabaseError(f"Failed to initialize database: {e}") from e

    async def _create_schema(self) -> None:
        """Create database schema with tables and indexes."""
        async with self._get_connection() as conn:
            await conn.execute(
                """
                CREATE TABLE IF NOT EXISTS schema_version (
                    version INTEGER PRIMARY KEY,
                    applied_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP
                )
                """
            )

            cursor = await conn.execute("SELECT MAX(version) FROM schema_version")
            result = await cursor.fetchone()
            current_version = result[0] if result and result[0] is not None else 0

            if current_version < SCHEMA_VERSION:
                await self._apply_migrations(conn, current_version)

            await conn.commit()

    async def _apply_migrations(
        self, conn: aiosqlite.Connection, from_version: int
    ) -> None:
        """
        Apply database migrations.

        Args:
            conn: Database connection
            from_version: Current schema version
        """
        if from_version < 1:
            await conn.execute(
                """
                CREATE TABLE IF NOT EXISTS tasks (
                    id TEXT PRIMARY KEY,
                    content TEXT NOT NULL,
                    status TEXT NOT NULL,
                    priority TEXT NOT NULL,
                    deadline TEXT,
                    tags TEXT NOT NULL DEFAULT '[]',
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL,
                    completed_at TEXT,
                    user_id TEXT,
                    sort_order INTEGER NOT NULL DEFAULT 0
                )
                """
            )

            await conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_tasks_status ON tasks(status)"
            )
            await conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_tasks_created_at ON tasks(created_at)"
            )
            await conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_tasks_user_id ON tasks(user_id)"
            )
            await conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_tasks_status_order "
                "ON tasks(status, sort_order)"
            )

            await conn.execute(
                "INSERT OR REPLACE INTO schema_version (version) VALUES (?)",
                (SCHEMA_VERSION,),
            )

    @asynccontextmanager
    async def _get_connection(self) -> AsyncIterator[aiosqlite.Connection]:
        """
        Get database connection context manager.

        Yields:
            Database connection

        Raises:
            DatabaseError: If connection is not initialized
        """
        if self._connection is None:
            raise DatabaseError("Database not initialized")
        yield self._connection

    @asynccontextmanager
    async def _transaction(self) -> AsyncIterator[aiosqlite.Connection]:
        """
        Run statements in a single transaction.

        Commits when the block succeeds and rolls back on any exception.
        sqlite errors are re-raised as DatabaseError.
        """
        async with self._lock, self._get_connection() as conn:
            try:
                yield conn
                await conn.commit()
            except BaseException as e:
                await conn.rollback()
                if isinstance(e, aiosqlite.Error):
                    raise DatabaseError(f"Database transaction failed: {e}") from e
                raise

    async def _fetch_all(self, query: str, params: tuple[Any, ...] = ()) -> list[Task]:
        try:
            async with self._lock, self._get_connection() as conn:
                cursor = await conn.execute(query, params)
                rows = await cursor.fetchall()
        except aiosqlite.Error as e:
            raise DatabaseError(f"Failed to query tasks: {e}") from e
        return [self._row_to_task(row) for row in rows]

    async def get_schema_version(self) -> int:
        """
        Get current schema version.

        Returns:
            Schema version number
        """
        async with self._get_connection() as conn:
            cursor = await conn.execute("SELECT MAX(version) FROM schema_version")
            result = await cursor.fetchone()
            return result[0] if result and result[0] is not None else 0

    async def close(self) -> None:
        """Close database connection."""
        if self._connection:
            await self._connection.close()
            self._connection = None

    async def _write_task(self, conn: aiosqlite.Connection, task: Task) -> None:
        """Insert or replace one task row."""
        await conn.execute(
            """
            INSERT OR REPLACE INTO tasks (
                id, content, status, priority, deadline, tags, created_at,
                updated_at, completed_at, user_id, sort_order
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                task.id,
                task.content,
                task.status.value,
                task.priority.value,
                task.deadline.isoformat() if task.deadline else None,
                json.dumps(task.tags),
                format_timestamp(task.created_at),
                format_timestamp(task.updated_at),
                format_timestamp(task.completed_at) if task.completed_at else None,
                task.user_id,
                task.order,
            ),
        )

    async def _select_task(self, conn: aiosqlite.Connection, task_id: str) -> Task:
        cursor = await conn.execute("SELECT * FROM tasks WHERE id = ?", (task_id,))
        row = await cursor.fetchone()
        if row is None:
            raise TaskNotFoundError(f"Task with ID {task_id} not found")
        return self._row_to_task(row)

    async def get_all(self) -> list[Task]:
        return await self._fetch_all("SELECT * FROM tasks ORDER BY created_at")

    async def get_by_id(self, task_id: str) -> Task | None:
        tasks = await self._fetch_all("SELECT * FROM tasks WHERE id = ?", (task_id,))
        return tasks[0] if tasks else None

    async def create(self, data: TaskCreate) -> Task:
        async with self._transaction() as conn:
            cursor = await conn.execute(
                "SELECT MAX(sort_order) FROM tasks WHERE status = ?",
                (data.status.value,),
            )
            result = await cursor.fetchone()
            max_order = result[0] if result else None

            task = new_task(
                data,
                next_order([] if max_order is None else [max_order]),
                datetime.now(),
            )
            await self._write_task(conn, task)

        logger.debug(f"Created task {task.id} in database")
        return task

    async def update(self, task_id: str, updates: Mapping[str, Any]) -> Task:
        async with self._transaction() as conn:
            existing = await self._select_task(conn, task_id)
            updated = apply_update(existing, updates, datetime.now())
            await self._write_task(conn, updated)
        return updated

    async def delete(self, task_id: str) -> None:
        async with self._transaction() as conn:
            cursor = await conn.execute("DELETE FROM tasks WHERE id = ?", (task_id,))
            if cursor.rowcount == 0:
                raise TaskNotFoundError(f"Task with ID {task_id} not found")

    async def bulk_update(self, tasks: list[Task]) -> list[Task]:
        now = datetime.now()
        saved = [replace(task, tags=list(task.tags), updated_at=now) for task in tasks]

        async with self._transaction() as conn:
            for task in saved:
                await self._write_task(conn, task)

        logger.debug(f"Bulk updated {len(saved)} tasks in database")
        return saved

    async def get_by_status(self, status: TaskStatus) -> list[Task]:
        return await self._fetch_all(
            "SELECT * FROM tasks WHERE status = ? ORDER BY sort_order",
            (TaskStatus(status).value,),
        )

    async def get_by_date_range(self, start: datetime, end: datetime) -> list[Task]:
        return await self._fetch_all(
            "SELECT * FROM tasks WHERE created_at BETWEEN ? AND ? ORDER BY created_at",
            (
                format_timestamp(to_local_naive(start)),
                format_timestamp(to_local_naive(end)),
            ),
        )

    async def get_by_user(self, user_id: str | None) -> list[Task]:
        if user_id is None:
            return await self._fetch_all("SELECT * FROM tasks WHERE user_id IS NULL")
        return await self._fetch_all(
            "SELECT * FROM tasks WHERE user_id = ?", (user_id,)
        )

    async def clear(self) -> None:
        async with self._transaction() as conn:
            await conn.execute("DELETE FROM tasks")

    async def get_storage_stats(self) -> dict[str, int]:
        """
        Get storage statistics.

        Returns:
            Dictionary with task_count
        """
        async with self._lock, self._get_connection() as conn:
            cursor = await conn.execute("SELECT COUNT(*) FROM tasks")
            result = await cursor.fetchone()
        return {"task_count": result[0]}

    def _row_to_task(self, row: aiosqlite.Row) -> Task:
        """
        Convert database row to Task object.

        Args:
            row: Database row

        Returns:
            Task object
        """
        return Task(
            id=row["id"],
            content=row["content"],
            status=TaskStatus(row["status"]),
            priority=TaskPriority(row["priority"]),
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
            deadline=date.fromisoformat(row["deadline"]) if row["deadline"] else None,
            tags=json.loads(row["tags"]) if row["tags"] else [],
            completed_at=(
                datetime.fromisoformat(row["completed_at"])
                if row["completed_at"]
                else None
            ),
            order=row["sort_order"],
            user_id=row["user_id"],
        )
