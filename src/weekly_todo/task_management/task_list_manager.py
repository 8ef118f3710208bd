"""Task List Manager for managing tasks with pluggable persistence."""

import logging
from collections.abc import Mapping
from typing import Any

from .filters import calculate_statistics, filter_by_week, generate_weekly_report
from .interfaces import TaskRepository
from .migration import MigrationCoordinator
from .models import (
    MigrationResult,
    Task,
    TaskCreate,
    TaskStatistics,
    TaskStatus,
    WeeklyReport,
    WeekInfo,
)

logger = logging.getLogger(__name__)


class TaskListManager:
    """
    Manages the task list on top of a storage backend.

    Keeps an in-memory copy of the collection for filtering and reports.
    The copy only changes after the backend call succeeds, so a failed
    operation never leaves it ahead of storage.
    """

    def __init__(
        self,
        repository: TaskRepository,
        migration: MigrationCoordinator | None = None,
    ) -> None:
        """
        Initialize Task List Manager.

        Args:
            repository: Storage backend
            migration: Optional coordinator run once during initialization
        """
        self._repository = repository
        self._migration = migration
        self._tasks_cache: dict[str, Task] = {}
        self._initialized = False
        self.last_error: str | None = None
        self.migration_result: MigrationResult | None = None

    @property
    def tasks(self) -> list[Task]:
        return list(self._tasks_cache.values())

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    async def initialize(self) -> None:
        """
        Initialize the backend, migrate legacy data if needed and load tasks.

        A failed migration is logged and does not stop initialization.
        """
        if self._initialized:
            return

        logger.info("Initializing Task List Manager")
        await self._repository.initialize()

        if self._migration is not None and self._migration.is_migration_needed():
            result = await self._migration.migrate()
            self.migration_result = result
            if result.success and result.migrated_count > 0:
                logger.info(f"Migrated {result.migrated_count} tasks from local storage")
            elif not result.success:
                self.last_error = result.error
                logger.error(f"Storage migration failed: {result.error}")

        await self.fetch_tasks()
        self._initialized = True
        logger.info(f"Task List Manager initialized with {len(self._tasks_cache)} tasks")

    async def fetch_tasks(self) -> list[Task]:
        """
        Reload all tasks from storage.

        Raises:
            StorageError: If the backend cannot be read
        """
        tasks = await self._repository.get_all()
        self._tasks_cache = {task.id: task for task in tasks}
        return tasks

    async def create_task(self, data: TaskCreate) -> Task:
        """
        Create a task.

        Args:
            data: Task input

        Returns:
            Created task
        """
        task = await self._repository.create(data)
        self._tasks_cache[task.id] = task
        logger.info(f"Added task {task.id}: {task.content}")
        return task

    async def get_task(self, task_id: str) -> Task | None:
        if task_id in self._tasks_cache:
            return self._tasks_cache[task_id]
        return await self._repository.get_by_id(task_id)

    async def update_task(self, task_id: str, updates: Mapping[str, Any]) -> Task:
        """
        Update task fields.

        Args:
            task_id: Task ID
            updates: Field names mapped to new values

        Returns:
            Updated task

        Raises:
            TaskNotFoundError: If task not found
        """
        task = await self._repository.update(task_id, updates)
        self._tasks_cache[task.id] = task
        logger.info(f"Updated task {task_id} fields: {list(updates.keys())}")
        return task

    async def delete_task(self, task_id: str) -> None:
        """
        Delete a task.

        Raises:
            TaskNotFoundError: If task not found
        """
        await self._repository.delete(task_id)
        self._tasks_cache.pop(task_id, None)
        logger.info(f"Deleted task {task_id}")

    async def move_task(
        self, task_id: str, status: TaskStatus, order: int | None = None
    ) -> Task:
        """Move a task to another status, optionally at a given order."""
        updates: dict[str, Any] = {"status": TaskStatus(status)}
        if order is not None:
            updates["order"] = order
        return await self.update_task(task_id, updates)

    async def reorder_tasks(self, tasks: list[Task]) -> list[Task]:
        """
        Store a reordered batch of tasks.

        On failure the cache is reloaded from storage before the error is
        re-raised, discarding any reorder the caller applied to its own view.

        Raises:
            StorageError: If the batch cannot be stored
        """
        try:
            saved = await self._repository.bulk_update(tasks)
        except Exception as e:
            self.last_error = str(e)
            logger.error(f"Error reordering tasks: {e}")
            await self.fetch_tasks()
            raise

        for task in saved:
            self._tasks_cache[task.id] = task
        return saved

    def visible_tasks(self, week: WeekInfo, show_all: bool = False) -> list[Task]:
        return filter_by_week(self.tasks, week, show_all)

    def weekly_report(self, week: WeekInfo) -> WeeklyReport:
        return generate_weekly_report(self.tasks, week)

    def get_statistics(self) -> TaskStatistics:
        """
        Get task statistics.

        Calculated from the in-memory cache.
        """
        return calculate_statistics(self.tasks)

    async def reset(self) -> None:
        """Delete all tasks and mark the manager uninitialized."""
        await self._repository.clear()
        self._tasks_cache.clear()
        self._initialized = False

    async def shutdown(self) -> None:
        """
        Shutdown the manager and close the backend.

        Handles errors gracefully to ensure cleanup completes.
        """
        logger.info("Shutting down Task List Manager")
        try:
            await self._repository.close()
        except Exception as e:
            logger.error(f"Error closing storage backend: {e}")

        self._tasks_cache.clear()
        self._initialized = False
