"""Abstract interfaces for task management system."""

from abc import ABC, abstractmethod
from collections.abc import Mapping
from datetime import datetime
from typing import Any

from weekly_todo.task_management.models import Task, TaskCreate, TaskStatus


class TaskRepository(ABC):
    """
    Abstract interface for task storage backends.

    Every operation is a coroutine so that file, database and future remote
    backends share one contract. A failed operation leaves persisted state
    unchanged.
    """

    async def initialize(self) -> None:
        """Prepare the backend for use (open connections, create schema)."""

    async def close(self) -> None:
        """Release backend resources."""

    @abstractmethod
    async def get_all(self) -> list[Task]:
        """
        Get all stored tasks.

        Returns:
            List of tasks

        Raises:
            StorageError: If the backend cannot be read
        """
        pass

    @abstractmethod
    async def get_by_id(self, task_id: str) -> Task | None:
        """
        Get a single task by ID.

        Args:
            task_id: Task ID

        Returns:
            Task object, or None if absent
        """
        pass

    @abstractmethod
    async def create(self, data: TaskCreate) -> Task:
        """
        Create a new task.

        The backend assigns the id and timestamps, sets completed_at when the
        task is created as completed, and, when no order is given, places the
        task after the last task of its status.

        Args:
            data: Task input

        Returns:
            Created task

        Raises:
            StorageError: If the task cannot be stored
        """
        pass

    @abstractmethod
    async def update(self, task_id: str, updates: Mapping[str, Any]) -> Task:
        """
        Apply a partial update to a task.

        Args:
            task_id: Task ID
            updates: Field names mapped to new values

        Returns:
            Updated task

        Raises:
            TaskNotFoundError: If task not found
            ValidationError: If the payload is malformed
            StorageError: If the task cannot be stored
        """
        pass

    @abstractmethod
    async def delete(self, task_id: str) -> None:
        """
        Delete a task.

        Args:
            task_id: Task ID

        Raises:
            TaskNotFoundError: If task not found
        """
        pass

    @abstractmethod
    async def bulk_update(self, tasks: list[Task]) -> list[Task]:
        """
        Replace a batch of tasks wholesale, inserting those not yet stored.

        The batch is applied all-or-nothing: on failure no task of the batch
        is changed.

        Args:
            tasks: Tasks to store

        Returns:
            Stored tasks with refreshed updated_at

        Raises:
            StorageError: If the batch cannot be stored
        """
        pass

    @abstractmethod
    async def get_by_status(self, status: TaskStatus) -> list[Task]:
        """Get tasks with the given status."""
        pass

    @abstractmethod
    async def get_by_date_range(self, start: datetime, end: datetime) -> list[Task]:
        """Get tasks created within ``[start, end]``."""
        pass

    @abstractmethod
    async def clear(self) -> None:
        """Delete all tasks."""
        pass
