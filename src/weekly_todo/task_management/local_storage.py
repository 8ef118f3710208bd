"""Key-value storage emulating browser localStorage, and the task backend built on it."""

import asyncio
import json
import logging
import os
import tempfile
from collections.abc import Mapping
from dataclasses import replace
from datetime import datetime
from pathlib import Path
from typing import Any

from .config import DEFAULT_LOCAL_STORAGE_QUOTA, TASKS_STORAGE_KEY
from .exceptions import (
    StorageError,
    StorageQuotaExceededError,
    TaskNotFoundError,
    ValidationError,
)
from .interfaces import TaskRepository
from .models import (
    Task,
    TaskCreate,
    TaskStatus,
    apply_update,
    is_valid_record,
    new_task,
    next_order,
    to_local_naive,
)

logger = logging.getLogger(__name__)


class LocalStorage:
    """
    String key/value store with localStorage semantics.

    Items live in a single JSON object file that is rewritten atomically on
    every change, or in memory when no path is given. Writes that would grow
    the store past ``quota_bytes`` are rejected.
    """

    def __init__(
        self, path: str | None = None, quota_bytes: int = DEFAULT_LOCAL_STORAGE_QUOTA
    ) -> None:
        """
        Initialize local storage.

        Args:
            path: JSON file backing the store (None keeps items in memory)
            quota_bytes: Maximum serialized size of the store
        """
        self.path = Path(path) if path else None
        self.quota_bytes = quota_bytes
        self._memory: dict[str, str] = {}

    def _load(self) -> dict[str, str]:
        if self.path is None:
            return dict(self._memory)
        if not self.path.exists():
            return {}

        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            raise StorageError(f"Failed to read local storage {self.path}: {e}") from e

        if not isinstance(data, dict) or not all(
            isinstance(value, str) for value in data.values()
        ):
            raise StorageError(f"Local storage file {self.path} is corrupt")
        return data

    def _persist(self, items: dict[str, str]) -> None:
        """
        Write the full item set.

        Raises:
            StorageQuotaExceededError: If the payload exceeds the quota
            StorageError: If the file cannot be written
        """
        payload = json.dumps(items, ensure_ascii=False)
        size = len(payload.encode("utf-8"))
        if size > self.quota_bytes:
            raise StorageQuotaExceededError(
                f"Local storage quota exceeded: {size} > {self.quota_bytes} bytes"
            )

        if self.path is None:
            self._memory = items
            return

        tmp_path: str | None = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(
                dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
            )
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
            os.replace(tmp_path, self.path)
            tmp_path = None
        except OSError as e:
            raise StorageError(f"Failed to write local storage {self.path}: {e}") from e
        finally:
            if tmp_path is not None and os.path.exists(tmp_path):
                os.unlink(tmp_path)

    def get_item(self, key: str) -> str | None:
        return self._load().get(key)

    def set_item(self, key: str, value: str) -> None:
        items = self._load()
        items[key] = value
        self._persist(items)

    def remove_item(self, key: str) -> None:
        items = self._load()
        if key in items:
            del items[key]
            self._persist(items)

    def clear(self) -> None:
        self._persist({})

    def keys(self) -> list[str]:
        return list(self._load())

    def size_bytes(self, key: str | None = None) -> int:
        """Get the UTF-8 size of one item's value, or of the whole store."""
        items = self._load()
        if key is not None:
            return len(items.get(key, "").encode("utf-8"))
        return len(json.dumps(items, ensure_ascii=False).encode("utf-8"))


class LocalStorageTaskRepository(TaskRepository):
    """
    Task backend storing the whole collection under one local storage key.

    Every mutation rewrites the collection with a single ``set_item`` call,
    so a failed write leaves the previous collection in place.
    """

    def __init__(self, storage: LocalStorage, key: str = TASKS_STORAGE_KEY) -> None:
        self._storage = storage
        self._key = key
        self._lock = asyncio.Lock()

    async def _run(self, func: Any, *args: Any) -> Any:
        """Run a storage call, off the event loop when it touches a file."""
        if self._storage.path is None:
            return func(*args)
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, func, *args)

    def _read_tasks(self) -> list[Task]:
        raw = self._storage.get_item(self._key)
        if raw is None:
            return []

        try:
            records = json.loads(raw)
        except ValueError as e:
            raise StorageError(f"Stored tasks are not valid JSON: {e}") from e
        if not isinstance(records, list):
            raise StorageError("Stored tasks are not a list")

        try:
            return [Task.from_dict(record) for record in records]
        except ValidationError as e:
            raise StorageError(f"Corrupt task record in local storage: {e}") from e

    def _write_tasks(self, tasks: list[Task]) -> None:
        self._storage.set_item(
            self._key, json.dumps([task.to_dict() for task in tasks], ensure_ascii=False)
        )

    async def _load_tasks(self) -> list[Task]:
        async with self._lock:
            return await self._run(self._read_tasks)

    async def get_all(self) -> list[Task]:
        return await self._load_tasks()

    async def get_by_id(self, task_id: str) -> Task | None:
        for task in await self._load_tasks():
            if task.id == task_id:
                return task
        return None

    async def create(self, data: TaskCreate) -> Task:
        async with self._lock:
            tasks = await self._run(self._read_tasks)
            order = next_order(task.order for task in tasks if task.status == data.status)
            task = new_task(data, order, datetime.now())

            tasks.append(task)
            await self._run(self._write_tasks, tasks)
        logger.debug(f"Created task {task.id} in local storage")
        return task

    async def update(self, task_id: str, updates: Mapping[str, Any]) -> Task:
        async with self._lock:
            tasks = await self._run(self._read_tasks)
            for index, existing in enumerate(tasks):
                if existing.id == task_id:
                    break
            else:
                raise TaskNotFoundError(f"Task with ID {task_id} not found")

            updated = apply_update(existing, updates, datetime.now())
            tasks[index] = updated
            await self._run(self._write_tasks, tasks)
        return updated

    async def delete(self, task_id: str) -> None:
        async with self._lock:
            tasks = await self._run(self._read_tasks)
            remaining = [task for task in tasks if task.id != task_id]
            if len(remaining) == len(tasks):
                raise TaskNotFoundError(f"Task with ID {task_id} not found")
            await self._run(self._write_tasks, remaining)

    async def bulk_update(self, tasks: list[Task]) -> list[Task]:
        now = datetime.now()
        async with self._lock:
            stored = {task.id: task for task in await self._run(self._read_tasks)}
            saved = []
            for task in tasks:
                refreshed = replace(task, tags=list(task.tags), updated_at=now)
                stored[refreshed.id] = refreshed
                saved.append(refreshed)

            await self._run(self._write_tasks, list(stored.values()))
        logger.debug(f"Bulk updated {len(saved)} tasks in local storage")
        return saved

    async def get_by_status(self, status: TaskStatus) -> list[Task]:
        return [task for task in await self._load_tasks() if task.status == status]

    async def get_by_date_range(self, start: datetime, end: datetime) -> list[Task]:
        start, end = to_local_naive(start), to_local_naive(end)
        return [
            task for task in await self._load_tasks() if start <= task.created_at <= end
        ]

    async def clear(self) -> None:
        async with self._lock:
            await self._run(self._storage.remove_item, self._key)

    def get_storage_stats(self) -> dict[str, int]:
        """
        Get storage statistics.

        Returns:
            Dictionary with task_count and storage_size (bytes)
        """
        return {
            "task_count": len(self._read_tasks()),
            "storage_size": self._storage.size_bytes(self._key),
        }

    def export_tasks(self) -> str:
        """Export all tasks as pretty-printed JSON for backup."""
        return json.dumps(
            [task.to_dict() for task in self._read_tasks()], indent=2, ensure_ascii=False
        )

    def import_tasks(self, json_data: str) -> int:
        """
        Replace the stored collection from a JSON backup.

        Records missing id, content or status, or that cannot be parsed, are
        dropped.

        Args:
            json_data: JSON list of task records

        Returns:
            Number of tasks imported

        Raises:
            ValidationError: If the payload is not a JSON list
        """
        try:
            records = json.loads(json_data)
        except (TypeError, ValueError) as e:
            raise ValidationError(f"Failed to import tasks: invalid JSON ({e})") from e
        if not isinstance(records, list):
            raise ValidationError("Failed to import tasks: expected a list of tasks")

        tasks = []
        for index, record in enumerate(records):
            if not is_valid_record(record):
                logger.warning(f"Skipping task at index {index}: missing required fields")
                continue
            try:
                tasks.append(Task.from_dict(record))
            except ValidationError as e:
                logger.warning(f"Skipping task at index {index}: {e}")

        self._write_tasks(tasks)
        logger.info(f"Imported {len(tasks)} of {len(records)} tasks")
        return len(tasks)
