"""Storage backend selection and the no-op backend."""

import logging
import os
from collections.abc import Mapping
from datetime import datetime
from typing import Any

from .config import (
    BACKEND_AUTO,
    BACKEND_LOCAL,
    BACKEND_NOOP,
    BACKEND_SQLITE,
    KNOWN_BACKENDS,
    StorageConfig,
)
from .database import TaskDatabase
from .exceptions import ConfigurationError, UnsupportedOperationError
from .interfaces import TaskRepository
from .local_storage import LocalStorage, LocalStorageTaskRepository
from .models import Task, TaskCreate, TaskStatus

logger = logging.getLogger(__name__)


class NoOpTaskRepository(TaskRepository):
    """
    Backend for non-interactive contexts.

    Reads return empty results; mutations raise UnsupportedOperationError.
    """

    async def get_all(self) -> list[Task]:
        return []

    async def get_by_id(self, task_id: str) -> Task | None:
        return None

    async def create(self, data: TaskCreate) -> Task:
        raise UnsupportedOperationError("Cannot create tasks without a storage backend")

    async def update(self, task_id: str, updates: Mapping[str, Any]) -> Task:
        raise UnsupportedOperationError("Cannot update tasks without a storage backend")

    async def delete(self, task_id: str) -> None:
        raise UnsupportedOperationError("Cannot delete tasks without a storage backend")

    async def bulk_update(self, tasks: list[Task]) -> list[Task]:
        raise UnsupportedOperationError(
            "Cannot bulk update tasks without a storage backend"
        )

    async def get_by_status(self, status: TaskStatus) -> list[Task]:
        return []

    async def get_by_date_range(self, start: datetime, end: datetime) -> list[Task]:
        return []

    async def clear(self) -> None:
        pass


def is_backend_supported(name: str, config: StorageConfig) -> bool:
    """
    Check whether a backend can be used with the given configuration.

    Args:
        name: Backend name
        config: Storage configuration

    Returns:
        True if the backend is usable
    """
    if name == BACKEND_SQLITE:
        if config.database_path == ":memory:":
            return True
        directory = os.path.dirname(os.path.abspath(config.database_path))
        try:
            os.makedirs(directory, exist_ok=True)
        except OSError as e:
            logger.warning(f"SQLite backend unavailable ({directory}): {e}")
            return False
        return os.access(directory, os.W_OK)
    return name in (BACKEND_LOCAL, BACKEND_NOOP)


def _build(name: str, config: StorageConfig) -> TaskRepository:
    if name == BACKEND_SQLITE:
        return TaskDatabase(config.database_path, wal_mode=config.wal_mode)
    if name == BACKEND_LOCAL:
        return LocalStorageTaskRepository(
            LocalStorage(config.local_storage_path, config.local_storage_quota)
        )
    return NoOpTaskRepository()


def create_repository(config: StorageConfig) -> TaskRepository:
    """
    Create the storage backend for a configuration.

    Non-interactive configurations always get the no-op backend. ``auto``
    picks the first supported backend in ``config.fallback_order``.

    Args:
        config: Storage configuration

    Returns:
        Task repository instance

    Raises:
        ConfigurationError: If a backend name is unknown or none is usable
    """
    if not config.interactive:
        logger.info("Non-interactive context, using no-op storage backend")
        return NoOpTaskRepository()

    if config.backend not in KNOWN_BACKENDS:
        raise ConfigurationError(f"Unknown storage backend: {config.backend!r}")

    if config.backend != BACKEND_AUTO:
        logger.info(f"Using {config.backend} storage backend")
        return _build(config.backend, config)

    for name in config.fallback_order:
        if name not in KNOWN_BACKENDS or name == BACKEND_AUTO:
            raise ConfigurationError(f"Unknown fallback backend: {name!r}")
        if is_backend_supported(name, config):
            logger.info(f"Using {name} storage backend")
            return _build(name, config)
        logger.warning(f"{name} storage backend not supported, trying next fallback")

    raise ConfigurationError(
        f"No supported storage backend in fallback order {config.fallback_order!r}"
    )
