"""Configuration constants for task management functionality."""

import os
from dataclasses import dataclass, field

# Storage Configuration
DEFAULT_DATA_DIR = os.path.expanduser("~/.weekly-todo")
DEFAULT_DATABASE_PATH = os.path.join(DEFAULT_DATA_DIR, "tasks.db")
DEFAULT_LOCAL_STORAGE_PATH = os.path.join(DEFAULT_DATA_DIR, "local-storage.json")
DEFAULT_WAL_MODE = True
DEFAULT_LOCAL_STORAGE_QUOTA = 5 * 1024 * 1024  # bytes

# Backend selection
BACKEND_SQLITE = "sqlite"
BACKEND_LOCAL = "local"
BACKEND_NOOP = "noop"
BACKEND_AUTO = "auto"
KNOWN_BACKENDS = (BACKEND_SQLITE, BACKEND_LOCAL, BACKEND_NOOP, BACKEND_AUTO)
DEFAULT_FALLBACK_ORDER = (BACKEND_SQLITE, BACKEND_LOCAL)

# Well-known local storage keys
TASKS_STORAGE_KEY = "weekly-todo-tasks"
MIGRATION_FLAG_KEY = "weekly-todo-migration-completed"
SETTINGS_STORAGE_KEY = "weekly-todo-filters"

# Database Schema Version
SCHEMA_VERSION = 1

# Task content limits (enforced at the input boundary)
MIN_CONTENT_LENGTH = 3
MAX_CONTENT_LENGTH = 500

# Environment variables
ENV_BACKEND = "WEEKLY_TODO_BACKEND"
ENV_DATABASE_PATH = "WEEKLY_TODO_DB_PATH"
ENV_LOCAL_STORAGE_PATH = "WEEKLY_TODO_LOCAL_STORAGE_PATH"
ENV_FALLBACK = "WEEKLY_TODO_FALLBACK"


@dataclass
class StorageConfig:
    """Explicit storage backend selection."""

    backend: str = BACKEND_AUTO
    database_path: str = DEFAULT_DATABASE_PATH
    local_storage_path: str | None = DEFAULT_LOCAL_STORAGE_PATH
    fallback_order: tuple[str, ...] = field(default=DEFAULT_FALLBACK_ORDER)
    interactive: bool = True
    wal_mode: bool = DEFAULT_WAL_MODE
    local_storage_quota: int = DEFAULT_LOCAL_STORAGE_QUOTA

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> "StorageConfig":
        """
        Build a configuration from environment variables.

        Args:
            environ: Mapping to read from (defaults to os.environ)

        Returns:
            StorageConfig with unset values left at their defaults
        """
        env = os.environ if environ is None else environ
        fallback = env.get(ENV_FALLBACK)
        return cls(
            backend=env.get(ENV_BACKEND, BACKEND_AUTO).strip().lower(),
            database_path=os.path.expanduser(
                env.get(ENV_DATABASE_PATH, DEFAULT_DATABASE_PATH)
            ),
            local_storage_path=os.path.expanduser(
                env.get(ENV_LOCAL_STORAGE_PATH, DEFAULT_LOCAL_STORAGE_PATH)
            ),
            fallback_order=(
                tuple(name.strip().lower() for name in fallback.split(",") if name.strip())
                if fallback
                else DEFAULT_FALLBACK_ORDER
            ),
        )
