"""Task management module: week calendar, task storage and weekly reports."""

from .config import StorageConfig
from .exceptions import (
    StorageError,
    TaskManagementError,
    TaskNotFoundError,
    UnsupportedOperationError,
    ValidationError,
    WeekFormatError,
)
from .interfaces import TaskRepository
from .migration import MigrationCoordinator
from .models import (
    DailyReport,
    MigrationResult,
    Task,
    TaskCreate,
    TaskPriority,
    TaskStatistics,
    TaskStatus,
    WeeklyReport,
    WeekInfo,
)
from .storage import create_repository
from .task_list_manager import TaskListManager

__all__ = [
    "Task",
    "TaskCreate",
    "TaskStatus",
    "TaskPriority",
    "WeekInfo",
    "DailyReport",
    "WeeklyReport",
    "TaskStatistics",
    "MigrationResult",
    "TaskRepository",
    "StorageConfig",
    "create_repository",
    "MigrationCoordinator",
    "TaskListManager",
    "TaskManagementError",
    "TaskNotFoundError",
    "ValidationError",
    "WeekFormatError",
    "StorageError",
    "UnsupportedOperationError",
]
