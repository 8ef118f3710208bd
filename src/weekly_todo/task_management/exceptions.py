"""Custom exceptions for task management functionality."""


class TaskManagementError(Exception):
    """Base exception for task management errors."""

    pass


class TaskNotFoundError(TaskManagementError):
    """Exception raised when a task is not found."""

    pass


class ValidationError(TaskManagementError):
    """Exception raised for malformed input payloads."""

    pass


class WeekFormatError(ValidationError):
    """Exception raised when an ISO week string cannot be parsed."""

    pass


class UnsupportedOperationError(TaskManagementError):
    """Exception raised when a backend does not support an operation."""

    pass


class StorageError(TaskManagementError):
    """Exception raised for underlying storage failures."""

    pass


class DatabaseError(StorageError):
    """Exception raised for database related errors."""

    pass


class StorageQuotaExceededError(StorageError):
    """Exception raised when a write would exceed the storage quota."""

    pass


class MigrationError(TaskManagementError):
    """Exception raised when the storage migration fails."""

    pass


class ConfigurationError(TaskManagementError):
    """Exception raised for invalid storage configuration."""

    pass
