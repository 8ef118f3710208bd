"""Data models for task management functionality."""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, fields, replace
from datetime import date, datetime
from enum import Enum
from typing import Any
from uuid import uuid4

from .config import MAX_CONTENT_LENGTH, MIN_CONTENT_LENGTH
from .exceptions import MigrationError, ValidationError


class TaskStatus(str, Enum):
    """Task status enumeration."""

    UPCOMING = "upcoming"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    ON_HOLD = "on-hold"


class TaskPriority(str, Enum):
    """Task priority enumeration."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"

    @property
    def rank(self) -> int:
        """Sort rank, urgent first."""
        return _PRIORITY_RANK[self]


_PRIORITY_RANK = {
    TaskPriority.URGENT: 0,
    TaskPriority.HIGH: 1,
    TaskPriority.MEDIUM: 2,
    TaskPriority.LOW: 3,
}

# Fields a legacy record must carry with a non-empty value
REQUIRED_RECORD_FIELDS = ("id", "content", "status")

# Never overwritten by an update payload
IMMUTABLE_FIELDS = frozenset({"id", "created_at", "updated_at"})


def to_local_naive(value: datetime) -> datetime:
    """Convert an aware datetime to naive local time; naive values pass through."""
    if value.tzinfo is not None:
        return value.astimezone().replace(tzinfo=None)
    return value


def parse_timestamp(value: str | datetime) -> datetime:
    """
    Parse an ISO-8601 timestamp into a naive local datetime.

    Args:
        value: ISO string (``Z`` suffix accepted) or datetime

    Returns:
        Naive local datetime

    Raises:
        ValidationError: If the value cannot be parsed
    """
    if isinstance(value, datetime):
        return to_local_naive(value)
    try:
        parsed = datetime.fromisoformat(value)
    except (TypeError, ValueError) as e:
        raise ValidationError(f"Invalid timestamp: {value!r}") from e
    return to_local_naive(parsed)


def parse_date(value: str | date) -> date:
    """Parse a calendar date from a date, datetime or ISO string."""
    if isinstance(value, datetime):
        return to_local_naive(value).date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(value)
    except (TypeError, ValueError):
        return parse_timestamp(value).date()


def format_timestamp(value: datetime) -> str:
    """Format a timestamp at fixed microsecond precision so string order is time order."""
    return value.isoformat(timespec="microseconds")


def coerce_status(value: Any) -> TaskStatus:
    try:
        return TaskStatus(value)
    except ValueError as e:
        raise ValidationError(f"Invalid task status: {value!r}") from e


def coerce_priority(value: Any) -> TaskPriority:
    try:
        return TaskPriority(value)
    except ValueError as e:
        raise ValidationError(f"Invalid task priority: {value!r}") from e


def validate_content(content: str) -> str:
    """
    Validate task content at the input boundary.

    Args:
        content: Raw task text

    Returns:
        Stripped content

    Raises:
        ValidationError: If content length is outside the allowed range
    """
    if not isinstance(content, str):
        raise ValidationError(f"Task content must be a string, got {content!r}")
    text = content.strip()
    if not MIN_CONTENT_LENGTH <= len(text) <= MAX_CONTENT_LENGTH:
        raise ValidationError(
            f"Task content must be {MIN_CONTENT_LENGTH}-{MAX_CONTENT_LENGTH} characters"
        )
    return text


def coerce_tags(value: Any) -> list[str]:
    """Copy a tag sequence, rejecting bare strings and non-string tags."""
    if value is None:
        return []
    if not isinstance(value, (list, tuple)) or not all(
        isinstance(tag, str) for tag in value
    ):
        raise ValidationError(f"Task tags must be a list of strings, got {value!r}")
    return list(value)


def coerce_order(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"Task order must be an integer, got {value!r}")
    return value


def is_valid_record(data: Any) -> bool:
    """Check that a raw record has non-empty id, content and status."""
    return isinstance(data, Mapping) and all(
        data.get(key) for key in REQUIRED_RECORD_FIELDS
    )


@dataclass
class Task:
    """Represents a task item."""

    id: str
    content: str
    status: TaskStatus
    priority: TaskPriority
    created_at: datetime
    updated_at: datetime
    deadline: date | None = None
    tags: list[str] = field(default_factory=list)
    completed_at: datetime | None = None
    order: int = 0
    user_id: str | None = None

    @property
    def is_completed(self) -> bool:
        return self.status == TaskStatus.COMPLETED

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the camelCase record layout used by local storage."""
        return {
            "id": self.id,
            "content": self.content,
            "status": self.status.value,
            "priority": self.priority.value,
            "deadline": self.deadline.isoformat() if self.deadline else None,
            "tags": list(self.tags),
            "createdAt": format_timestamp(self.created_at),
            "completedAt": (
                format_timestamp(self.completed_at) if self.completed_at else None
            ),
            "updatedAt": format_timestamp(self.updated_at),
            "userId": self.user_id,
            "order": self.order,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Task":
        """
        Build a task from a camelCase record.

        Args:
            data: Record as produced by ``to_dict``

        Returns:
            Task object

        Raises:
            ValidationError: If required fields are missing or malformed
        """
        if not isinstance(data, Mapping):
            raise ValidationError("Task record must be an object")

        missing = [key for key in REQUIRED_RECORD_FIELDS if not data.get(key)]
        if missing:
            raise ValidationError(
                f"Task record missing required fields: {', '.join(missing)}"
            )

        tags = data.get("tags") or []
        if not isinstance(tags, list):
            raise ValidationError(f"Task {data['id']} has invalid tags: {tags!r}")

        order = data.get("order", 0)
        if isinstance(order, bool) or not isinstance(order, (int, float)):
            raise ValidationError(f"Task {data['id']} has invalid order: {order!r}")

        created_at = (
            parse_timestamp(data["createdAt"]) if data.get("createdAt") else datetime.now()
        )

        return cls(
            id=str(data["id"]),
            content=str(data["content"]),
            status=coerce_status(data["status"]),
            priority=coerce_priority(data.get("priority") or TaskPriority.MEDIUM),
            created_at=created_at,
            updated_at=(
                parse_timestamp(data["updatedAt"]) if data.get("updatedAt") else created_at
            ),
            deadline=parse_date(data["deadline"]) if data.get("deadline") else None,
            tags=[str(tag) for tag in tags],
            completed_at=(
                parse_timestamp(data["completedAt"]) if data.get("completedAt") else None
            ),
            order=int(order),
            user_id=data.get("userId"),
        )


_TASK_FIELDS = frozenset(f.name for f in fields(Task))


@dataclass
class TaskCreate:
    """Input for creating a task; generated fields are assigned by the backend."""

    content: str
    status: TaskStatus = TaskStatus.UPCOMING
    priority: TaskPriority = TaskPriority.MEDIUM
    deadline: date | None = None
    tags: list[str] = field(default_factory=list)
    user_id: str | None = None
    order: int | None = None

    def __post_init__(self) -> None:
        self.content = validate_content(self.content)
        self.status = coerce_status(self.status)
        self.priority = coerce_priority(self.priority)
        if self.deadline is not None:
            self.deadline = parse_date(self.deadline)
        self.tags = coerce_tags(self.tags)
        if self.order is not None:
            self.order = coerce_order(self.order)


def next_order(orders: Iterable[int]) -> int:
    """Order for a new task: max order in its status plus one, 0 when empty."""
    return max(orders, default=-1) + 1


def new_task(data: TaskCreate, next_order_value: int, now: datetime) -> Task:
    """
    Build a new task applying the creation rules.

    Args:
        data: Caller input
        next_order_value: Order to use when the caller gave none
        now: Creation timestamp

    Returns:
        New Task with generated id and timestamps
    """
    return Task(
        id=str(uuid4()),
        content=data.content,
        status=data.status,
        priority=data.priority,
        created_at=now,
        updated_at=now,
        deadline=data.deadline,
        tags=list(data.tags),
        completed_at=now if data.status == TaskStatus.COMPLETED else None,
        order=data.order if data.order is not None else next_order_value,
        user_id=data.user_id,
    )


def apply_update(existing: Task, updates: Mapping[str, Any], now: datetime) -> Task:
    """
    Apply a partial update to a task.

    completed_at is resolved in order: a transition into completed stamps
    ``now``, a transition out of completed clears it, and an explicit
    ``completed_at`` in the payload overrides both.

    Args:
        existing: Current stored task
        updates: Field names mapped to new values
        now: Update timestamp

    Returns:
        New Task object; ``existing`` is not modified

    Raises:
        ValidationError: If the payload names unknown fields or bad values
    """
    unknown = set(updates) - _TASK_FIELDS
    if unknown:
        raise ValidationError(f"Unknown task fields: {', '.join(sorted(unknown))}")

    changes = {k: v for k, v in updates.items() if k not in IMMUTABLE_FIELDS}
    if "content" in changes:
        changes["content"] = validate_content(changes["content"])
    if "status" in changes:
        changes["status"] = coerce_status(changes["status"])
    if "priority" in changes:
        changes["priority"] = coerce_priority(changes["priority"])
    if changes.get("deadline") is not None:
        changes["deadline"] = parse_date(changes["deadline"])
    if changes.get("completed_at") is not None:
        changes["completed_at"] = parse_timestamp(changes["completed_at"])
    if "tags" in changes:
        changes["tags"] = coerce_tags(changes["tags"])
    if "order" in changes:
        changes["order"] = coerce_order(changes["order"])

    completed_at = existing.completed_at
    new_status = changes.get("status")
    if new_status == TaskStatus.COMPLETED and not existing.is_completed:
        completed_at = now
    elif (
        new_status is not None
        and new_status != TaskStatus.COMPLETED
        and existing.is_completed
    ):
        completed_at = None

    if "completed_at" in changes:
        completed_at = changes["completed_at"]
    changes["completed_at"] = completed_at

    return replace(existing, **changes, updated_at=now)


@dataclass(frozen=True)
class WeekInfo:
    """An ISO-8601 week with its Monday start and Sunday end bounds."""

    year: int
    week: int
    start_date: datetime
    end_date: datetime


@dataclass
class DailyReport:
    """Tasks created and completed on one calendar day."""

    date: date
    day_of_week: str
    created_tasks: list[Task] = field(default_factory=list)
    completed_tasks: list[Task] = field(default_factory=list)


@dataclass
class IncompleteTasks:
    """Incomplete tasks grouped by status."""

    upcoming: list[Task] = field(default_factory=list)
    in_progress: list[Task] = field(default_factory=list)
    on_hold: list[Task] = field(default_factory=list)


@dataclass
class WeeklyReport:
    """Seven daily reports plus the incomplete task groups."""

    week_info: WeekInfo
    daily_reports: list[DailyReport]
    incomplete_tasks: IncompleteTasks


@dataclass
class TaskStatistics:
    """Aggregate counts over a task collection."""

    total: int = 0
    completed: int = 0
    upcoming: int = 0
    in_progress: int = 0
    on_hold: int = 0
    completion_rate: float = 0.0
    overdue: int = 0


@dataclass
class MigrationResult:
    """Result of the local storage migration."""

    success: bool
    migrated_count: int = 0
    error: str | None = None

    def raise_for_error(self) -> None:
        """Raise MigrationError if the migration failed."""
        if not self.success:
            raise MigrationError(self.error or "Migration failed")
