"""
Week filtering and report generation over in-memory task collections.

Business rules:
1. Incomplete tasks (upcoming, in-progress, on-hold) are always visible,
   whatever week is selected.
2. Completed tasks are visible only in the week their completed_at falls in.
3. Showing all tasks bypasses the week window entirely.

All functions are pure. Inputs are never mutated and every result is a new list.
"""

from collections.abc import Iterable, Sequence
from datetime import date, datetime
from enum import Enum

from .models import (
    DailyReport,
    IncompleteTasks,
    Task,
    TaskPriority,
    TaskStatistics,
    TaskStatus,
    WeeklyReport,
    WeekInfo,
)
from .weeks import (
    current_week_info,
    day_name,
    is_in_week,
    is_same_day,
    next_week,
    previous_week,
    week_days,
)


class WeekFilter(str, Enum):
    """Week selector used by the task board."""

    THIS_WEEK = "this-week"
    LAST_WEEK = "last-week"
    NEXT_WEEK = "next-week"
    ALL = "all"


def week_info_for_filter(week_filter: WeekFilter, today: date | None = None) -> WeekInfo:
    """
    Resolve a week filter to concrete week information.

    ``ALL`` resolves to the current week; callers bypass the window instead.
    """
    current = current_week_info(today)
    if week_filter == WeekFilter.NEXT_WEEK:
        return next_week(current)
    if week_filter == WeekFilter.LAST_WEEK:
        return previous_week(current)
    return current


def _visible_in_week(task: Task, week: WeekInfo) -> bool:
    if task.status != TaskStatus.COMPLETED:
        return True
    # A completed task without completed_at is hidden rather than guessed at
    if task.completed_at is None:
        return False
    return is_in_week(task.completed_at, week)


def filter_by_week(
    tasks: Iterable[Task], week: WeekInfo, show_all: bool = False
) -> list[Task]:
    """
    Filter tasks for display in a week.

    Args:
        tasks: Tasks to filter
        week: Selected week
        show_all: If True, return every task

    Returns:
        Incomplete tasks plus tasks completed within the week
    """
    if show_all:
        return list(tasks)
    return [task for task in tasks if _visible_in_week(task, week)]


def filter_by_week_filter(
    tasks: Iterable[Task], week_filter: WeekFilter, today: date | None = None
) -> list[Task]:
    """Filter tasks by a relative week selector."""
    week = week_info_for_filter(week_filter, today)
    return filter_by_week(tasks, week, show_all=week_filter == WeekFilter.ALL)


def sort_by_order(tasks: Iterable[Task]) -> list[Task]:
    return sorted(tasks, key=lambda task: task.order)


def sort_by_completed_date(tasks: Iterable[Task]) -> list[Task]:
    """Sort by completion time, most recent first; tasks without one go last."""
    tasks = list(tasks)
    done = [task for task in tasks if task.completed_at is not None]
    pending = [task for task in tasks if task.completed_at is None]
    done.sort(key=lambda task: task.completed_at, reverse=True)
    return done + pending


def sort_by_created_date(tasks: Iterable[Task]) -> list[Task]:
    """Sort by creation time, most recent first."""
    return sorted(tasks, key=lambda task: task.created_at, reverse=True)


def sort_by_deadline(tasks: Iterable[Task]) -> list[Task]:
    """Sort by deadline, nearest first; tasks without a deadline go last."""
    return sorted(
        tasks,
        key=lambda task: (task.deadline is None, task.deadline or date.min),
    )


def sort_by_priority(tasks: Iterable[Task]) -> list[Task]:
    """Sort by priority, urgent first."""
    return sorted(tasks, key=lambda task: task.priority.rank)


def group_by_status(tasks: Iterable[Task]) -> dict[TaskStatus, list[Task]]:
    """
    Partition tasks into the four status buckets.

    Returns:
        Mapping with every status as a key; incomplete buckets are sorted by
        order, the completed bucket by completion time (most recent first)
    """
    groups: dict[TaskStatus, list[Task]] = {status: [] for status in TaskStatus}
    for task in tasks:
        groups[task.status].append(task)

    return {
        TaskStatus.UPCOMING: sort_by_order(groups[TaskStatus.UPCOMING]),
        TaskStatus.IN_PROGRESS: sort_by_order(groups[TaskStatus.IN_PROGRESS]),
        TaskStatus.COMPLETED: sort_by_completed_date(groups[TaskStatus.COMPLETED]),
        TaskStatus.ON_HOLD: sort_by_order(groups[TaskStatus.ON_HOLD]),
    }


def filter_by_tags(tasks: Iterable[Task], tags: Sequence[str]) -> list[Task]:
    """Keep tasks carrying every requested tag."""
    if not tags:
        return list(tasks)
    return [task for task in tasks if all(tag in task.tags for tag in tags)]


def filter_by_priority(
    tasks: Iterable[Task], priorities: Sequence[TaskPriority | str]
) -> list[Task]:
    if not priorities:
        return list(tasks)
    wanted = {TaskPriority(priority) for priority in priorities}
    return [task for task in tasks if task.priority in wanted]


def search_tasks(tasks: Iterable[Task], query: str) -> list[Task]:
    """Case-insensitive substring search over content and tags."""
    if not query.strip():
        return list(tasks)

    needle = query.lower()
    return [
        task
        for task in tasks
        if needle in task.content.lower()
        or any(needle in tag.lower() for tag in task.tags)
    ]


def get_all_tags(tasks: Iterable[Task]) -> list[str]:
    """Get every distinct tag, sorted."""
    return sorted({tag for task in tasks for tag in task.tags})


def _is_overdue(task: Task, today: date) -> bool:
    return (
        task.status != TaskStatus.COMPLETED
        and task.deadline is not None
        and task.deadline < today
    )


def get_overdue_tasks(tasks: Iterable[Task], today: date | None = None) -> list[Task]:
    """Incomplete tasks whose deadline is strictly before today."""
    reference = today or date.today()
    return [task for task in tasks if _is_overdue(task, reference)]


def get_tasks_due_today(tasks: Iterable[Task], today: date | None = None) -> list[Task]:
    reference = today or date.today()
    return [
        task
        for task in tasks
        if task.status != TaskStatus.COMPLETED and task.deadline == reference
    ]


def get_tasks_due_this_week(
    tasks: Iterable[Task], today: date | None = None
) -> list[Task]:
    week = current_week_info(today)
    return [
        task
        for task in tasks
        if task.status != TaskStatus.COMPLETED
        and task.deadline is not None
        and is_in_week(task.deadline, week)
    ]


def generate_daily_report(tasks: Iterable[Task], day: date | datetime) -> DailyReport:
    """
    Build the report for one calendar day.

    Args:
        tasks: All tasks
        day: Day to report on; time of day is ignored

    Returns:
        DailyReport with tasks created and completed that day
    """
    report_day = day.date() if isinstance(day, datetime) else day
    tasks = list(tasks)

    return DailyReport(
        date=report_day,
        day_of_week=day_name(report_day),
        created_tasks=[task for task in tasks if is_same_day(task.created_at, report_day)],
        completed_tasks=[
            task
            for task in tasks
            if task.status == TaskStatus.COMPLETED
            and task.completed_at is not None
            and is_same_day(task.completed_at, report_day)
        ],
    )


def generate_weekly_report(tasks: Iterable[Task], week: WeekInfo) -> WeeklyReport:
    """
    Build the weekly report.

    Daily reports cover Monday to Sunday of ``week``. Incomplete groups are
    drawn from the whole collection, since incomplete tasks are always shown.
    """
    tasks = list(tasks)
    groups = group_by_status(tasks)

    return WeeklyReport(
        week_info=week,
        daily_reports=[generate_daily_report(tasks, day) for day in week_days(week)],
        incomplete_tasks=IncompleteTasks(
            upcoming=groups[TaskStatus.UPCOMING],
            in_progress=groups[TaskStatus.IN_PROGRESS],
            on_hold=groups[TaskStatus.ON_HOLD],
        ),
    )


def calculate_statistics(
    tasks: Iterable[Task], today: date | None = None
) -> TaskStatistics:
    """
    Calculate counts by status, completion rate and overdue count.

    Returns:
        TaskStatistics; completion_rate is a percentage and 0 for no tasks
    """
    tasks = list(tasks)
    reference = today or date.today()
    counts = {status: 0 for status in TaskStatus}
    for task in tasks:
        counts[task.status] += 1

    total = len(tasks)
    completed = counts[TaskStatus.COMPLETED]

    return TaskStatistics(
        total=total,
        completed=completed,
        upcoming=counts[TaskStatus.UPCOMING],
        in_progress=counts[TaskStatus.IN_PROGRESS],
        on_hold=counts[TaskStatus.ON_HOLD],
        completion_rate=(completed / total * 100) if total > 0 else 0.0,
        overdue=sum(1 for task in tasks if _is_overdue(task, reference)),
    )
