"""Command-line interface for the weekly task tracker."""

import argparse
import asyncio
import json
import logging
import sys
from dataclasses import replace

from .task_management.config import KNOWN_BACKENDS, StorageConfig
from .task_management.database import TaskDatabase
from .task_management.exceptions import TaskManagementError, TaskNotFoundError
from .task_management.filters import (
    filter_by_tags,
    group_by_status,
    search_tasks,
    sort_by_priority,
)
from .task_management.local_storage import LocalStorage
from .task_management.migration import MigrationCoordinator
from .task_management.models import (
    Task,
    TaskCreate,
    TaskPriority,
    TaskStatus,
    WeekInfo,
)
from .task_management.settings import SettingsStore
from .task_management.storage import create_repository
from .task_management.task_list_manager import TaskListManager
from .task_management.weeks import (
    current_week_info,
    format_iso_week,
    format_week_range,
    parse_iso_week,
)

LAST_VIEWED = "last-viewed"

STATUS_LABELS = {
    TaskStatus.UPCOMING: "Upcoming",
    TaskStatus.IN_PROGRESS: "In Progress",
    TaskStatus.COMPLETED: "Completed",
    TaskStatus.ON_HOLD: "On Hold",
}


def build_manager(config: StorageConfig) -> TaskListManager:
    """
    Compose the storage backend and task manager for a configuration.

    The migration coordinator is attached only when the selected backend is
    the SQLite database, since it moves local storage data into it.
    """
    repository = create_repository(config)
    migration = None
    if isinstance(repository, TaskDatabase) and config.local_storage_path:
        legacy = LocalStorage(config.local_storage_path, config.local_storage_quota)
        migration = MigrationCoordinator(legacy, repository)
    return TaskListManager(repository, migration)


def format_task(task: Task) -> str:
    """Format a task as a single display line."""
    line = f"  {task.id[:8]}  {task.content}  [{task.priority.value}]"
    if task.deadline:
        line += f"  due {task.deadline.isoformat()}"
    if task.tags:
        line += "  " + " ".join(f"#{tag}" for tag in task.tags)
    return line


def _resolve_task_id(manager: TaskListManager, prefix: str) -> str:
    matches = [task.id for task in manager.tasks if task.id.startswith(prefix)]
    if len(matches) != 1:
        raise TaskNotFoundError(
            f"No unique task matches {prefix!r} ({len(matches)} matches)"
        )
    return matches[0]


def resolve_week(value: str | None, settings: SettingsStore | None = None) -> WeekInfo:
    """
    Resolve a --week argument.

    Accepts an ISO week string, "last-viewed" for the week saved by the
    previous list or report command, or None for the current week.
    """
    if value is None:
        return current_week_info()
    if value == LAST_VIEWED:
        saved = settings.last_viewed_week() if settings is not None else None
        return parse_iso_week(saved) if saved else current_week_info()
    return parse_iso_week(value)


def _remember_week(settings: SettingsStore | None, week: WeekInfo) -> None:
    if settings is None:
        return
    state = settings.load()
    state.set_selected_week(week)
    settings.save(state)


def _print_groups(tasks: list[Task]) -> None:
    for status, group in group_by_status(tasks).items():
        print(f"{STATUS_LABELS[status]} ({len(group)})")
        for task in group:
            print(format_task(task))


async def run_command(
    args: argparse.Namespace,
    manager: TaskListManager,
    settings: SettingsStore | None = None,
) -> int:
    """
    Run one CLI command against an initialized manager.

    Args:
        args: Parsed arguments
        manager: Task manager to operate on
        settings: Optional store remembering the last viewed week

    Returns:
        Process exit code
    """
    if args.command == "add":
        task = await manager.create_task(
            TaskCreate(
                content=args.content,
                status=args.status,
                priority=args.priority,
                deadline=args.deadline,
                tags=args.tag or [],
            )
        )
        print(f"✅ Added task {task.id[:8]}: {task.content}")

    elif args.command == "list":
        week = resolve_week(args.week, settings)
        _remember_week(settings, week)
        tasks = manager.visible_tasks(week, show_all=args.all)
        if args.search:
            tasks = search_tasks(tasks, args.search)
        if args.tag:
            tasks = filter_by_tags(tasks, args.tag)
        if not args.all:
            print(f"📅 {format_iso_week(week)} ({format_week_range(week)})")
        _print_groups(tasks)

    elif args.command == "move":
        task_id = _resolve_task_id(manager, args.task_id)
        task = await manager.move_task(task_id, args.status, args.order)
        print(f"✅ Moved task {task.id[:8]} to {STATUS_LABELS[task.status]}")

    elif args.command == "done":
        task_id = _resolve_task_id(manager, args.task_id)
        task = await manager.move_task(task_id, TaskStatus.COMPLETED)
        print(f"✅ Completed task {task.id[:8]}: {task.content}")

    elif args.command == "delete":
        task_id = _resolve_task_id(manager, args.task_id)
        await manager.delete_task(task_id)
        print(f"🗑️  Deleted task {task_id[:8]}")

    elif args.command == "report":
        week = resolve_week(args.week, settings)
        _remember_week(settings, week)
        report = manager.weekly_report(week)
        print(f"📊 Weekly report {format_iso_week(week)} ({format_week_range(week)})")
        for daily in report.daily_reports:
            print(
                f"{daily.day_of_week:<10} {daily.date.isoformat()}  "
                f"created {len(daily.created_tasks)}  "
                f"completed {len(daily.completed_tasks)}"
            )
            for task in daily.completed_tasks:
                print(f"    ✔ {task.content}")
        incomplete = report.incomplete_tasks
        for label, group in (
            ("Upcoming", incomplete.upcoming),
            ("In Progress", incomplete.in_progress),
            ("On Hold", incomplete.on_hold),
        ):
            print(f"{label} ({len(group)})")
            for task in sort_by_priority(group) if args.by_priority else group:
                print(format_task(task))

    elif args.command == "stats":
        stats = manager.get_statistics()
        print(f"Total:       {stats.total}")
        print(f"Upcoming:    {stats.upcoming}")
        print(f"In Progress: {stats.in_progress}")
        print(f"On Hold:     {stats.on_hold}")
        print(f"Completed:   {stats.completed} ({stats.completion_rate:.0f}%)")
        print(f"Overdue:     {stats.overdue}")

    elif args.command == "migrate":
        result = manager.migration_result
        if result is None:
            print("✅ No migration needed.")
        else:
            result.raise_for_error()
            print(f"✅ Migrated {result.migrated_count} tasks into the database.")

    elif args.command == "export":
        print(json.dumps([task.to_dict() for task in manager.tasks], indent=2))

    return 0


def create_argument_parser() -> argparse.ArgumentParser:
    """
    Create and configure the argument parser for the CLI.

    Returns:
        Configured ArgumentParser instance
    """
    parser = argparse.ArgumentParser(
        description="Weekly TODO CLI - Track tasks and review them week by week",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  weekly-todo add "Write the quarterly summary" --priority high --tag work
  weekly-todo list                          # Tasks visible this week
  weekly-todo list --week 2026-W03          # Tasks visible in a given ISO week
  weekly-todo list --all                    # Every task
  weekly-todo done 1a2b3c4d                 # Complete a task by id prefix
  weekly-todo report --week 2026-W03        # Weekly report
  weekly-todo --backend local stats         # Use the local storage backend

Incomplete tasks are shown in every week; completed tasks only in the week
they were completed.
        """,
    )

    parser.add_argument(
        "--backend",
        choices=KNOWN_BACKENDS,
        default=None,
        help="Storage backend (default: $WEEKLY_TODO_BACKEND or auto)",
    )

    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose logging and debug information",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    add_parser = subparsers.add_parser("add", help="Create a task")
    add_parser.add_argument("content", help="Task text (3-500 characters)")
    add_parser.add_argument(
        "--status",
        choices=[status.value for status in TaskStatus],
        default=TaskStatus.UPCOMING.value,
    )
    add_parser.add_argument(
        "--priority",
        choices=[priority.value for priority in TaskPriority],
        default=TaskPriority.MEDIUM.value,
    )
    add_parser.add_argument("--deadline", metavar="YYYY-MM-DD", default=None)
    add_parser.add_argument("--tag", action="append", help="Tag (repeatable)")

    list_parser = subparsers.add_parser("list", help="List tasks visible in a week")
    list_parser.add_argument(
        "--week",
        metavar="YYYY-Www",
        default=None,
        help=f"ISO week or '{LAST_VIEWED}' (default: current week)",
    )
    list_parser.add_argument("--all", action="store_true", help="Ignore the week window")
    list_parser.add_argument("--search", default=None, help="Search content and tags")
    list_parser.add_argument("--tag", action="append", help="Require tag (repeatable)")

    move_parser = subparsers.add_parser("move", help="Move a task to another status")
    move_parser.add_argument("task_id", help="Task id or unique prefix")
    move_parser.add_argument("status", choices=[status.value for status in TaskStatus])
    move_parser.add_argument("--order", type=int, default=None)

    done_parser = subparsers.add_parser("done", help="Mark a task completed")
    done_parser.add_argument("task_id", help="Task id or unique prefix")

    delete_parser = subparsers.add_parser("delete", help="Delete a task")
    delete_parser.add_argument("task_id", help="Task id or unique prefix")

    report_parser = subparsers.add_parser("report", help="Show the weekly report")
    report_parser.add_argument(
        "--week",
        metavar="YYYY-Www",
        default=None,
        help=f"ISO week or '{LAST_VIEWED}' (default: current week)",
    )
    report_parser.add_argument(
        "--by-priority",
        action="store_true",
        help="Sort incomplete tasks by priority instead of board order",
    )

    subparsers.add_parser("stats", help="Show task statistics")
    subparsers.add_parser("migrate", help="Migrate local storage data into the database")
    subparsers.add_parser("export", help="Print all tasks as JSON")

    return parser


def handle_arguments(args: argparse.Namespace) -> StorageConfig:
    """
    Configure logging and build the storage configuration.

    Args:
        args: Parsed arguments from argparse

    Returns:
        Storage configuration for this run
    """
    if args.verbose:
        logging.basicConfig(
            level="DEBUG", format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        )
    else:
        logging.basicConfig(
            level="WARNING", format="%(asctime)s - %(levelname)s - %(message)s"
        )

    config = StorageConfig.from_env()
    if args.backend:
        config = replace(config, backend=args.backend)
    return config


def build_settings(config: StorageConfig) -> SettingsStore | None:
    """Settings live in local storage; non-interactive runs keep none."""
    if not config.interactive or not config.local_storage_path:
        return None
    return SettingsStore(
        LocalStorage(config.local_storage_path, config.local_storage_quota)
    )


async def main(args: argparse.Namespace, config: StorageConfig) -> int:
    """Main entry point for the CLI application."""
    try:
        manager = build_manager(config)
    except TaskManagementError as e:
        print(f"❌ {e}")
        return 1

    try:
        await manager.initialize()
        return await run_command(args, manager, build_settings(config))
    except TaskManagementError as e:
        print(f"❌ {e}")
        return 1
    finally:
        await manager.shutdown()


def cli_entry_with_args() -> None:
    """CLI entry point with argument parsing."""
    parser = create_argument_parser()
    args = parser.parse_args()
    config = handle_arguments(args)

    try:
        sys.exit(asyncio.run(main(args, config)))
    except KeyboardInterrupt:
        pass  # Graceful shutdown


if __name__ == "__main__":
    cli_entry_with_args()
