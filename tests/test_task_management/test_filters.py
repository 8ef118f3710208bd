"""Tests for week filtering, sorting and reports."""

import uuid
from datetime import date, datetime, timedelta
from typing import Any

import pytest

from weekly_todo.task_management.filters import (
    WeekFilter,
    calculate_statistics,
    filter_by_priority,
    filter_by_tags,
    filter_by_week,
    filter_by_week_filter,
    generate_daily_report,
    generate_weekly_report,
    get_all_tags,
    get_overdue_tasks,
    get_tasks_due_this_week,
    get_tasks_due_today,
    group_by_status,
    search_tasks,
    sort_by_completed_date,
    sort_by_created_date,
    sort_by_deadline,
    sort_by_order,
    sort_by_priority,
    week_info_for_filter,
)
from weekly_todo.task_management.models import Task, TaskPriority, TaskStatus
from weekly_todo.task_management.weeks import parse_iso_week

TODAY = date(2026, 10, 19)
WEEK = parse_iso_week("2026-W03")  # 2026-01-12 .. 2026-01-18


def make_task(content: str = "Test task", **overrides: Any) -> Task:
    """Create a task with sensible defaults."""
    created = overrides.pop("created_at", datetime(2026, 1, 10, 9, 0))
    values: dict[str, Any] = {
        "id": str(uuid.uuid4()),
        "content": content,
        "status": TaskStatus.UPCOMING,
        "priority": TaskPriority.MEDIUM,
        "created_at": created,
        "updated_at": created,
    }
    values.update(overrides)
    return Task(**values)


@pytest.fixture
def board() -> dict[str, Task]:
    """Tasks spread over every status and several weeks."""
    return {
        "upcoming": make_task("Plan sprint", order=1, tags=["work"]),
        "in_progress": make_task(
            "Write report", status=TaskStatus.IN_PROGRESS, tags=["work", "docs"]
        ),
        "on_hold": make_task("Renew passport", status=TaskStatus.ON_HOLD),
        "done_in_week": make_task(
            "Ship release",
            status=TaskStatus.COMPLETED,
            completed_at=datetime(2026, 1, 14, 16, 0),
        ),
        "done_before": make_task(
            "Old chore",
            status=TaskStatus.COMPLETED,
            completed_at=datetime(2026, 1, 4, 12, 0),
        ),
        "done_no_timestamp": make_task("Legacy done", status=TaskStatus.COMPLETED),
    }


@pytest.mark.unit
class TestFilterByWeek:
    """Test cases for the week visibility rules."""

    def test_incomplete_tasks_always_visible(self, board: dict[str, Task]) -> None:
        """Test every incomplete task passes the filter for any week."""
        incomplete = [board["upcoming"], board["in_progress"], board["on_hold"]]
        for week in (WEEK, parse_iso_week("1999-W10"), parse_iso_week("2030-W52")):
            assert filter_by_week(incomplete, week) == incomplete

    def test_completed_tasks_visible_only_in_their_week(
        self, board: dict[str, Task]
    ) -> None:
        """Test completed tasks appear only in the week of completed_at."""
        visible = filter_by_week(board.values(), WEEK)

        assert board["done_in_week"] in visible
        assert board["done_before"] not in visible

    def test_completed_without_timestamp_hidden(self, board: dict[str, Task]) -> None:
        """Test a completed task lacking completed_at never shows in a week."""
        assert board["done_no_timestamp"] not in filter_by_week(board.values(), WEEK)

    def test_result_is_subset_preserving_order(self, board: dict[str, Task]) -> None:
        """Test result is an ordered subset of the input."""
        tasks = list(board.values())
        visible = filter_by_week(tasks, WEEK)

        positions = [tasks.index(task) for task in visible]
        assert positions == sorted(positions)

    def test_show_all_returns_everything(self, board: dict[str, Task]) -> None:
        """Test show_all bypasses the week window."""
        tasks = list(board.values())
        result = filter_by_week(tasks, WEEK, show_all=True)

        assert result == tasks
        assert result is not tasks

    def test_input_not_mutated(self, board: dict[str, Task]) -> None:
        """Test the input list is left untouched."""
        tasks = list(board.values())
        snapshot = list(tasks)
        filter_by_week(tasks, WEEK)
        assert tasks == snapshot

    def test_week_boundaries_inclusive(self) -> None:
        """Test completions at the exact week bounds are visible."""
        at_start = make_task(status=TaskStatus.COMPLETED, completed_at=WEEK.start_date)
        at_end = make_task(status=TaskStatus.COMPLETED, completed_at=WEEK.end_date)
        after = make_task(
            status=TaskStatus.COMPLETED,
            completed_at=WEEK.end_date + timedelta(microseconds=1),
        )

        assert filter_by_week([at_start, at_end, after], WEEK) == [at_start, at_end]


@pytest.mark.unit
class TestWeekFilterSelector:
    """Test cases for relative week selectors."""

    def test_resolves_relative_weeks(self) -> None:
        """Test this/last/next week resolve around today."""
        assert week_info_for_filter(WeekFilter.THIS_WEEK, TODAY).week == 43
        assert week_info_for_filter(WeekFilter.LAST_WEEK, TODAY).week == 42
        assert week_info_for_filter(WeekFilter.NEXT_WEEK, TODAY).week == 44

    def test_all_bypasses_window(self) -> None:
        """Test the ALL selector keeps old completed tasks."""
        old = make_task(
            status=TaskStatus.COMPLETED, completed_at=datetime(2020, 3, 3, 10, 0)
        )

        assert filter_by_week_filter([old], WeekFilter.ALL, TODAY) == [old]
        assert filter_by_week_filter([old], WeekFilter.THIS_WEEK, TODAY) == []


@pytest.mark.unit
class TestSorting:
    """Test cases for sort helpers."""

    def test_sort_by_order(self) -> None:
        """Test ascending order."""
        tasks = [make_task(order=2), make_task(order=0), make_task(order=1)]
        assert [task.order for task in sort_by_order(tasks)] == [0, 1, 2]

    def test_sort_by_completed_date_most_recent_first(self) -> None:
        """Test completion sort is descending with missing timestamps last."""
        early = make_task(completed_at=datetime(2026, 1, 12, 8, 0))
        late = make_task(completed_at=datetime(2026, 1, 15, 8, 0))
        missing = make_task()

        assert sort_by_completed_date([missing, early, late]) == [late, early, missing]

    def test_sort_by_created_date(self) -> None:
        """Test newest created first."""
        old = make_task(created_at=datetime(2026, 1, 1, 9, 0))
        new = make_task(created_at=datetime(2026, 1, 2, 9, 0))
        assert sort_by_created_date([old, new]) == [new, old]

    def test_sort_by_deadline_none_last(self) -> None:
        """Test nearest deadline first and no deadline last."""
        none = make_task()
        soon = make_task(deadline=date(2026, 1, 13))
        later = make_task(deadline=date(2026, 2, 1))
        assert sort_by_deadline([none, later, soon]) == [soon, later, none]

    def test_sort_by_priority(self) -> None:
        """Test urgent first, low last."""
        tasks = [make_task(priority=priority) for priority in TaskPriority]
        ordered = [task.priority for task in sort_by_priority(tasks)]
        assert ordered == [
            TaskPriority.URGENT,
            TaskPriority.HIGH,
            TaskPriority.MEDIUM,
            TaskPriority.LOW,
        ]


@pytest.mark.unit
class TestGrouping:
    """Test cases for status grouping."""

    def test_all_statuses_present(self) -> None:
        """Test every status is a key even when empty."""
        groups = group_by_status([])
        assert set(groups) == set(TaskStatus)
        assert all(group == [] for group in groups.values())

    def test_groups_are_sorted(self) -> None:
        """Test incomplete groups by order and completed by recency."""
        second = make_task(order=5)
        first = make_task(order=1)
        done_old = make_task(
            status=TaskStatus.COMPLETED, completed_at=datetime(2026, 1, 12, 8, 0)
        )
        done_new = make_task(
            status=TaskStatus.COMPLETED, completed_at=datetime(2026, 1, 13, 8, 0)
        )

        groups = group_by_status([second, done_old, first, done_new])

        assert groups[TaskStatus.UPCOMING] == [first, second]
        assert groups[TaskStatus.COMPLETED] == [done_new, done_old]


@pytest.mark.unit
class TestSearchAndTags:
    """Test cases for tag, priority and text filters."""

    def test_filter_by_tags_requires_all(self, board: dict[str, Task]) -> None:
        """Test every requested tag must be present."""
        result = filter_by_tags(board.values(), ["work", "docs"])
        assert result == [board["in_progress"]]

    def test_filter_by_tags_empty_keeps_all(self, board: dict[str, Task]) -> None:
        """Test no tags means no filtering."""
        assert len(filter_by_tags(board.values(), [])) == len(board)

    def test_filter_by_priority(self) -> None:
        """Test priority filter accepts enum values and strings."""
        high = make_task(priority=TaskPriority.HIGH)
        low = make_task(priority=TaskPriority.LOW)
        assert filter_by_priority([high, low], ["high"]) == [high]

    def test_search_matches_content_and_tags(self, board: dict[str, Task]) -> None:
        """Test search is case-insensitive over content and tags."""
        assert search_tasks(board.values(), "REPORT") == [board["in_progress"]]
        assert search_tasks(board.values(), "docs") == [board["in_progress"]]

    def test_blank_search_keeps_all(self, board: dict[str, Task]) -> None:
        """Test whitespace query returns every task."""
        assert len(search_tasks(board.values(), "   ")) == len(board)

    def test_get_all_tags(self, board: dict[str, Task]) -> None:
        """Test distinct sorted tags."""
        assert get_all_tags(board.values()) == ["docs", "work"]


@pytest.mark.unit
class TestDeadlines:
    """Test cases for deadline helpers."""

    def test_overdue_excludes_completed_and_today(self) -> None:
        """Test only incomplete tasks due strictly before today are overdue."""
        overdue = make_task(deadline=TODAY - timedelta(days=1))
        due_today = make_task(deadline=TODAY)
        done = make_task(
            status=TaskStatus.COMPLETED,
            deadline=TODAY - timedelta(days=3),
            completed_at=datetime(2026, 10, 10, 9, 0),
        )

        assert get_overdue_tasks([overdue, due_today, done], TODAY) == [overdue]
        assert get_tasks_due_today([overdue, due_today, done], TODAY) == [due_today]

    def test_due_this_week(self) -> None:
        """Test deadlines inside the current week."""
        sunday = make_task(deadline=date(2026, 10, 25))
        next_monday = make_task(deadline=date(2026, 10, 26))
        assert get_tasks_due_this_week([sunday, next_monday], TODAY) == [sunday]


@pytest.mark.unit
class TestReports:
    """Test cases for daily and weekly reports."""

    def test_daily_report(self) -> None:
        """Test created and completed tasks are bucketed by calendar day."""
        created = make_task(created_at=datetime(2026, 1, 14, 23, 59))
        completed = make_task(
            status=TaskStatus.COMPLETED,
            created_at=datetime(2026, 1, 2, 9, 0),
            completed_at=datetime(2026, 1, 14, 0, 0),
        )
        reopened = make_task(
            created_at=datetime(2026, 1, 2, 9, 0),
            completed_at=datetime(2026, 1, 14, 10, 0),
        )

        report = generate_daily_report(
            [created, completed, reopened], datetime(2026, 1, 14, 12, 0)
        )

        assert report.date == date(2026, 1, 14)
        assert report.day_of_week == "Wednesday"
        assert report.created_tasks == [created]
        assert report.completed_tasks == [completed]

    def test_weekly_report_has_seven_days(self, board: dict[str, Task]) -> None:
        """Test report covers Monday to Sunday in order."""
        report = generate_weekly_report(board.values(), WEEK)

        assert report.week_info == WEEK
        assert len(report.daily_reports) == 7
        assert report.daily_reports[0].date == date(2026, 1, 12)
        assert report.daily_reports[0].day_of_week == "Monday"
        assert report.daily_reports[6].date == date(2026, 1, 18)

    def test_weekly_report_groups_incomplete(self, board: dict[str, Task]) -> None:
        """Test incomplete groups and completed-day bucketing."""
        report = generate_weekly_report(board.values(), WEEK)

        assert report.incomplete_tasks.upcoming == [board["upcoming"]]
        assert report.incomplete_tasks.in_progress == [board["in_progress"]]
        assert report.incomplete_tasks.on_hold == [board["on_hold"]]
        wednesday = report.daily_reports[2]
        assert wednesday.completed_tasks == [board["done_in_week"]]
        completed_in_week = [
            task for daily in report.daily_reports for task in daily.completed_tasks
        ]
        assert board["done_before"] not in completed_in_week


@pytest.mark.unit
class TestStatistics:
    """Test cases for aggregate statistics."""

    def test_empty_collection(self) -> None:
        """Test zero tasks gives a zero completion rate."""
        stats = calculate_statistics([], TODAY)
        assert stats.total == 0
        assert stats.completion_rate == 0.0

    def test_counts_and_rate(self, board: dict[str, Task]) -> None:
        """Test counts by status and completion percentage."""
        stats = calculate_statistics(board.values(), TODAY)

        assert stats.total == 6
        assert stats.completed == 3
        assert stats.upcoming == 1
        assert stats.in_progress == 1
        assert stats.on_hold == 1
        assert stats.completion_rate == pytest.approx(50.0)
        assert stats.overdue == 0

    def test_overdue_count(self) -> None:
        """Test overdue tasks are counted."""
        stats = calculate_statistics(
            [make_task(deadline=date(2026, 10, 1)), make_task()], TODAY
        )
        assert stats.overdue == 1
