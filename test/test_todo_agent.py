from datetime import date, datetime

import pytest
from pydantic import ValidationError

from todo_agent.dates import add_months, calendar_grid, format_relative, next_weekday, weekday_number
from todo_agent.filters import filter_and_sort, tag_color
from todo_agent.models import RecurrenceRule, Task


def test_task_model_normalises():
    task = Task(title="  Report  ", tags=["#Work", "work", " Home "])
    assert task.title == "Report"
    assert task.tags == ["work", "home"]
    assert not task.done
    assert task.toggled().done
    assert task.toggled().toggled().status == "pending"


def test_task_model_rejects_bad_values():
    with pytest.raises(ValidationError):
        Task(title="   ")
    with pytest.raises(ValidationError):
        Task(title="x", priority="critical")
    with pytest.raises(ValidationError):
        RecurrenceRule(type="weekly", days_of_week=[7])
    with pytest.raises(ValidationError):
        RecurrenceRule(type="daily", interval=0)


def test_dump_exposes_done():
    assert Task(title="x", status="completed").model_dump()["done"] is True


def test_date_helpers():
    assert weekday_number("Sun") == 0
    assert weekday_number("friday") == 5
    wed = date(2024, 5, 15)
    assert next_weekday(wed, 3) == date(2024, 5, 22)
    assert next_weekday(wed, 3, force_next_week=False) == wed
    assert add_months(datetime(2023, 12, 31), 2) == datetime(2024, 2, 29)
    assert format_relative(datetime(2024, 5, 13, 10), datetime(2024, 5, 15, 10)) == "2 days ago"
    assert format_relative(datetime(2024, 5, 15, 10), datetime(2024, 5, 15, 10)) == "just now"


def test_calendar_grid_shapes():
    # February 2015 starts on a Sunday and fills exactly four weeks
    assert len(calendar_grid(2015, 2)) == 4
    grid = calendar_grid(2024, 6)
    assert grid[0][:6] == [None] * 6
    assert grid[0][6] == date(2024, 6, 1)
    assert len(grid) == 6


def _tasks():
    return [
        Task(title="banana", priority="low", created_at=datetime(2024, 5, 1), tags=["errand"]),
        Task(title="Apple", priority="high", created_at=datetime(2024, 5, 2), due_date=datetime(2024, 6, 1)),
        Task(title="cherry", created_at=datetime(2024, 5, 3), due_date=datetime(2024, 5, 20), status="completed"),
        Task(title="date", created_at=datetime(2024, 5, 4), due_date=datetime(2024, 5, 25)),
        Task(title="elder", created_at=datetime(2024, 5, 5), status="archived"),
    ]


@pytest.mark.parametrize(
    "sort_by,expected",
    [
        ("priority", ["Apple", "banana", "date", "cherry"]),
        ("dueDate", ["date", "Apple", "banana", "cherry"]),
        ("alphabetical", ["Apple", "banana", "date", "cherry"]),
        ("createdAt", ["date", "Apple", "banana", "cherry"]),
    ],
)
def test_sorting_keeps_done_last(sort_by, expected):
    assert [t.title for t in filter_and_sort(_tasks(), sort_by=sort_by)] == expected


def test_filters():
    tasks = _tasks()
    assert [t.title for t in filter_and_sort(tasks, tag="Errand")] == ["banana"]
    assert len(filter_and_sort(tasks, include_archived=True)) == 5
    assert tag_color("work") != tag_color("unknown") == tag_color("general")
