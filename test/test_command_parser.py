from datetime import datetime

import pytest

from commands.parser import parse, split_add_markers


def test_add_with_markers(now):
    cmd = parse("add Buy milk #Errand !high", now)
    assert cmd.type == "add"
    assert cmd.task_text == "Buy milk"
    assert cmd.tag == "errand"
    assert cmd.priority == "high"


def test_add_markers_in_any_order():
    assert split_add_markers("report !low #work") == ("report", "work", "low")
    assert split_add_markers("call mom as family") == ("call mom", "family", None)


def test_add_to_project(now):
    cmd = parse("add slides to launch project", now)
    assert cmd.type == "add"
    assert cmd.task_text == "slides"
    assert cmd.project == "launch"


def test_add_subtask_wins_over_add(now):
    cmd = parse("add subtask outline to report", now)
    assert cmd.type == "subtask"
    assert cmd.subtask_text == "outline"
    assert cmd.parent_search == "report"


@pytest.mark.parametrize(
    "text,kind,search,all_matches",
    [
        ("tick milk", "tick", "milk", False),
        ("complete all milk", "tick", "milk", True),
        ("delete old notes", "delete", "old notes", False),
        ("remove all milk", "delete", "milk", True),
        ("archive all done stuff", "archive", "done stuff", True),
    ],
)
def test_search_commands(now, text, kind, search, all_matches):
    cmd = parse(text, now)
    assert cmd.type == kind
    assert cmd.search == search
    assert cmd.all_matches is all_matches


def test_archive_completed(now):
    cmd = parse("archive completed", now)
    assert cmd.type == "archive"
    assert cmd.completed_only and cmd.all_matches


def test_tag_and_priority(now):
    tag = parse("tag all gym as Fitness", now)
    assert (tag.type, tag.search, tag.tag, tag.all_matches) == ("tag", "gym", "fitness", True)

    prio = parse("priority taxes HIGH", now)
    assert (prio.type, prio.search, prio.priority) == ("priority", "taxes", "high")


def test_due_today_is_end_of_day(now):
    cmd = parse("due today finish report", now)
    assert cmd.type == "due"
    assert cmd.search == "finish report"
    assert cmd.due == datetime(2024, 5, 15, 23, 59, 59)


def test_due_next_weekday_on_same_weekday_is_a_week_out():
    monday = datetime(2024, 5, 13, 8, 0)
    cmd = parse("due next monday pay rent", monday)
    assert cmd.due == datetime(2024, 5, 20, 23, 59, 59)


def test_snooze(now):
    cmd = parse("snooze report 2 weeks", now)
    assert (cmd.type, cmd.search, cmd.snooze_amount, cmd.snooze_unit) == ("snooze", "report", 2, "weeks")


def test_repeat_weekly(now):
    cmd = parse("repeat weekly on monday standup", now)
    assert cmd.type == "repeat"
    assert cmd.search == "standup"
    assert cmd.recurrence.type == "weekly"
    assert cmd.recurrence.days_of_week == [1]


def test_remind_absolute(now):
    cmd = parse("remind me about report tomorrow 9am", now)
    assert cmd.type == "remind"
    assert cmd.search == "report"
    assert cmd.reminder_time == datetime(2024, 5, 16, 9, 0)


def test_remind_relative(now):
    cmd = parse("remind me 2 hours before report", now)
    assert (cmd.type, cmd.search, cmd.reminder_hours_before) == ("remind", "report", 2)


@pytest.mark.parametrize(
    "text,kind",
    [
        ("help", "help"),
        ("show calendar", "calendar"),
        ("dark mode", "dark"),
        ("light mode", "light"),
        ("list projects", "project"),
    ],
)
def test_literal_commands(now, text, kind):
    assert parse(text, now).type == kind


def test_filter_sort_summarize(now):
    assert parse("show work tasks", now).tag == "work"
    assert parse("sort by due date", now).sort_criteria == "dueDate"
    assert parse("summarize this week", now).period == "week"
    assert parse("create project Launch", now).project_name == "Launch"


def test_unknown_keeps_text(now):
    cmd = parse("  call   mom tomorrow ", now)
    assert cmd.type == "unknown"
    assert cmd.confidence == 0.0
    assert cmd.task_text == "call mom tomorrow"
