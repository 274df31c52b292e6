from datetime import datetime

from commands.dispatcher import CommandDispatcher
from commands.parser import parse
from storage.task_store import Snapshot
from todo_agent.models import Preferences, Task


def _snap(*tasks, projects=()):
    return Snapshot(version=1, tasks=tuple(tasks), projects=tuple(projects))


def _run(text, snap, now, prefs=None):
    return CommandDispatcher().dispatch(parse(text, now), snap, prefs or Preferences(), now)


def test_tick_affects_only_first_match(now):
    a, b, c = Task(title="Buy milk"), Task(title="Oat milk"), Task(title="Bread")
    result = _run("tick milk", _snap(a, b, c), now)

    assert result.message == 'Completed 1 task(s) matching "milk"'
    assert result.affected == [a.id]
    assert [t.status for t in result.snapshot.tasks] == ["completed", "pending", "pending"]


def test_tick_all(now):
    result = _run("tick all MILK", _snap(Task(title="Buy milk"), Task(title="Oat milk")), now)
    assert result.message == 'Completed 2 task(s) matching "MILK"'
    assert all(t.done for t in result.snapshot.tasks)


def test_no_match_leaves_snapshot_alone(now):
    snap = _snap(Task(title="Buy milk"))
    result = _run("tick bread", snap, now)
    assert result.snapshot is snap
    assert result.message == 'No matching incomplete tasks found for "bread"'
    assert _run("delete bread", snap, now).message == 'No matching tasks found for "bread"'


def test_delete_first_match(now):
    a, b = Task(title="Buy milk"), Task(title="Oat milk")
    result = _run("delete milk", _snap(a, b), now)
    assert [t.id for t in result.snapshot.tasks] == [b.id]


def test_add_registers_project(now):
    result = _run("add slides to launch project", _snap(projects=["home"]), now)
    assert result.message == "Added task: slides"
    assert result.snapshot.projects == ("home", "launch")
    assert result.snapshot.tasks[0].project == "launch"


def test_add_with_conflict_note(now):
    cmd = parse("add call with bank", now).model_copy(update={"due": datetime(2024, 5, 15, 10, 30)})
    existing = Task(title="Standup", due_date=datetime(2024, 5, 15, 10, 0))
    result = CommandDispatcher().dispatch(cmd, _snap(existing), Preferences(), now)
    assert result.message.startswith("Added task: call with bank (overlaps \"Standup\"")
    assert result.data["conflict"].has_conflict


def test_archive_completed(now):
    done = Task(title="Old", status="completed")
    result = _run("archive completed", _snap(done, Task(title="New")), now)
    assert [t.status for t in result.snapshot.tasks] == ["archived", "pending"]


def test_tag_priority_due(now):
    snap = _snap(Task(title="Gym"))
    assert _run("tag gym as fitness", snap, now).snapshot.tasks[0].tags == ["fitness"]
    assert _run("priority gym high", snap, now).message == 'Set priority to "high" for 1 task(s)'
    due = _run("due tomorrow gym", snap, now)
    assert due.snapshot.tasks[0].due_date == datetime(2024, 5, 16, 23, 59, 59)


def test_snooze_and_repeat(now):
    snap = _snap(Task(title="Report", due_date=datetime(2024, 5, 15, 17, 0)), Task(title="Plants"))
    snoozed = _run("snooze report 2 days", snap, now)
    assert snoozed.snapshot.tasks[0].due_date == datetime(2024, 5, 17, 17, 0)

    repeated = _run("repeat daily plants", snap, now)
    plants = repeated.snapshot.tasks[1]
    assert repeated.message == "Set recurring schedule for 1 task(s)"
    assert plants.recurring.type == "daily"
    assert plants.due_date == datetime(2024, 5, 15, 23, 59, 59)


def test_relative_reminder_needs_due_date(now):
    snap = _snap(Task(title="Report"), Task(title="Report draft", due_date=datetime(2024, 5, 16, 12)))
    result = _run("remind me 2 hours before report", snap, now)
    assert result.affected == [snap.tasks[1].id]
    assert result.snapshot.tasks[1].reminders[0].time == datetime(2024, 5, 16, 10)

    missing = _run("remind me 2 hours before report", _snap(Task(title="Report")), now)
    assert missing.message == 'No matching tasks with a due date found for "report"'


def test_subtasks(now):
    snap = _snap(Task(title="Report"))
    added = _run("add subtask outline to report", snap, now)
    assert [s.text for s in added.snapshot.tasks[0].subtasks] == ["outline"]

    ticked = _run("tick subtask outline", added.snapshot, now)
    assert ticked.snapshot.tasks[0].subtasks[0].done


def test_preferences_commands(now):
    snap = _snap()
    assert _run("dark mode", snap, now).preferences.dark_mode
    assert _run("show work", snap, now).preferences.filter_tag == "work"
    assert _run("show all", snap, now, Preferences(filter_tag="work")).preferences.filter_tag is None
    sort = _run("sort by due date", snap, now)
    assert sort.message == "Sorting tasks by due date"
    assert sort.preferences.sort_criteria == "dueDate"
    assert _run("calendar", snap, now).preferences.show_calendar


def test_projects_and_summary(now):
    created = _run("create project Launch", _snap(), now)
    assert created.snapshot.projects == ("Launch",)
    assert _run("list projects", created.snapshot, now).message == "Projects: Launch"

    summary = _run("summarize today", _snap(Task(title="Report", due_date=datetime(2024, 5, 15, 17))), now)
    assert summary.message.startswith("Today: 1 task(s)")
