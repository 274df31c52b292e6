from datetime import datetime, timedelta

from scheduling.conflicts import detect_conflicts, overlaps
from scheduling.recurrence import apply_recurrence, next_due, regenerate, suggest_recurring
from scheduling.scheduler import Scheduler
from scheduling.summary import summarize
from todo_agent.models import RecurrenceRule, Reminder, Subtask, Task


def _at(hour, minute=0, day=15):
    return datetime(2024, 5, day, hour, minute)


def test_overlap_rules():
    assert overlaps((_at(10), _at(11)), (_at(10, 30), _at(11, 30)))
    assert overlaps((_at(10, 30), _at(11, 30)), (_at(10), _at(11)))
    assert overlaps((_at(9), _at(12)), (_at(10), _at(11)))
    assert not overlaps((_at(11), _at(12)), (_at(10), _at(11)))


def test_conflict_when_candidate_contains_existing():
    existing = Task(title="Standup", due_date=_at(10), estimated_duration_min=60)
    candidate = Task(title="Workshop", due_date=_at(9, 30), estimated_duration_min=120)

    result = detect_conflicts(candidate, [existing])
    assert result.has_conflict
    assert [t.id for t in result.conflicting_tasks] == [existing.id]
    assert result.suggested_time == _at(11, 30)


def test_no_conflict_for_adjacent_done_or_undated():
    existing = Task(title="Standup", due_date=_at(10))
    adjacent = Task(title="Review", due_date=_at(11))
    assert not detect_conflicts(adjacent, [existing]).has_conflict

    done = existing.with_status("completed")
    clash = Task(title="Call", due_date=_at(10, 15))
    assert not detect_conflicts(clash, [done]).has_conflict
    assert not detect_conflicts(Task(title="Someday"), [existing]).has_conflict


def test_candidate_ignores_itself():
    task = Task(title="Standup", due_date=_at(10))
    assert not detect_conflicts(task, [task]).has_conflict


def test_daily_interval():
    rule = RecurrenceRule(type="daily", interval=2)
    assert next_due(_at(9), rule) == _at(9, day=17)


def test_weekly_days_snap_to_following_week():
    # Wednesday, repeating Monday and Wednesday
    rule = RecurrenceRule(type="weekly", days_of_week=[3, 1])
    assert rule.days_of_week == [1, 3]
    assert next_due(_at(9), rule) == datetime(2024, 5, 27, 9, 0)


def test_monthly_clamps_day_and_end_date_stops():
    rule = RecurrenceRule(type="monthly")
    assert next_due(datetime(2024, 1, 31, 8), rule) == datetime(2024, 2, 29, 8)

    ended = RecurrenceRule(type="daily", end_date=_at(12))
    assert next_due(_at(9), ended) is None
    assert next_due(_at(9), RecurrenceRule(type="custom")) is None


def test_regenerate_completed_task(now):
    due = _at(17)
    task = Task(
        title="Water plants",
        due_date=due,
        status="completed",
        recurring=RecurrenceRule(type="daily"),
        subtasks=[Subtask(text="balcony", done=True)],
        reminders=[
            Reminder(time=due - timedelta(hours=1), type="relative", notified=True),
            Reminder(time=_at(8), type="absolute", notified=True),
        ],
    )
    nxt = regenerate(task, now)

    assert nxt.id != task.id
    assert nxt.status == "pending"
    assert nxt.due_date == _at(17, day=16)
    assert nxt.recurrence_source_id == task.id
    assert [s.done for s in nxt.subtasks] == [False]
    assert nxt.reminders[0].time == _at(16, day=16)
    assert nxt.reminders[1].time == _at(8)
    assert not any(r.notified for r in nxt.reminders)


def test_apply_recurrence_only_once(now):
    task = Task(title="Water plants", due_date=_at(17), status="completed", recurring=RecurrenceRule(type="daily"))
    first = apply_recurrence([task], now)
    assert len(first) == 2
    assert len(apply_recurrence(first, now)) == 2
    assert regenerate(task.with_status("pending"), now) is None


def test_suggest_recurring():
    tasks = [Task(title="Water plants", created_at=_at(9, day=d)) for d in (10, 11, 12)]
    tasks += [Task(title="Dentist", created_at=_at(9, day=1)), Task(title="Taxes", created_at=_at(9, day=2))]
    suggestions = suggest_recurring(tasks)
    assert [(s.task.title, s.pattern) for s in suggestions] == [("Water plants", "daily")]


def test_scheduler_skips_busy_slot(now):
    busy = Task(title="Standup", due_date=_at(10))
    report = Task(title="Report", tags=["work"])
    assert Scheduler().suggest_time(report, [busy], now) == _at(10, day=16)
    assert Scheduler().suggest_time(Task(title="Gym", tags=["fitness"]), [], now) == _at(7)


def test_summary_today(now):
    tasks = [
        Task(title="Report", due_date=_at(17), priority="high", tags=["work"], estimated_duration_min=90),
        Task(title="Milk", due_date=_at(18)),
        Task(title="Done", due_date=_at(12), status="completed"),
        Task(title="Later", due_date=_at(9, day=20)),
    ]
    s = summarize(tasks, "today", now=now)
    assert s.total_tasks == 2
    assert [t.title for t in s.high_priority] == ["Report"]
    assert set(s.by_tag) == {"work", "general"}
    assert s.minutes_required == 150

    assert summarize(tasks, "today", include_completed=True, now=now).completed_tasks == 1
    assert summarize(tasks, "week", now=now).total_tasks == 3
