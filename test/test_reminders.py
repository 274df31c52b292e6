from datetime import datetime

from integration.notifier import Notifier
from notifications.reminders import ReminderChecker
from todo_agent.models import Reminder, Task


class RecordingNotifier(Notifier):
    def __init__(self, permission="granted"):
        self.permission = permission
        self.sent = []

    def request_permission(self):
        return self.permission

    def fire(self, title, body):
        self.sent.append((title, body))


class FakeClock:
    def __init__(self):
        self.t = 100.0

    def __call__(self):
        return self.t


def _seed(store):
    task = Task(
        title="Report",
        reminders=[
            Reminder(time=datetime(2024, 5, 15, 9, 0)),
            Reminder(time=datetime(2024, 5, 15, 18, 0)),
        ],
    )
    store.mutate(lambda s: s.with_tasks([task]))
    return task


def test_due_reminder_fires_once(store, now):
    _seed(store)
    notifier, clock = RecordingNotifier(), FakeClock()
    checker = ReminderChecker(store, notifier, min_gap_s=5, clock=clock)

    fired = checker.check(now)
    assert [t.title for t in fired] == ["Report"]
    assert notifier.sent == [("Task Reminder", "Reminder for: Report")]
    assert [r.notified for r in store.tasks[0].reminders] == [True, False]

    clock.t += 10
    assert checker.check(now) == []
    assert len(notifier.sent) == 1


def test_checks_are_debounced(store, now):
    _seed(store)
    notifier, clock = RecordingNotifier(), FakeClock()
    checker = ReminderChecker(store, notifier, min_gap_s=5, clock=clock)

    checker.check(datetime(2024, 5, 15, 8, 0))
    clock.t += 1
    assert checker.check(now) == []
    assert checker.check(now, force=True)[0].title == "Report"


def test_denied_permission_still_marks(store, now):
    _seed(store)
    notifier = RecordingNotifier(permission="denied")
    ReminderChecker(store, notifier, clock=FakeClock()).check(now)
    assert notifier.sent == []
    assert store.tasks[0].reminders[0].notified
