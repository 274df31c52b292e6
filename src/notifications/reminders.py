from __future__ import annotations

import logging
import os
import time
from datetime import datetime
from typing import Callable, List, Optional, Tuple

from integration.notifier import Notifier
from storage.task_store import Snapshot, TaskStore
from todo_agent.models import Task

logger = logging.getLogger(__name__)

REMINDER_POLL_INTERVAL_S = float(os.getenv("REMINDER_POLL_INTERVAL_S", "60"))
REMINDER_MIN_GAP_S = float(os.getenv("REMINDER_MIN_GAP_S", "5"))

NOTIFICATION_TITLE = "Task Reminder"


def mark_due_reminders(snap: Snapshot, now: datetime) -> Tuple[Snapshot, List[Task]]:
    """Flip every due, unnotified reminder to notified.

    Returns the new snapshot and the tasks whose reminders fired; the
    snapshot is returned unchanged when nothing was due.
    """
    fired: List[Task] = []
    tasks: List[Task] = []
    for task in snap.tasks:
        due = [r for r in task.reminders if not r.notified and r.time <= now]
        if not due:
            tasks.append(task)
            continue
        reminders = [
            r.model_copy(update={"notified": True}) if (not r.notified and r.time <= now) else r
            for r in task.reminders
        ]
        updated = task.model_copy(update={"reminders": reminders})
        tasks.append(updated)
        fired.append(updated)

    if not fired:
        return snap, []
    return snap.with_tasks(tasks), fired


class ReminderChecker:
    """Polls the store for reminders whose time has come.

    Checks closer together than ``min_gap_s`` are skipped unless forced with
    ``force=True`` from a caller that knows the user just came back.
    """

    def __init__(
        self,
        store: TaskStore,
        notifier: Notifier,
        min_gap_s: float = REMINDER_MIN_GAP_S,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.store = store
        self.notifier = notifier
        self.min_gap_s = min_gap_s
        self._clock = clock
        self._last_check: Optional[float] = None
        self.permission = notifier.request_permission()

    def check(self, now: Optional[datetime] = None, force: bool = False) -> List[Task]:
        tick = self._clock()
        if not force and self._last_check is not None and tick - self._last_check < self.min_gap_s:
            return []
        self._last_check = tick

        now = now or datetime.now()
        fired: List[Task] = []

        def apply(snap: Snapshot) -> Snapshot:
            updated, hits = mark_due_reminders(snap, now)
            fired.extend(hits)
            return updated

        self.store.mutate(apply)

        if self.permission == "granted":
            for task in fired:
                self.notifier.fire(NOTIFICATION_TITLE, f"Reminder for: {task.title}")
        if fired:
            logger.info(f"Fired {len(fired)} reminder(s)")
        return fired
