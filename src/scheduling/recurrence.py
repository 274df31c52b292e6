from __future__ import annotations

import logging
import re
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Sequence

from todo_agent.dates import add_months, sunday_weekday
from todo_agent.models import RecurrenceRule, Reminder, Subtask, Task, new_id

logger = logging.getLogger(__name__)


def next_due(due: datetime, rule: RecurrenceRule) -> Optional[datetime]:
    """Due date of the occurrence after ``due``, or None when the rule has ended."""
    if rule.type == "daily":
        nxt = due + timedelta(days=rule.interval)
    elif rule.type == "weekly":
        nxt = due + timedelta(days=7 * rule.interval)
        if rule.days_of_week:
            current = sunday_weekday(nxt.date())
            later = [d for d in rule.days_of_week if d > current]
            if later:
                nxt += timedelta(days=later[0] - current)
            else:
                nxt += timedelta(days=7 - current + rule.days_of_week[0])
    elif rule.type == "monthly":
        nxt = add_months(due, rule.interval)
    else:
        return None

    if rule.end_date is not None and nxt > rule.end_date:
        return None
    return nxt


def _carry_reminders(task: Task, due: datetime) -> List[Reminder]:
    out: List[Reminder] = []
    for reminder in task.reminders:
        if reminder.type == "relative" and task.due_date is not None:
            offset = task.due_date - reminder.time
            out.append(Reminder(time=due - offset, type="relative"))
        else:
            # Absolute reminders keep their wall-clock time, even when that
            # time is already behind the new occurrence.
            out.append(Reminder(time=reminder.time, type=reminder.type))
    return out


def regenerate(task: Task, now: Optional[datetime] = None) -> Optional[Task]:
    """Next occurrence of a completed recurring task; the original is untouched."""
    if task.recurring is None or not task.done or task.due_date is None:
        return None

    due = next_due(task.due_date, task.recurring)
    if due is None:
        return None

    shift = due - task.due_date
    return task.model_copy(
        update={
            "id": new_id(),
            "status": "pending",
            "created_at": now or datetime.now(),
            "due_date": due,
            "start_time": task.start_time + shift if task.start_time else None,
            "subtasks": [Subtask(text=st.text) for st in task.subtasks],
            "reminders": _carry_reminders(task, due),
            "recurrence_source_id": task.id,
        }
    )


def apply_recurrence(tasks: Sequence[Task], now: Optional[datetime] = None) -> List[Task]:
    """Append the next occurrence for every completed recurring task not yet regenerated."""
    regenerated = {t.recurrence_source_id for t in tasks if t.recurrence_source_id}
    out = list(tasks)
    for task in tasks:
        if task.id in regenerated:
            continue
        nxt = regenerate(task, now)
        if nxt is not None:
            logger.info(f"Regenerated recurring task {task.title!r} for {nxt.due_date:%Y-%m-%d %H:%M}")
            out.append(nxt)
    return out


@dataclass(frozen=True)
class RecurringSuggestion:
    task: Task
    pattern: str


def _gaps_between(days: List[float], low: float, high: float) -> bool:
    return all(low <= gap <= high for gap in days)


def suggest_recurring(tasks: Sequence[Task]) -> List[RecurringSuggestion]:
    """Spot tasks that keep being re-created on a daily, weekly or monthly rhythm."""
    if len(tasks) < 5:
        return []

    groups: Dict[str, List[Task]] = defaultdict(list)
    for task in tasks:
        if task.recurring is not None:
            continue
        key = task.title.lower()
        key = re.sub(r"\d+", "X", key)
        key = re.sub(
            r"\b(?:jan|feb|mar|apr|may|jun|jul|aug|sep|oct|nov|dec|january|february|march|april"
            r"|june|july|august|september|october|november|december)\b",
            "MONTH",
            key,
        )
        key = re.sub(
            r"\b(?:monday|tuesday|wednesday|thursday|friday|saturday|sunday|mon|tue|wed|thu|fri|sat|sun)\b",
            "DAY",
            key,
        )
        groups[key.strip()].append(task)

    suggestions: List[RecurringSuggestion] = []
    for group in groups.values():
        if len(group) < 2:
            continue
        group.sort(key=lambda t: t.created_at)
        gaps = [
            abs((b.created_at - a.created_at).total_seconds()) / 86400
            for a, b in zip(group, group[1:])
        ]
        latest = group[-1]
        if len(group) >= 3 and _gaps_between(gaps, 0.5, 2):
            suggestions.append(RecurringSuggestion(latest, "daily"))
        elif _gaps_between(gaps, 6, 8):
            suggestions.append(RecurringSuggestion(latest, "weekly"))
        elif _gaps_between(gaps, 28, 32):
            suggestions.append(RecurringSuggestion(latest, "monthly"))
    return suggestions
