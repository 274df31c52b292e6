"""Time-window overlap detection between scheduled tasks.

A task occupies ``[start, start + duration)`` where ``start`` is its explicit
start time or, failing that, its due date. Tasks without a due date are
unscheduled and never conflict.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Iterable, List, Optional, Tuple

from todo_agent.models import DEFAULT_DURATION_MIN, Task


@dataclass(frozen=True)
class ConflictResult:
    has_conflict: bool
    conflicting_tasks: List[Task] = field(default_factory=list)
    suggested_time: Optional[datetime] = None


def window(task: Task, default_duration_min: int = DEFAULT_DURATION_MIN) -> Tuple[datetime, datetime]:
    start = task.effective_start
    return start, start + timedelta(minutes=task.duration_min(default_duration_min))


def _schedulable(task: Task) -> bool:
    return task.due_date is not None and not task.done and task.status != "archived"


def overlaps(cand: Tuple[datetime, datetime], existing: Tuple[datetime, datetime]) -> bool:
    c_start, c_end = cand
    e_start, e_end = existing
    return (
        (e_start <= c_start < e_end)
        or (e_start < c_end <= e_end)
        or (c_start <= e_start and c_end >= e_end)
    )


def _conflicting(candidate: Task, existing: List[Task], default_duration_min: int) -> List[Task]:
    cand = window(candidate, default_duration_min)
    return [t for t in existing if overlaps(cand, window(t, default_duration_min))]


def detect_conflicts(
    candidate: Task,
    existing: Iterable[Task],
    default_duration_min: int = DEFAULT_DURATION_MIN,
) -> ConflictResult:
    if candidate.due_date is None:
        return ConflictResult(has_conflict=False)

    others = [t for t in existing if t.id != candidate.id and _schedulable(t)]
    conflicting = _conflicting(candidate, others, default_duration_min)
    if not conflicting:
        return ConflictResult(has_conflict=False)

    duration = candidate.duration_min(default_duration_min)
    return ConflictResult(
        has_conflict=True,
        conflicting_tasks=conflicting,
        suggested_time=next_available_slot(candidate, others, duration),
    )


def next_available_slot(candidate: Task, existing: List[Task], duration_min: int) -> datetime:
    """First gap after the candidate's window that fits ``duration_min``.

    Falls back to the end of the latest window when no gap exists.
    """
    start = candidate.due_date or datetime.now()
    duration = timedelta(minutes=duration_min)

    ordered = sorted(existing, key=lambda t: t.effective_start)
    if not ordered:
        return start

    if not _conflicting(candidate, ordered, duration_min):
        return start

    current_end = start + duration
    for task in ordered:
        task_start, task_end = window(task, duration_min)
        if current_end + duration <= task_start:
            trial = candidate.model_copy(update={"start_time": current_end, "due_date": current_end})
            if not _conflicting(trial, ordered, duration_min):
                return current_end
        current_end = max(current_end, task_end)

    return current_end
