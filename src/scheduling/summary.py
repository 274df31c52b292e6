from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime, time, timedelta
from typing import Dict, List, Literal, Optional, Sequence

from todo_agent.models import DEFAULT_DURATION_MIN, Task

Period = Literal["today", "tomorrow", "week"]


@dataclass(frozen=True)
class TaskSummary:
    period: Period
    total_tasks: int
    completed_tasks: int
    high_priority: List[Task] = field(default_factory=list)
    upcoming_deadlines: List[Task] = field(default_factory=list)
    by_tag: Dict[str, List[Task]] = field(default_factory=dict)
    minutes_required: int = 0


def period_bounds(period: Period, now: datetime):
    start = datetime.combine(now.date(), time.min)
    days = {"today": 0, "tomorrow": 1, "week": 7}[period]
    end = datetime.combine(now.date() + timedelta(days=days), time.max)
    return start, end


def summarize(
    tasks: Sequence[Task],
    period: Period,
    include_completed: bool = False,
    now: Optional[datetime] = None,
) -> TaskSummary:
    """Dated tasks falling between the start of today and the end of ``period``."""
    start, end = period_bounds(period, now or datetime.now())

    selected = [
        t
        for t in tasks
        if t.due_date is not None
        and start <= t.due_date <= end
        and (include_completed or t.status == "pending")
    ]

    by_tag: Dict[str, List[Task]] = defaultdict(list)
    for t in selected:
        for tag in t.tags or ["general"]:
            by_tag[tag].append(t)

    return TaskSummary(
        period=period,
        total_tasks=len(selected),
        completed_tasks=sum(1 for t in selected if t.done),
        high_priority=[t for t in selected if t.priority == "high"],
        upcoming_deadlines=sorted(selected, key=lambda t: t.due_date),
        by_tag=dict(by_tag),
        minutes_required=sum(t.duration_min(DEFAULT_DURATION_MIN) for t in selected),
    )
