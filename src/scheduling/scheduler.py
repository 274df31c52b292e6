from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, time, timedelta
from typing import List, Optional, Sequence

from scheduling.conflicts import detect_conflicts
from todo_agent.dates import sunday_weekday
from todo_agent.models import Task


@dataclass(frozen=True)
class WorkingPreferences:
    work_start: int = 9
    work_end: int = 18
    # 0 = Sunday; empty means every day
    typical_days: List[int] = field(default_factory=list)


class Scheduler:
    """Proposes a start time for a task from its tag and the free calendar."""

    def __init__(self, prefs: Optional[WorkingPreferences] = None):
        self.prefs = prefs or WorkingPreferences()

    def _slots_for(self, tag: str, day: datetime) -> List[time]:
        if tag == "work":
            return [time(self.prefs.work_start + 1)]
        if tag == "errand":
            return [time(15)]
        if tag == "fitness":
            return [time(7), time(18)]
        if tag == "social":
            weekend = sunday_weekday(day.date()) in (0, 6)
            return [time(12)] if weekend else [time(19)]
        return [time(self.prefs.work_start + 2)]

    def candidates(self, task: Task, now: Optional[datetime] = None) -> List[datetime]:
        now = now or datetime.now()
        tag = task.tags[0] if task.tags else "general"
        out: List[datetime] = []
        for offset in range(7):
            day = now + timedelta(days=offset)
            if self.prefs.typical_days and sunday_weekday(day.date()) not in self.prefs.typical_days:
                continue
            out.extend(datetime.combine(day.date(), slot) for slot in self._slots_for(tag, day))
        return out

    def suggest_time(self, task: Task, existing: Sequence[Task], now: Optional[datetime] = None) -> datetime:
        """First conflict-free candidate over the coming week."""
        now = now or datetime.now()
        options = self.candidates(task, now)
        for option in options:
            trial = task.model_copy(update={"due_date": option, "start_time": option})
            if not detect_conflicts(trial, existing).has_conflict:
                return option
        return options[0] if options else now
