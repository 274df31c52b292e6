from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional, Tuple

from commands.help import help_text
from commands.parser import Command
from scheduling.conflicts import detect_conflicts
from scheduling.summary import summarize
from storage.task_store import Snapshot
from todo_agent.dates import add_months, end_of_day
from todo_agent.models import Preferences, Reminder, Subtask, Task

logger = logging.getLogger(__name__)

SORT_LABELS = {
    "priority": "priority",
    "dueDate": "due date",
    "createdAt": "creation date",
    "alphabetical": "name",
}


@dataclass
class DispatchResult:
    snapshot: Snapshot
    message: str
    preferences: Preferences
    affected: List[str] = field(default_factory=list)
    data: Dict[str, Any] = field(default_factory=dict)


def _plural(n: int) -> str:
    return f"{n} task(s)"


def update_matching(
    tasks: Tuple[Task, ...],
    search: str,
    all_matches: bool,
    change: Callable[[Task], Task],
    eligible: Callable[[Task], bool] = lambda t: True,
) -> Tuple[List[Task], List[str]]:
    """Apply ``change`` to tasks whose title contains ``search``.

    Every task is visited so the rebuilt list is complete, but without
    ``all_matches`` only the first match is changed.
    """
    needle = search.lower()
    out: List[Task] = []
    affected: List[str] = []
    for task in tasks:
        hit = eligible(task) and needle in task.title.lower()
        if hit and (all_matches or not affected):
            out.append(change(task))
            affected.append(task.id)
        else:
            out.append(task)
    return out, affected


def _fmt(ts: datetime) -> str:
    return ts.strftime("%a %b %d, %H:%M")


class CommandDispatcher:
    """Turns a parsed command into a new snapshot plus a feedback message.

    Dispatching is pure: the current snapshot and preferences go in, their
    replacements come out, nothing is persisted here.
    """

    def __init__(self, default_duration_min: int = 60):
        self.default_duration_min = default_duration_min

    def dispatch(
        self,
        command: Command,
        snapshot: Snapshot,
        prefs: Preferences,
        now: Optional[datetime] = None,
    ) -> DispatchResult:
        now = now or datetime.now()
        handler = getattr(self, f"_do_{command.type}", None)
        if handler is None:
            return DispatchResult(snapshot, f'Sorry, I didn\'t understand "{command.task_text or ""}"', prefs)
        return handler(command, snapshot, prefs, now)

    def _do_add(self, cmd: Command, snap: Snapshot, prefs: Preferences, now: datetime) -> DispatchResult:
        reminders: List[Reminder] = []
        if cmd.reminder_time is not None:
            kind = "relative" if cmd.due is not None else "absolute"
            reminders.append(Reminder(time=cmd.reminder_time, type=kind))

        task = Task(
            title=cmd.task_text or "Task",
            tags=([cmd.tag] if cmd.tag else []) + cmd.tags,
            priority=cmd.priority,
            project=cmd.project,
            due_date=cmd.due,
            reminders=reminders,
            created_at=now,
        )

        projects = list(snap.projects)
        if task.project and task.project not in projects:
            projects.append(task.project)

        message = f"Added task: {task.title}"
        data: Dict[str, Any] = {"task": task}
        conflict = detect_conflicts(task, snap.tasks, self.default_duration_min)
        if conflict.has_conflict:
            names = ", ".join(f'"{t.title}"' for t in conflict.conflicting_tasks)
            message += f" (overlaps {names}; next free slot {_fmt(conflict.suggested_time)})"
            data["conflict"] = conflict

        updated = snap.with_tasks(snap.tasks + (task,)).with_projects(projects)
        return DispatchResult(updated, message, prefs, [task.id], data)

    def _do_tick(self, cmd, snap, prefs, now):
        tasks, affected = update_matching(
            snap.tasks,
            cmd.search or "",
            cmd.all_matches,
            lambda t: t.with_status("completed"),
            eligible=lambda t: t.status == "pending",
        )
        if not affected:
            return DispatchResult(snap, f'No matching incomplete tasks found for "{cmd.search}"', prefs)
        return DispatchResult(
            snap.with_tasks(tasks),
            f'Completed {_plural(len(affected))} matching "{cmd.search}"',
            prefs,
            affected,
        )

    def _do_delete(self, cmd, snap, prefs, now):
        _, affected = update_matching(snap.tasks, cmd.search or "", cmd.all_matches, lambda t: t)
        if not affected:
            return DispatchResult(snap, f'No matching tasks found for "{cmd.search}"', prefs)
        doomed = set(affected)
        return DispatchResult(
            snap.with_tasks(t for t in snap.tasks if t.id not in doomed),
            f'Deleted {_plural(len(affected))} matching "{cmd.search}"',
            prefs,
            affected,
        )

    def _do_archive(self, cmd, snap, prefs, now):
        if cmd.completed_only:
            affected = [t.id for t in snap.tasks if t.done]
            tasks = [t.with_status("archived") if t.done else t for t in snap.tasks]
        else:
            tasks, affected = update_matching(
                snap.tasks,
                cmd.search or "",
                cmd.all_matches,
                lambda t: t.with_status("archived"),
                eligible=lambda t: t.status != "archived",
            )
        if not affected:
            return DispatchResult(snap, f'No matching tasks found for "{cmd.search}"', prefs)
        return DispatchResult(snap.with_tasks(tasks), f"Archived {_plural(len(affected))}", prefs, affected)

    def _do_tag(self, cmd, snap, prefs, now):
        tasks, affected = update_matching(
            snap.tasks,
            cmd.search or "",
            cmd.all_matches,
            lambda t: t.model_copy(update={"tags": [cmd.tag]}),
        )
        if not affected:
            return DispatchResult(snap, f'No matching tasks found for "{cmd.search}"', prefs)
        return DispatchResult(
            snap.with_tasks(tasks),
            f'Updated tag to "{cmd.tag}" for {_plural(len(affected))}',
            prefs,
            affected,
        )

    def _do_filter(self, cmd, snap, prefs, now):
        if cmd.tag in (None, "all"):
            return DispatchResult(snap, "Showing all tasks", prefs.model_copy(update={"filter_tag": None}))
        return DispatchResult(
            snap,
            f'Showing tasks tagged "{cmd.tag}"',
            prefs.model_copy(update={"filter_tag": cmd.tag}),
        )

    def _do_priority(self, cmd, snap, prefs, now):
        tasks, affected = update_matching(
            snap.tasks,
            cmd.search or "",
            cmd.all_matches,
            lambda t: t.model_copy(update={"priority": cmd.priority}),
        )
        if not affected:
            return DispatchResult(snap, f'No matching tasks found for "{cmd.search}"', prefs)
        return DispatchResult(
            snap.with_tasks(tasks),
            f'Set priority to "{cmd.priority}" for {_plural(len(affected))}',
            prefs,
            affected,
        )

    def _do_due(self, cmd, snap, prefs, now):
        tasks, affected = update_matching(
            snap.tasks,
            cmd.search or "",
            cmd.all_matches,
            lambda t: t.model_copy(update={"due_date": cmd.due}),
        )
        if not affected:
            return DispatchResult(snap, f'No matching tasks found for "{cmd.search}"', prefs)
        return DispatchResult(
            snap.with_tasks(tasks),
            f"Updated due date for {_plural(len(affected))}",
            prefs,
            affected,
        )

    def _do_snooze(self, cmd, snap, prefs, now):
        amount, unit = cmd.snooze_amount or 0, cmd.snooze_unit or "days"

        def push(task: Task) -> Task:
            base = task.due_date or end_of_day(now.date())
            if unit == "months":
                due = add_months(base, amount)
            else:
                due = base + timedelta(days=amount * (7 if unit == "weeks" else 1))
            return task.model_copy(update={"due_date": due})

        tasks, affected = update_matching(
            snap.tasks, cmd.search or "", cmd.all_matches, push, eligible=lambda t: t.status == "pending"
        )
        if not affected:
            return DispatchResult(snap, f'No matching incomplete tasks found for "{cmd.search}"', prefs)
        return DispatchResult(
            snap.with_tasks(tasks),
            f"Snoozed {_plural(len(affected))} by {amount} {unit}",
            prefs,
            affected,
        )

    def _do_repeat(self, cmd, snap, prefs, now):
        def set_rule(task: Task) -> Task:
            # a recurrence needs a due date to step from
            return task.model_copy(
                update={"recurring": cmd.recurrence, "due_date": task.due_date or end_of_day(now.date())}
            )

        tasks, affected = update_matching(snap.tasks, cmd.search or "", cmd.all_matches, set_rule)
        if not affected:
            return DispatchResult(snap, f'No matching tasks found for "{cmd.search}"', prefs)
        return DispatchResult(
            snap.with_tasks(tasks),
            f"Set recurring schedule for {_plural(len(affected))}",
            prefs,
            affected,
        )

    def _do_remind(self, cmd, snap, prefs, now):
        if cmd.reminder_hours_before is not None:
            hours = cmd.reminder_hours_before

            def add_reminder(task: Task) -> Task:
                at = task.due_date - timedelta(hours=hours)
                return task.model_copy(update={"reminders": task.reminders + [Reminder(time=at, type="relative")]})

            eligible = lambda t: t.due_date is not None
        else:

            def add_reminder(task: Task) -> Task:
                reminder = Reminder(time=cmd.reminder_time, type="absolute")
                return task.model_copy(update={"reminders": task.reminders + [reminder]})

            eligible = lambda t: True

        tasks, affected = update_matching(snap.tasks, cmd.search or "", cmd.all_matches, add_reminder, eligible)
        if not affected:
            if cmd.reminder_hours_before is not None:
                return DispatchResult(snap, f'No matching tasks with a due date found for "{cmd.search}"', prefs)
            return DispatchResult(snap, f'No matching tasks found for "{cmd.search}"', prefs)
        return DispatchResult(
            snap.with_tasks(tasks),
            f"Set reminder ({cmd.reminder_spec}) for {_plural(len(affected))}",
            prefs,
            affected,
        )

    def _do_subtask(self, cmd, snap, prefs, now):
        text = cmd.subtask_text or ""
        if cmd.parent_search:
            tasks, affected = update_matching(
                snap.tasks,
                cmd.parent_search,
                False,
                lambda t: t.model_copy(update={"subtasks": t.subtasks + [Subtask(text=text)]}),
            )
            if not affected:
                return DispatchResult(snap, f'No matching tasks found for "{cmd.parent_search}"', prefs)
            return DispatchResult(
                snap.with_tasks(tasks), f'Added subtask "{text}" to "{cmd.parent_search}"', prefs, affected
            )

        needle = text.lower()
        done_id: Optional[str] = None
        out: List[Task] = []
        for task in snap.tasks:
            if done_id is None:
                match = next((s for s in task.subtasks if not s.done and needle in s.text.lower()), None)
                if match is not None:
                    subtasks = [s.model_copy(update={"done": True}) if s.id == match.id else s for s in task.subtasks]
                    task = task.model_copy(update={"subtasks": subtasks})
                    done_id = task.id
            out.append(task)
        if done_id is None:
            return DispatchResult(snap, f'No matching subtask found for "{text}"', prefs)
        return DispatchResult(snap.with_tasks(out), f'Completed subtask "{text}"', prefs, [done_id])

    def _do_project(self, cmd, snap, prefs, now):
        if cmd.project_name is None:
            if not snap.projects:
                return DispatchResult(snap, "No projects yet", prefs, data={"projects": []})
            return DispatchResult(
                snap, "Projects: " + ", ".join(snap.projects), prefs, data={"projects": list(snap.projects)}
            )
        if cmd.project_name in snap.projects:
            return DispatchResult(snap, f'Project "{cmd.project_name}" already exists', prefs)
        return DispatchResult(
            snap.with_projects(snap.projects + (cmd.project_name,)),
            f"Created project: {cmd.project_name}",
            prefs,
        )

    def _do_sort(self, cmd, snap, prefs, now):
        criteria = cmd.sort_criteria or "createdAt"
        return DispatchResult(
            snap,
            f"Sorting tasks by {SORT_LABELS.get(criteria, criteria)}",
            prefs.model_copy(update={"sort_criteria": criteria}),
        )

    def _do_calendar(self, cmd, snap, prefs, now):
        show = not prefs.show_calendar
        return DispatchResult(
            snap,
            "Showing calendar" if show else "Hiding calendar",
            prefs.model_copy(update={"show_calendar": show}),
        )

    def _do_dark(self, cmd, snap, prefs, now):
        return DispatchResult(snap, "Switched to dark mode", prefs.model_copy(update={"dark_mode": True}))

    def _do_light(self, cmd, snap, prefs, now):
        return DispatchResult(snap, "Switched to light mode", prefs.model_copy(update={"dark_mode": False}))

    def _do_summarize(self, cmd, snap, prefs, now):
        period = cmd.period or "today"
        summary = summarize(snap.tasks, period, include_completed=True, now=now)
        label = "This week" if period == "week" else period.capitalize()
        if summary.total_tasks == 0:
            message = f"{label}: no tasks scheduled"
        else:
            hours, minutes = divmod(summary.minutes_required, 60)
            message = (
                f"{label}: {_plural(summary.total_tasks)}, {summary.completed_tasks} completed, "
                f"{len(summary.high_priority)} high priority, about {hours}h {minutes}m of work"
            )
        return DispatchResult(snap, message, prefs, data={"summary": summary})

    def _do_help(self, cmd, snap, prefs, now):
        return DispatchResult(snap, help_text(), prefs)
