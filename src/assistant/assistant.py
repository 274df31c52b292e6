from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from scheduling.summary import Period, period_bounds, summarize
from todo_agent.dates import end_of_day
from todo_agent.models import Task

logger = logging.getLogger(__name__)

FALLBACK = (
    "I'm not sure how to answer that. You can ask me about your schedule, "
    "priorities, deadlines, or progress on your tasks."
)

HELP = """You can ask me questions like:
- "What's on my schedule today?"
- "What are my high priority tasks?"
- "Summarize my tasks for this week"
- "Show me my upcoming deadlines"
- "How am I doing on my tasks?"
- "What categories do I have?\""""


@dataclass(frozen=True)
class AssistantReply:
    kind: str
    text: str


def detect_period(question: str) -> Period:
    q = question.lower()
    if "tomorrow" in q:
        return "tomorrow"
    if "week" in q:
        return "week"
    return "today"


def _flag(task: Task) -> str:
    return " (!)" if task.priority == "high" else ""


def _tag_of(task: Task) -> str:
    return task.tags[0] if task.tags else "general"


def _summary(tasks: Sequence[Task], question: str, now: datetime) -> str:
    period = detect_period(question)
    s = summarize(tasks, period, include_completed=True, now=now)
    if s.total_tasks == 0:
        return f"You don't have any tasks scheduled for {period}."

    lines = [
        f"{period.capitalize()} summary",
        f"You have {s.total_tasks} tasks ({s.completed_tasks} completed), requiring approximately "
        f"{s.minutes_required // 60} hours {s.minutes_required % 60} minutes.",
    ]
    if s.high_priority:
        lines.append("High priority:")
        lines += [f"- {t.title}{' (done)' if t.done else ''}" for t in s.high_priority[:3]]
        if len(s.high_priority) > 3:
            lines.append(f"...and {len(s.high_priority) - 3} more")
    lines.append("Categories:")
    lines += [f"- {tag}: {len(group)} tasks" for tag, group in s.by_tag.items()]
    return "\n".join(lines)


def _workload(tasks: Sequence[Task], question: str, now: datetime) -> str:
    period = detect_period(question)
    start, end = period_bounds(period, now)
    pending = sorted(
        (t for t in tasks if t.status == "pending" and t.due_date and start <= t.due_date <= end),
        key=lambda t: t.due_date,
    )
    if not pending:
        return f"Your schedule for {period} is clear. You don't have any pending tasks."

    lines = [f"Your {period} schedule"]
    current = None
    for task in pending:
        day = task.due_date.strftime("%a %b %d")
        if day != current:
            lines.append(day)
            current = day
        lines.append(f"- {task.due_date:%H:%M}: {task.title}{_flag(task)}")
    lines.append(f"Total: {len(pending)} tasks")
    return "\n".join(lines)


def _priority(tasks: Sequence[Task], question: str, now: datetime) -> str:
    urgent = [t for t in tasks if t.priority == "high" and t.status == "pending"]
    if not urgent:
        return "You don't have any high priority tasks at the moment."
    urgent.sort(key=lambda t: t.due_date or datetime.max)
    lines = ["High priority tasks"]
    for task in urgent:
        due = f" (due {task.due_date:%b %d %H:%M})" if task.due_date else ""
        lines.append(f"- {task.title}{due}")
    return "\n".join(lines)


def _deadlines(tasks: Sequence[Task], question: str, now: datetime) -> str:
    pending = sorted((t for t in tasks if t.status == "pending" and t.due_date), key=lambda t: t.due_date)
    if not pending:
        return "You don't have any upcoming deadlines."

    today = end_of_day(now.date())
    tomorrow = today + timedelta(days=1)
    week = today + timedelta(days=7)
    buckets: List[Tuple[str, List[Task]]] = [("Today", []), ("Tomorrow", []), ("This week", []), ("Later", [])]
    for task in pending:
        if task.due_date <= today:
            buckets[0][1].append(task)
        elif task.due_date <= tomorrow:
            buckets[1][1].append(task)
        elif task.due_date <= week:
            buckets[2][1].append(task)
        else:
            buckets[3][1].append(task)

    lines = ["Upcoming deadlines"]
    for label, group in buckets:
        if not group:
            continue
        lines.append(label)
        shown = group[:3] if label == "Later" else group
        for task in shown:
            prefix = ""
            if label == "This week":
                prefix = f"{task.due_date:%a}: "
            elif label == "Later":
                prefix = f"{task.due_date:%b %d}: "
            lines.append(f"- {prefix}{task.title}{_flag(task)}")
        if len(group) > len(shown):
            lines.append(f"...and {len(group) - len(shown)} more")
    return "\n".join(lines)


def _progress(tasks: Sequence[Task], question: str, now: datetime) -> str:
    total = len(tasks)
    if total == 0:
        return "You don't have any tasks yet. Start by adding some tasks to your list."
    completed = sum(1 for t in tasks if t.done)
    pending = sum(1 for t in tasks if t.status == "pending")
    archived = sum(1 for t in tasks if t.status == "archived")

    lines = [
        f"Overall completion: {round(completed / total * 100)}% ({completed}/{total})",
        f"- Completed: {completed}",
        f"- Pending: {pending}",
        f"- Archived: {archived}",
        "Progress by category:",
    ]
    stats: Dict[str, List[int]] = defaultdict(lambda: [0, 0])
    for task in tasks:
        entry = stats[_tag_of(task)]
        entry[0] += 1
        entry[1] += int(task.done)
    for tag, (count, done) in stats.items():
        lines.append(f"- {tag}: {round(done / count * 100)}% ({done}/{count})")
    return "\n".join(lines)


def _categories(tasks: Sequence[Task], question: str, now: datetime) -> str:
    groups: Dict[str, List[Task]] = defaultdict(list)
    for task in tasks:
        groups[_tag_of(task)].append(task)
    if not groups:
        return "You don't have any tasks categorized yet."

    lines = ["Task categories"]
    for tag, group in sorted(groups.items(), key=lambda kv: len(kv[1]), reverse=True):
        open_tasks = [t for t in group if not t.done]
        lines.append(f"{tag} ({len(group)} tasks, {len(group) - len(open_tasks)} completed)")
        lines += [f"- {t.title}{_flag(t)}" for t in open_tasks[:3]]
        if len(open_tasks) > 3:
            lines.append(f"...and {len(open_tasks) - 3} more pending")
    return "\n".join(lines)


def _help(tasks: Sequence[Task], question: str, now: datetime) -> str:
    return HELP


Responder = Callable[[Sequence[Task], str, datetime], str]

# First matching keyword group wins.
ROUTES: Tuple[Tuple[str, Tuple[str, ...], Responder], ...] = (
    ("summary", ("summarize", "summary"), _summary),
    ("workload", ("workload", "schedule", "what's on", "what is on", "do i have"), _workload),
    ("priority", ("priority", "important", "urgent"), _priority),
    ("deadlines", ("deadline", "due", "upcoming"), _deadlines),
    ("progress", ("progress", "status", "how am i doing"), _progress),
    ("categories", ("category", "categories", "tag"), _categories),
    ("help", ("help", "can you", "how to"), _help),
)


class Assistant:
    """Answers free-form questions about the task list from canned templates."""

    def answer(self, question: str, tasks: Sequence[Task], now: Optional[datetime] = None) -> AssistantReply:
        now = now or datetime.now()
        q = (question or "").lower()
        for kind, keywords, respond in ROUTES:
            if any(k in q for k in keywords):
                logger.debug(f"Assistant routed {question!r} to {kind}")
                return AssistantReply(kind, respond(tasks, question, now))
        return AssistantReply("fallback", FALLBACK)
