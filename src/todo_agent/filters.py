from __future__ import annotations

from typing import Iterable, List, Optional

from todo_agent.models import Task


TAG_COLORS = {
    "work": "bg-blue-100 text-blue-800",
    "errand": "bg-green-100 text-green-800",
    "fitness": "bg-orange-100 text-orange-800",
    "spiritual": "bg-purple-100 text-purple-800",
    "general": "bg-gray-100 text-gray-800",
    "social": "bg-pink-100 text-pink-800",
    "finance": "bg-emerald-100 text-emerald-800",
    "home": "bg-indigo-100 text-indigo-800",
    "education": "bg-sky-100 text-sky-800",
    "health": "bg-rose-100 text-rose-800",
}

_PRIORITY_RANK = {"high": 0, "medium": 1, "low": 2}

SORT_CRITERIA = ("priority", "dueDate", "alphabetical", "createdAt")


def tag_color(tag: str) -> str:
    return TAG_COLORS.get(tag, TAG_COLORS["general"])


def _newest_first(task: Task) -> float:
    return -task.created_at.timestamp()


def filter_and_sort(
    tasks: Iterable[Task],
    *,
    tag: Optional[str] = None,
    project: Optional[str] = None,
    sort_by: str = "priority",
    include_archived: bool = False,
) -> List[Task]:
    """Filter by tag/project, then sort with completed tasks always last."""
    out = [t for t in tasks if include_archived or t.status != "archived"]

    if tag is not None:
        out = [t for t in out if tag.lower() in t.tags]
    if project is not None:
        out = [t for t in out if t.project == project]

    if sort_by == "priority":
        key = lambda t: (t.done, _PRIORITY_RANK.get(t.priority or "", 3), _newest_first(t))
    elif sort_by == "dueDate":
        key = lambda t: (
            t.done,
            t.due_date is None,
            t.due_date.timestamp() if t.due_date else 0.0,
            _newest_first(t),
        )
    elif sort_by == "alphabetical":
        key = lambda t: (t.done, t.title.casefold())
    else:
        key = lambda t: (t.done, _newest_first(t))

    return sorted(out, key=key)
