from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from pydantic import ValidationError

from storage.kv_store import KeyValueStore
from todo_agent.errors import TaskNotFoundError
from todo_agent.models import Task

logger = logging.getLogger(__name__)

TASKS_KEY = "tasks"
PROJECTS_KEY = "projects"

_CAMEL_KEYS = {
    "createdAt": "created_at",
    "dueDate": "due_date",
    "startTime": "start_time",
    "estimatedDuration": "estimated_duration_min",
    "recurrenceSourceId": "recurrence_source_id",
}
_RULE_KEYS = {"daysOfWeek": "days_of_week", "endDate": "end_date"}
_TIMESTAMP_KEYS = ("created_at", "due_date", "start_time")


def _timestamp(value: Any) -> Any:
    """Epoch milliseconds written by older clients become datetimes."""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return datetime.fromtimestamp(value / 1000)
    return value


def migrate_task(raw: Dict[str, Any]) -> Dict[str, Any]:
    """Bring a persisted task of any past shape to the current model.

    - ``text`` becomes ``title``
    - the single ``tag`` is unioned into ``tags``
    - camelCase keys and epoch-ms timestamps are converted
    - a stray ``done`` flag is folded into ``status``
    """
    data = {_CAMEL_KEYS.get(k, k): v for k, v in raw.items()}

    if "title" not in data and "text" in data:
        data["title"] = data["text"]
    data.pop("text", None)

    tags = list(data.get("tags") or [])
    legacy_tag = data.pop("tag", None)
    if legacy_tag and legacy_tag not in tags:
        tags.insert(0, legacy_tag)
    data["tags"] = tags

    done = data.pop("done", None)
    if done is True and data.get("status", "pending") == "pending":
        data["status"] = "completed"

    for key in _TIMESTAMP_KEYS:
        if key in data:
            data[key] = _timestamp(data[key])

    if isinstance(data.get("recurring"), dict):
        rule = {_RULE_KEYS.get(k, k): v for k, v in data["recurring"].items()}
        if "end_date" in rule:
            rule["end_date"] = _timestamp(rule["end_date"])
        data["recurring"] = rule

    data["reminders"] = [
        {**r, "time": _timestamp(r.get("time"))} for r in (data.get("reminders") or []) if isinstance(r, dict)
    ]
    data["subtasks"] = [s for s in (data.get("subtasks") or []) if isinstance(s, dict)]

    for key in ("priority", "project", "notes"):
        if data.get(key) in ("", None):
            data.pop(key, None)
    return data


@dataclass(frozen=True)
class Snapshot:
    version: int
    tasks: Tuple[Task, ...] = ()
    projects: Tuple[str, ...] = ()

    def find(self, task_id: str) -> Task:
        for task in self.tasks:
            if task.id == task_id:
                return task
        raise TaskNotFoundError(task_id)

    def with_tasks(self, tasks: Iterable[Task]) -> "Snapshot":
        return replace(self, tasks=tuple(tasks))

    def with_projects(self, projects: Iterable[str]) -> "Snapshot":
        return replace(self, projects=tuple(projects))


Mutation = Callable[[Snapshot], Snapshot]


class TaskStore:
    """Owns the task collection as a sequence of immutable, versioned snapshots.

    Readers take ``snapshot`` and never see a half-applied change; writers
    submit a function ``Snapshot -> Snapshot`` which is applied under a single
    lock and persisted before the new version becomes visible.
    """

    def __init__(self, kv: KeyValueStore):
        self.kv = kv
        self._lock = threading.Lock()
        self._snapshot = self._load()

    @property
    def snapshot(self) -> Snapshot:
        return self._snapshot

    @property
    def tasks(self) -> Tuple[Task, ...]:
        return self._snapshot.tasks

    def mutate(self, fn: Mutation) -> Snapshot:
        with self._lock:
            current = self._snapshot
            updated = fn(current)
            if updated is current:
                return current
            updated = replace(updated, version=current.version + 1)
            self._save(updated)
            self._snapshot = updated
            return updated

    def replace_task(self, task: Task) -> Snapshot:
        def apply(snap: Snapshot) -> Snapshot:
            snap.find(task.id)
            return snap.with_tasks(task if t.id == task.id else t for t in snap.tasks)

        return self.mutate(apply)

    def delete(self, task_ids: Iterable[str]) -> Snapshot:
        doomed = set(task_ids)
        return self.mutate(lambda snap: snap.with_tasks(t for t in snap.tasks if t.id not in doomed))

    def _load(self) -> Snapshot:
        raw_tasks = self.kv.get(TASKS_KEY) or []
        tasks: List[Task] = []
        for raw in raw_tasks:
            if not isinstance(raw, dict):
                continue
            try:
                tasks.append(Task.model_validate(migrate_task(raw)))
            except ValidationError as e:
                logger.warning(f"Skipping unreadable task {raw.get('id')!r}: {e.error_count()} errors")

        projects = [p for p in (self.kv.get(PROJECTS_KEY) or []) if isinstance(p, str)]
        logger.info(f"Loaded {len(tasks)} tasks and {len(projects)} projects")
        return Snapshot(version=0, tasks=tuple(tasks), projects=tuple(projects))

    def _save(self, snap: Snapshot) -> None:
        self.kv.set(TASKS_KEY, [t.model_dump(mode="json") for t in snap.tasks])
        self.kv.set(PROJECTS_KEY, list(snap.projects))
