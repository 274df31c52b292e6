import asyncio
import logging
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from api.backend import CommandBackend
from api.dependencies import get_backend
from todo_agent.errors import InvalidCommandError, TaskNotFoundError
from todo_agent.filters import SORT_CRITERIA, tag_color
from todo_agent.models import Priority, RecurrenceRule

router = APIRouter()
logger = logging.getLogger(__name__)


class BatchIn(BaseModel):
    ids: List[str]


class TaskUpdateIn(BaseModel):
    title: Optional[str] = None
    notes: Optional[str] = None
    tags: Optional[List[str]] = None
    priority: Optional[Priority] = None
    project: Optional[str] = None
    due_date: Optional[datetime] = None
    start_time: Optional[datetime] = None
    estimated_duration_min: Optional[int] = None
    recurring: Optional[RecurrenceRule] = None


@router.get("/tasks")
async def get_tasks(
    tag: Optional[str] = None,
    project: Optional[str] = None,
    sort: Optional[str] = None,
    include_archived: bool = False,
    backend: CommandBackend = Depends(get_backend),
) -> dict:
    """Tasks filtered and sorted; stored preferences apply when no query is given."""
    if sort is not None and sort not in SORT_CRITERIA:
        raise HTTPException(status_code=400, detail=f"sort must be one of {', '.join(SORT_CRITERIA)}")

    tasks = backend.list_tasks(tag=tag, project=project, sort_by=sort, include_archived=include_archived)
    return {
        "tasks": [{**t.model_dump(mode="json"), "colors": [tag_color(x) for x in t.tags]} for t in tasks],
        "total": len(tasks),
        "projects": list(backend.store.snapshot.projects),
    }


@router.post("/tasks/{task_id}/toggle")
async def toggle_task(task_id: str, backend: CommandBackend = Depends(get_backend)) -> dict:
    try:
        task = await asyncio.to_thread(backend.toggle, task_id)
    except TaskNotFoundError:
        raise HTTPException(status_code=404, detail="Task not found")
    return {"task": task.model_dump(mode="json")}


@router.patch("/tasks/{task_id}")
async def update_task(task_id: str, payload: TaskUpdateIn, backend: CommandBackend = Depends(get_backend)) -> dict:
    """Edit notes, dates, duration, recurrence and other fields of one task."""
    fields = payload.model_dump(exclude_unset=True)
    try:
        task = await asyncio.to_thread(backend.update, task_id, fields)
    except TaskNotFoundError:
        raise HTTPException(status_code=404, detail="Task not found")
    except InvalidCommandError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"task": task.model_dump(mode="json")}


@router.delete("/tasks/{task_id}")
async def delete_task(task_id: str, backend: CommandBackend = Depends(get_backend)) -> dict:
    try:
        await asyncio.to_thread(backend.delete, task_id)
    except TaskNotFoundError:
        raise HTTPException(status_code=404, detail="Task not found")
    return {"status": "deleted", "id": task_id}


@router.post("/tasks/batch-delete")
async def batch_delete(payload: BatchIn, backend: CommandBackend = Depends(get_backend)) -> dict:
    return {"status": "deleted", "deleted": await asyncio.to_thread(backend.batch_delete, payload.ids)}


@router.post("/tasks/batch-complete")
async def batch_complete(payload: BatchIn, backend: CommandBackend = Depends(get_backend)) -> dict:
    return {"status": "completed", "updated": await asyncio.to_thread(backend.batch_complete, payload.ids)}


@router.post("/tasks/batch-archive")
async def batch_archive(payload: BatchIn, backend: CommandBackend = Depends(get_backend)) -> dict:
    return {"status": "archived", "updated": await asyncio.to_thread(backend.batch_archive, payload.ids)}


@router.get("/tasks/{task_id}/conflicts")
async def task_conflicts(task_id: str, backend: CommandBackend = Depends(get_backend)) -> dict:
    try:
        result = backend.conflicts(task_id)
    except TaskNotFoundError:
        raise HTTPException(status_code=404, detail="Task not found")
    return {
        "has_conflict": result.has_conflict,
        "conflicting_tasks": [t.model_dump(mode="json") for t in result.conflicting_tasks],
        "suggested_time": result.suggested_time.isoformat() if result.suggested_time else None,
    }


@router.get("/tasks/{task_id}/suggested-time")
async def suggested_time(task_id: str, backend: CommandBackend = Depends(get_backend)) -> dict:
    try:
        when = backend.suggest_time(task_id)
    except TaskNotFoundError:
        raise HTTPException(status_code=404, detail="Task not found")
    return {"id": task_id, "suggested_time": when.isoformat()}


@router.get("/tasks/recurring-suggestions")
async def recurring_suggestions(backend: CommandBackend = Depends(get_backend)) -> dict:
    return {
        "suggestions": [
            {"task": s.task.model_dump(mode="json"), "pattern": s.pattern} for s in backend.recurring_suggestions()
        ]
    }


@router.get("/calendar/{year}/{month}")
async def get_calendar(year: int, month: int, backend: CommandBackend = Depends(get_backend)) -> dict:
    """Sunday-first month grid with the tasks due on each day."""
    try:
        weeks = backend.calendar(year, month)
    except InvalidCommandError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return {
        "year": year,
        "month": month,
        "weeks": [
            [
                None
                if cell is None
                else {
                    "date": cell["date"].isoformat(),
                    "tasks": [t.model_dump(mode="json") for t in cell["tasks"]],
                }
                for cell in week
            ]
            for week in weeks
        ],
    }
