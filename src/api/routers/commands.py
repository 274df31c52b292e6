import asyncio
import logging
import time

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from api.backend import CommandBackend
from api.dependencies import get_backend
from api.metrics import REQUEST_LATENCY_SECONDS, REQUESTS_TOTAL
from todo_agent.errors import InvalidCommandError

router = APIRouter()
logger = logging.getLogger(__name__)


class CommandIn(BaseModel):
    text: str


@router.post("/commands")
async def submit_command(payload: CommandIn, backend: CommandBackend = Depends(get_backend)) -> dict:
    """Run one line of user input through parsing, extraction and dispatch."""
    start = time.time()
    try:
        outcome = await asyncio.to_thread(backend.submit, payload.text)
    except InvalidCommandError as e:
        REQUESTS_TOTAL.labels(endpoint="/commands", status="invalid").inc()
        raise HTTPException(status_code=400, detail=str(e))

    REQUESTS_TOTAL.labels(endpoint="/commands", status=outcome.route).inc()
    REQUEST_LATENCY_SECONDS.labels(endpoint="/commands").observe(time.time() - start)

    response = {
        "message": outcome.message,
        "route": outcome.route,
        "command": outcome.command.model_dump(mode="json", exclude_none=True) if outcome.command else None,
        "affected": outcome.affected,
        "tasks": [t.model_dump(mode="json") for t in outcome.tasks],
        "preferences": outcome.preferences.model_dump(mode="json"),
    }
    conflict = outcome.data.get("conflict")
    if conflict is not None:
        response["conflict"] = {
            "conflicting": [t.id for t in conflict.conflicting_tasks],
            "suggested_time": conflict.suggested_time.isoformat() if conflict.suggested_time else None,
        }
    return response
