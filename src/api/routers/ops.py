import asyncio
import os
import logging

from fastapi import APIRouter, Depends, Response
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST

from api.backend import CommandBackend
from api.dependencies import get_backend

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/health")
async def health_check(backend: CommandBackend = Depends(get_backend)) -> dict:
    """Health check endpoint for container orchestration."""
    snap = backend.store.snapshot
    return {
        "status": "healthy",
        "profile": os.getenv("DEPLOYMENT_PROFILE", "unknown"),
        "llm_provider": type(backend.intents.client.provider).__name__,
        "store_version": snap.version,
        "tasks": len(snap.tasks),
    }


@router.get("/metrics")
async def metrics() -> Response:
    """
    Prometheus scrape endpoint.
    """
    data = generate_latest()
    return Response(content=data, media_type=CONTENT_TYPE_LATEST)


@router.post("/reminders/check")
async def check_reminders(backend: CommandBackend = Depends(get_backend)) -> dict:
    """Forced reminder check, e.g. when the user comes back to the app."""
    fired = await asyncio.to_thread(backend.check_reminders, force=True)
    return {"fired": [{"id": t.id, "title": t.title} for t in fired]}
