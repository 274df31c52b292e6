import asyncio
import logging
import os

from fastapi import FastAPI

from api.routers import assistant, commands, ops, tasks
from api.workers import _recurrence_worker, _reminder_worker

# Logging configuration
logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="todo-agent")

app.include_router(commands.router)
app.include_router(tasks.router)
app.include_router(assistant.router)
app.include_router(ops.router)


@app.on_event("startup")
async def startup() -> None:
    asyncio.create_task(_reminder_worker())
    asyncio.create_task(_recurrence_worker())
    logger.info("Background workers started")


def run() -> None:
    import uvicorn

    uvicorn.run(
        "api.main:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
    )
