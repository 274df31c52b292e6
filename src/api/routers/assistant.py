import asyncio

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from api.backend import CommandBackend
from api.dependencies import get_backend

router = APIRouter()


class QuestionIn(BaseModel):
    question: str


@router.post("/assistant")
async def ask_assistant(payload: QuestionIn, backend: CommandBackend = Depends(get_backend)) -> dict:
    reply = await asyncio.to_thread(backend.ask, payload.question)
    return {"kind": reply.kind, "answer": reply.text}
