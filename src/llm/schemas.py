from __future__ import annotations

from typing import Any, List, Optional

from pydantic import BaseModel, Field, field_validator


class ClassificationExample(BaseModel):
    text: str
    label: str


class Classification(BaseModel):
    label: str
    confidence: float = Field(0.0, ge=0.0, le=1.0)


class GeneratedTask(BaseModel):
    """Loosely-typed task object as produced by a generation model."""

    title: str = ""
    due: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    priority: Optional[str] = None

    @field_validator("title", mode="before")
    @classmethod
    def coerce_title(cls, v: Any) -> str:
        if v is None:
            return ""
        return v if isinstance(v, str) else str(v)

    @field_validator("due", mode="before")
    @classmethod
    def coerce_due(cls, v: Any) -> Optional[str]:
        if v is None or v == "" or v == "null":
            return None
        return v if isinstance(v, str) else str(v)

    @field_validator("tags", mode="before")
    @classmethod
    def coerce_tags(cls, v: Any) -> List[str]:
        if isinstance(v, str):
            v = [v] if v else []
        if not isinstance(v, list):
            return []
        return [str(t) for t in v if t is not None]

    @field_validator("priority", mode="before")
    @classmethod
    def coerce_priority(cls, v: Any) -> Optional[str]:
        if isinstance(v, list):
            v = next((p for p in v if p in ("high", "medium", "low")), None)
        if v in ("high", "medium", "low"):
            return v
        return None
