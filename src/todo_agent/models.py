from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional, List
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator


Priority = Literal["high", "medium", "low"]
TaskStatus = Literal["pending", "completed", "archived"]
RecurrenceType = Literal["daily", "weekly", "monthly", "custom"]
ReminderKind = Literal["absolute", "relative"]

DEFAULT_DURATION_MIN = 60


def new_id() -> str:
    return str(uuid4())


class Subtask(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_id)
    text: str = Field(..., min_length=1)
    done: bool = False


class Reminder(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_id)
    time: datetime
    notified: bool = False
    type: ReminderKind = "absolute"


class RecurrenceRule(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: RecurrenceType
    interval: int = Field(1, ge=1)
    # 0 = Sunday ... 6 = Saturday
    days_of_week: List[int] = Field(default_factory=list)
    end_date: Optional[datetime] = None

    @field_validator("days_of_week")
    @classmethod
    def weekdays_in_range(cls, v: List[int]) -> List[int]:
        for day in v:
            if day < 0 or day > 6:
                raise ValueError("days_of_week entries must be between 0 and 6")
        return sorted(set(v))


class Task(BaseModel):
    """A single todo item.

    Instances are frozen; every change goes through ``model_copy(update=...)``
    and snapshots share instances.
    ``status`` is the only lifecycle field, ``done`` is derived from it.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_id)
    title: str = Field(..., min_length=1)
    notes: str = ""

    tags: List[str] = Field(default_factory=list)
    priority: Optional[Priority] = None
    project: Optional[str] = None

    status: TaskStatus = "pending"
    created_at: datetime = Field(default_factory=datetime.now)

    due_date: Optional[datetime] = None
    start_time: Optional[datetime] = None
    estimated_duration_min: Optional[int] = Field(None, ge=1)

    subtasks: List[Subtask] = Field(default_factory=list)
    recurring: Optional[RecurrenceRule] = None
    reminders: List[Reminder] = Field(default_factory=list)

    # id of the completed occurrence this task was regenerated from
    recurrence_source_id: Optional[str] = None

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, v: str) -> str:
        v2 = v.strip()
        if not v2:
            raise ValueError("title must not be blank")
        return v2

    @field_validator("tags")
    @classmethod
    def normalize_tags(cls, v: List[str]) -> List[str]:
        out: List[str] = []
        for tag in v:
            t = tag.strip().lstrip("#").lower()
            if t and t not in out:
                out.append(t)
        return out

    @computed_field  # type: ignore[prop-decorator]
    @property
    def done(self) -> bool:
        return self.status == "completed"

    @property
    def effective_start(self) -> Optional[datetime]:
        return self.start_time or self.due_date

    def duration_min(self, default: int = DEFAULT_DURATION_MIN) -> int:
        return self.estimated_duration_min or default

    def with_status(self, status: TaskStatus) -> "Task":
        return self.model_copy(update={"status": status})

    def toggled(self) -> "Task":
        return self.with_status("pending" if self.done else "completed")


class ParsedTask(BaseModel):
    """Structured fields recovered from free text by the extraction tiers."""

    title: str = Field(..., min_length=1)
    due: Optional[datetime] = None
    tags: List[str] = Field(default_factory=list)
    priority: Optional[Priority] = None
    reminder: Optional[datetime] = None
    source: Literal["generative", "heuristic"] = "heuristic"


class Preferences(BaseModel):
    sort_criteria: Literal["priority", "dueDate", "alphabetical", "createdAt"] = "createdAt"
    dark_mode: bool = False
    show_calendar: bool = False
    filter_tag: Optional[str] = None
