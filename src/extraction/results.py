from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from todo_agent.models import ParsedTask


class Outcome(str, Enum):
    OK = "ok"
    FAILED = "failed"
    NOT_A_TASK = "not_a_task"


@dataclass(frozen=True)
class TierResult:
    tier: str
    outcome: Outcome
    task: Optional[ParsedTask] = None
    reason: str = ""

    @classmethod
    def ok(cls, tier: str, task: ParsedTask) -> "TierResult":
        return cls(tier=tier, outcome=Outcome.OK, task=task)

    @classmethod
    def failed(cls, tier: str, reason: str) -> "TierResult":
        return cls(tier=tier, outcome=Outcome.FAILED, reason=reason)

    @classmethod
    def not_a_task(cls, tier: str, reason: str) -> "TierResult":
        return cls(tier=tier, outcome=Outcome.NOT_A_TASK, reason=reason)
