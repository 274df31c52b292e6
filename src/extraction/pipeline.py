from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from extraction.heuristic_parser import HeuristicParser
from extraction.results import Outcome, TierResult
from extraction.task_extractor import TaskExtractor
from todo_agent.models import ParsedTask

logger = logging.getLogger(__name__)


@dataclass
class PipelineRun:
    task: Optional[ParsedTask]
    results: List[TierResult] = field(default_factory=list)

    @property
    def not_a_task(self) -> bool:
        return any(r.outcome is Outcome.NOT_A_TASK for r in self.results)


class ExtractionPipeline:
    """Generative extraction first, local heuristics when it cannot deliver."""

    def __init__(
        self,
        extractor: Optional[TaskExtractor] = None,
        heuristic: Optional[HeuristicParser] = None,
    ):
        self.extractor = extractor if extractor is not None else TaskExtractor()
        self.heuristic = heuristic if heuristic is not None else HeuristicParser()

    def run(self, text: str, now: Optional[datetime] = None) -> PipelineRun:
        text = (text or "").strip()
        if not text:
            return PipelineRun(task=None)

        first = self.extractor.extract(text, now)
        if first.outcome is Outcome.OK:
            return PipelineRun(task=first.task, results=[first])
        if first.outcome is Outcome.NOT_A_TASK:
            logger.info(f"Input looks like a command, not a task: {text!r}")
            return PipelineRun(task=None, results=[first])

        logger.info(f"Generative extraction failed ({first.reason}), using heuristics")
        fallback = self.heuristic.extract(text, now)
        return PipelineRun(task=fallback.task, results=[first, fallback])

    def extract(self, text: str, now: Optional[datetime] = None) -> Optional[ParsedTask]:
        return self.run(text, now).task
