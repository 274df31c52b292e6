from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass
from typing import Optional

from commands.parser import Command, map_priority
from llm.llm_client import LLMClient
from llm.schemas import ClassificationExample
from todo_agent.filters import TAG_COLORS

logger = logging.getLogger(__name__)

INTENT_CONFIDENCE_THRESHOLD = float(os.getenv("INTENT_CONFIDENCE_THRESHOLD", "0.6"))

LABELS = (
    "add_task",
    "complete_task",
    "delete_task",
    "change_tag",
    "set_priority",
    "filter_tasks",
    "help",
)

INTENT_EXAMPLES = [
    ClassificationExample(text="add buy milk", label="add_task"),
    ClassificationExample(text="create a task to call the bank", label="add_task"),
    ClassificationExample(text="remember to water the plants", label="add_task"),
    ClassificationExample(text="i need to book a dentist appointment", label="add_task"),
    ClassificationExample(text="mark the laundry as done", label="complete_task"),
    ClassificationExample(text="complete the quarterly report", label="complete_task"),
    ClassificationExample(text="i finished the dishes", label="complete_task"),
    ClassificationExample(text="tick off groceries", label="complete_task"),
    ClassificationExample(text="delete the gym task", label="delete_task"),
    ClassificationExample(text="remove buy milk from my list", label="delete_task"),
    ClassificationExample(text="erase call mom", label="delete_task"),
    ClassificationExample(text="change the tag of report to work", label="change_tag"),
    ClassificationExample(text="set the category of run to fitness", label="change_tag"),
    ClassificationExample(text="label groceries as errand", label="change_tag"),
    ClassificationExample(text="make the report high priority", label="set_priority"),
    ClassificationExample(text="set priority of taxes to high", label="set_priority"),
    ClassificationExample(text="groceries are low priority", label="set_priority"),
    ClassificationExample(text="show me my work tasks", label="filter_tasks"),
    ClassificationExample(text="only show errands", label="filter_tasks"),
    ClassificationExample(text="which tasks are tagged fitness", label="filter_tasks"),
    ClassificationExample(text="what can you do", label="help"),
    ClassificationExample(text="how do i use this", label="help"),
    ClassificationExample(text="show me the commands", label="help"),
]

_ADD = re.compile(
    r"(?:add|create|remember|need to)\s+(?:a\s+(?:new\s+)?task\s+(?:to\s+)?)?(?:to\s+)?(.+?)(?:\s+#\w+.*)?$",
    re.IGNORECASE,
)
_COMPLETE_OR_DELETE = re.compile(
    r"(?:complete|mark|tick|finish(?:ed)?|delete|remove|erase)\s+(?:off\s+)?(?:the\s+)?(.+?)"
    r"(?:\s+(?:as\s+(?:done|complete|completed|finished)|from\s+(?:my\s+)?(?:list|tasks)|task))?$",
    re.IGNORECASE,
)
_CHANGE_TAG = re.compile(
    r"(?:tag|category|label)\s+(?:of\s+)?(?:the\s+)?(.+?)\s+(?:to|as)\s+#?(\w+)$",
    re.IGNORECASE,
)
_PRIORITY_WORD = re.compile(r"\b(high|medium|low|urgent|important|normal)\b", re.IGNORECASE)
_PRIORITY_TEXT = re.compile(
    r"(?:make|set|mark)\s+(?:the\s+)?(?:priority\s+(?:of|for)\s+)?(?:the\s+)?(.+?)\s+(?:as\s+|to\s+)?"
    r"(?:high|medium|low|urgent|important|normal)\b",
    re.IGNORECASE,
)
_FILTER = re.compile(
    r"(?:show|filter|only|tagged|display)\s+(?:me\s+)?(?:my\s+)?(?:by\s+)?(?:only\s+)?#?(\w+)(?:\s+tasks)?",
    re.IGNORECASE,
)
_FILTER_STOP = {"me", "my", "all", "the", "tasks", "only", "by", "show"}
_HASHTAG = re.compile(r"#(\w+)")


@dataclass(frozen=True)
class IntentResult:
    label: str
    confidence: float
    text: Optional[str] = None
    tag: Optional[str] = None
    priority: Optional[str] = None

    def to_command(self) -> Optional[Command]:
        """Command for the intents that act on existing tasks; None otherwise."""
        if self.label == "complete_task" and self.text:
            return Command(type="tick", search=self.text, confidence=self.confidence)
        if self.label == "delete_task" and self.text:
            return Command(type="delete", search=self.text, confidence=self.confidence)
        if self.label == "change_tag" and self.text and self.tag:
            return Command(type="tag", search=self.text, tag=self.tag, confidence=self.confidence)
        if self.label == "set_priority" and self.text and self.priority:
            return Command(type="priority", search=self.text, priority=self.priority, confidence=self.confidence)
        if self.label == "filter_tasks" and self.tag:
            return Command(type="filter", tag=self.tag, confidence=self.confidence)
        if self.label == "help":
            return Command(type="help", confidence=self.confidence)
        return None


def extract_entities(label: str, text: str) -> IntentResult:
    """Pull the label's arguments out of ``text`` with local patterns."""
    stripped = text.strip()

    if label == "add_task":
        m = _ADD.search(stripped)
        tag = _HASHTAG.search(stripped)
        return IntentResult(
            label,
            0.0,
            text=m.group(1).strip() if m else stripped,
            tag=tag.group(1).lower() if tag else None,
        )

    if label in ("complete_task", "delete_task"):
        m = _COMPLETE_OR_DELETE.search(stripped)
        return IntentResult(label, 0.0, text=m.group(1).strip() if m else None)

    if label == "change_tag":
        m = _CHANGE_TAG.search(stripped)
        if m:
            return IntentResult(label, 0.0, text=m.group(1).strip(), tag=m.group(2).lower())
        return IntentResult(label, 0.0)

    if label == "set_priority":
        word = _PRIORITY_WORD.search(stripped)
        m = _PRIORITY_TEXT.search(stripped)
        return IntentResult(
            label,
            0.0,
            text=m.group(1).strip() if m else None,
            priority=map_priority(word.group(1)) if word else None,
        )

    if label == "filter_tasks":
        for m in _FILTER.finditer(stripped):
            tag = m.group(1).lower()
            if tag not in _FILTER_STOP:
                if tag.endswith("s") and tag[:-1] in TAG_COLORS:
                    tag = tag[:-1]
                return IntentResult(label, 0.0, tag=tag)
        return IntentResult(label, 0.0)

    return IntentResult(label, 0.0)


class IntentClassifier:
    """Tier B: few-shot intent routing through the remote classifier."""

    def __init__(self, client: Optional[LLMClient] = None, threshold: float = INTENT_CONFIDENCE_THRESHOLD):
        self.client = client if client is not None else LLMClient()
        self.threshold = threshold

    def classify(self, text: str) -> Optional[IntentResult]:
        result = self.client.classify(text, INTENT_EXAMPLES)
        if result is None:
            return None
        if result.label not in LABELS:
            logger.info(f"Classifier returned unknown label {result.label!r}")
            return None

        found = extract_entities(result.label, text)
        return IntentResult(
            label=found.label,
            confidence=result.confidence,
            text=found.text,
            tag=found.tag,
            priority=found.priority,
        )

    def route(self, text: str) -> Optional[Command]:
        """Command for a confident non-add intent, else None."""
        intent = self.classify(text)
        if intent is None or intent.confidence < self.threshold:
            return None
        return intent.to_command()
