from __future__ import annotations

import logging
from typing import Optional

from llm.llm_client import LLMClient
from llm.schemas import ClassificationExample

logger = logging.getLogger(__name__)

DEFAULT_TAG = "general"

TAG_EXAMPLES = [
    ClassificationExample(text="Buy groceries", label="errand"),
    ClassificationExample(text="Write report", label="work"),
    ClassificationExample(text="Do push-ups", label="fitness"),
    ClassificationExample(text="Read Quran", label="spiritual"),
]


class TaskClassifier:
    """Picks a tag for a task that was added without one."""

    def __init__(self, client: Optional[LLMClient] = None):
        self.client = client if client is not None else LLMClient()

    def classify(self, title: str) -> str:
        result = self.client.classify(title, TAG_EXAMPLES)
        if result is None or not result.label:
            return DEFAULT_TAG
        label = result.label.strip().lower()
        logger.debug(f"Tagged {title!r} as {label} ({result.confidence:.2f})")
        return label
