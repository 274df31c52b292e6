from __future__ import annotations

import json
import re
from typing import Sequence

from llm.schemas import Classification, ClassificationExample
from llm.providers.base import LLMProvider


# trailing time phrase, handed back verbatim as the "due" string
_WHEN = re.compile(
    r"\s+((?:(?:tomorrow|today|tonight|next\s+\w+|in\s+\d+\s+\w+|on\s+\w+day)\b|at\s+\d).*)$",
    re.IGNORECASE,
)


class MockProvider(LLMProvider):
    """Offline provider for local development: deterministic, keyword driven."""

    def generate(self, *, system: str, user: str) -> str:
        m = re.search(r'Now parse this input: "(.*)"', user, re.DOTALL)
        if m is None:
            return "{}"
        text = m.group(1)
        title, due = text, None
        when = _WHEN.search(text)
        if when is not None:
            title, due = text[: when.start()], when.group(1)
        return json.dumps({"title": title.strip() or text, "due": due, "tags": [], "priority": None})

    def classify(self, *, text: str, examples: Sequence[ClassificationExample]) -> Classification:
        words = set(re.findall(r"\w+", text.lower()))
        best_label, best_score = "", 0
        for ex in examples:
            score = len(words & set(re.findall(r"\w+", ex.text.lower())))
            if score > best_score:
                best_label, best_score = ex.label, score
        if not best_label:
            return Classification(label=examples[0].label if examples else "", confidence=0.0)
        return Classification(label=best_label, confidence=min(1.0, 0.5 + 0.2 * best_score))
