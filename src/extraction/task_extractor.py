from __future__ import annotations

import logging
import re
from datetime import datetime, timedelta
from typing import Optional

from pydantic import ValidationError

from extraction import date_parser
from extraction.markers import (
    explicit_priority,
    has_priority_marker,
    has_tag_marker,
    strip_markers,
    wants_tags_removed,
)
from extraction.results import TierResult
from llm.json_repair import extract_object
from llm.llm_client import LLMClient
from llm.schemas import GeneratedTask
from todo_agent.models import ParsedTask

logger = logging.getLogger(__name__)

TIER = "generative"

# Phrases that mark the input as an instruction about existing tasks.
COMMAND_PATTERNS = [
    re.compile(p, re.IGNORECASE)
    for p in (
        r"change\s+all",
        r"modify\s+all",
        r"update\s+all",
        r"convert\s+all",
        r"set\s+all",
        r"edit\s+all",
        r"delete\s+all",
        r"remove\s+all",
        r"switch\s+all",
        r"hashtag",
        r"help",
        r"settings",
        r"mode",
    )
]

# Titles from few-shot prompts the model has been seen to parrot back.
ECHO_TITLES = ("Submit project report", "call mom", "Go to the grocery store", "Buy groceries")

SYSTEM_PROMPT = """You are a STRICT task parser that extracts structured task data from natural language.

Given a user's input, return a JSON object with EXACTLY these fields:

{
  "title": "task description (string)",
  "due": "natural language time (string or null)",
  "tags": ["tag1", "tag2"],
  "priority": "high/medium/low/null"
}

CRITICAL RULES (THESE MUST BE FOLLOWED):
1. Do NOT add ANY explanation or markdown formatting.
2. "title" should extract the CORE task only, not the time/date references.
3. "due" should contain time information if present.
4. "priority" MUST be null UNLESS the text explicitly contains !high, !medium, !low or "priority is" format.
5. "tags" MUST be an empty array ([]) UNLESS the input explicitly contains #tag or "tag is" format.
6. If input contains "delete tag" or "remove tag" pattern, set tags to [].
7. DO NOT infer tags from context - only extract tags marked with # or "tag is".
8. Be intelligent about extracting the main task title - focus on verbs and objects.

For example:
Input: "Buy groceries tomorrow"
Output: {"title":"Buy groceries","due":"tomorrow","tags":[],"priority":null}"""

_REMINDER_TITLE = re.compile(
    r"^(?:reminder|remind me)(?:\s+\w+)?\s+(?:of|about|to)\s+(.*?)(?:\s+(?:at|on|by|tomorrow|today|next)\b.*)?$",
    re.IGNORECASE,
)

REMINDER_WORDS = re.compile(r"\b(?:remind|alert|notification|notify)\b", re.IGNORECASE)
REMINDER_LEAD = timedelta(minutes=30)


def looks_like_command(text: str) -> bool:
    return any(p.search(text) for p in COMMAND_PATTERNS)


def is_example_echo(raw: str, text: str) -> bool:
    for title in ECHO_TITLES:
        if title.lower() in text.lower():
            continue
        if re.search(r'"title"\s*:\s*"' + re.escape(title) + '"', raw):
            return True
    return False


def reminder_for(text: str, due: Optional[datetime]) -> Optional[datetime]:
    if due is None or not REMINDER_WORDS.search(text):
        return None
    return due - REMINDER_LEAD


class TaskExtractor:
    """Tier A: structured extraction through a generation model."""

    def __init__(self, client: Optional[LLMClient] = None):
        self.client = client if client is not None else LLMClient()

    def extract(self, text: str, now: Optional[datetime] = None) -> TierResult:
        if looks_like_command(text):
            return TierResult.not_a_task(TIER, "command keywords present")

        raw = self.client.generate(system=SYSTEM_PROMPT, user=f'Now parse this input: "{text}"')
        if raw is None:
            return TierResult.failed(TIER, "generation unavailable")

        if is_example_echo(raw, text):
            logger.info("Generation echoed a prompt example, discarding")
            return TierResult.failed(TIER, "example echo")

        data = extract_object(raw)
        if data is None:
            return TierResult.failed(TIER, "no JSON object in output")

        try:
            generated = GeneratedTask.model_validate(data)
        except ValidationError as e:
            return TierResult.failed(TIER, f"invalid task object: {e.error_count()} errors")

        task = self._validate(generated, text, now or datetime.now())
        if task is None:
            return TierResult.failed(TIER, "empty title")
        return TierResult.ok(TIER, task)

    def _validate(self, generated: GeneratedTask, text: str, now: datetime) -> Optional[ParsedTask]:
        # The model's guesses about tags and priority are only kept when the
        # user actually wrote a marker for them.
        tags = generated.tags if has_tag_marker(text) else []
        if wants_tags_removed(text):
            tags = []

        priority = None
        if has_priority_marker(text):
            priority = generated.priority or explicit_priority(text)

        title = generated.title.strip()
        m = _REMINDER_TITLE.match(title)
        if m and m.group(1).strip():
            title = m.group(1).strip()
        title = strip_markers(title).rstrip(",.;:!?").strip()
        if not title:
            return None

        due = date_parser.parse(generated.due, now) if generated.due else None

        return ParsedTask(
            title=title[0].upper() + title[1:],
            due=due,
            tags=[t.lstrip("#").lower() for t in tags if t.strip()],
            priority=priority,
            reminder=reminder_for(text, due),
            source=TIER,
        )
