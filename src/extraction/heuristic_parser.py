from __future__ import annotations

import logging
import re
from datetime import datetime
from typing import List, Optional, Tuple

from extraction import date_parser
from extraction.markers import explicit_priority, explicit_tags, strip_markers
from extraction.results import TierResult
from extraction.task_extractor import reminder_for
from todo_agent.models import ParsedTask

logger = logging.getLogger(__name__)

TIER = "heuristic"

# Observance names that must survive cleanup and never become tags.
RELIGIOUS_TERMS = ("namaz", "prayer", "salah", "salat", "jummah", "dhuhr", "asr", "maghrib", "isha", "fajr")

_INTRO = r"\b(?:remind(?:er)?|alert|notify)\s+(?:me\b\s*|us\b\s*)?"
REMINDER_INTRO = re.compile(_INTRO + r"(?:to\s+|of\s+|about\s+)?", re.IGNORECASE)

# remind me <when> to <task>
_TIME_THEN_TASK = re.compile(_INTRO + r"(.+?)\s+(?:to|of|about)\s+(.+?)\s*$", re.IGNORECASE)
# remind me to <task> <when>
_TASK_THEN_TIME = re.compile(_INTRO + r"(?:to|of|about)\s+(.+?)\s*$", re.IGNORECASE)
_TIME_WORD = re.compile(r"\s+(?=(?:at|on|in|by|tomorrow|tommorrow|today|tonight|next|this)\b)", re.IGNORECASE)
# remind me [to] <anything>
_ANYTHING = re.compile(_INTRO + r"(?:to\s+|of\s+|about\s+)?(.+?)\s*$", re.IGNORECASE)

LEADING_VERBS = re.compile(
    r"^(?:add|create|make|new|task|todo|to do|remember to|remember|i need to|need to)\s+",
    re.IGNORECASE,
)

DATE_PHRASES = [
    re.compile(p, re.IGNORECASE)
    for p in (
        r"\b(?:today|tonight|tomorrow|tommorrow|yesterday)\b",
        r"\b(?:next|this|coming|last)\s+(?:monday|tuesday|wednesday|thursday|friday|saturday|sunday|week|month|year)\b",
        r"\b(?:on\s+)?(?:monday|tuesday|wednesday|thursday|friday|saturday|sunday)\b",
        r"\b(?:in|after|before|around|at)\s+\d+\s+(?:minutes?|hours?|days?|weeks?|months?|years?)\b",
        r"\b(?:at|on|before|after|by)\s+\d{1,2}(?::\d{2})?\s*(?:am|pm)?\b",
        r"\b\d{1,2}(?::\d{2})?\s*(?:am|pm)\b",
        r"\b(?:jan|feb|mar|apr|may|jun|jul|aug|sep|oct|nov|dec)[a-z]*\s+\d{1,2}(?:st|nd|rd|th)?\b",
        r"\b\d{1,2}(?:st|nd|rd|th)?\s+(?:jan|feb|mar|apr|may|jun|jul|aug|sep|oct|nov|dec)[a-z]*\b",
        r"\b(?:in\s+the\s+)?(?:morning|afternoon|evening)\b",
    )
]


def _tidy(text: str) -> str:
    text = re.sub(r"\s+", " ", text).strip()
    text = re.sub(r"\s+(?:at|on|by|in|to|of|about)$", "", text, flags=re.IGNORECASE)
    return text.strip(" ,.;:!?")


def _is_noise(title: Optional[str]) -> bool:
    return not title or len(title) < 2 or re.fullmatch(r"[\s.,!?;:]+", title) is not None


def capitalize(title: str) -> str:
    return title[0].upper() + title[1:] if title else title


class HeuristicParser:
    """Tier C: network-free extraction that always produces a task."""

    def extract(self, text: str, now: Optional[datetime] = None) -> TierResult:
        now = now or datetime.now()
        try:
            return TierResult.ok(TIER, self._parse(text, now))
        except Exception:
            # the whole input becomes the title
            logger.exception("Heuristic parser failed, using raw text as title")
            title = capitalize(text.strip()) or "Task"
            return TierResult.ok(TIER, ParsedTask(title=title, source=TIER))

    def _parse(self, text: str, now: datetime) -> ParsedTask:
        tags = [t for t in explicit_tags(text) if t not in RELIGIOUS_TERMS]
        priority = explicit_priority(text)

        found = self._split_reminder(text, now)
        if found is not None:
            title, due = found
        else:
            title, due = self._generic(text, now)

        title = self._protect_terms(text, title)

        if _is_noise(title):
            title = _tidy(strip_markers(REMINDER_INTRO.sub("", text, count=1))) or "Task"

        return ParsedTask(
            title=capitalize(title),
            due=due,
            tags=tags,
            priority=priority,
            reminder=reminder_for(text, due),
            source=TIER,
        )

    def _split_reminder(self, text: str, now: datetime) -> Optional[Tuple[str, datetime]]:
        """Separate the time expression from the task inside reminder phrasing."""
        m = _TIME_THEN_TASK.search(text)
        if m:
            due = date_parser.parse(m.group(1), now, strict=True)
            if due is not None:
                return _tidy(strip_markers(m.group(2))), due

        m = _TASK_THEN_TIME.search(text)
        if m:
            rest = m.group(1)
            for split in _TIME_WORD.finditer(rest):
                due = date_parser.parse(rest[split.end():], now, strict=True)
                if due is not None:
                    return _tidy(strip_markers(rest[: split.start()])), due

        m = _ANYTHING.search(text)
        if m:
            rest = strip_markers(m.group(1))
            hit = date_parser.search(rest, now)
            if hit is not None:
                return _tidy(date_parser.strip_dates(rest, now)), hit.value

        return None

    def _generic(self, text: str, now: datetime) -> Tuple[str, Optional[datetime]]:
        title = REMINDER_INTRO.sub("", text, count=1)
        title = strip_markers(title)
        title = LEADING_VERBS.sub("", title.strip())
        for pattern in DATE_PHRASES:
            title = pattern.sub("", title)
        title = _tidy(title)

        # the due date comes from the untouched input
        return title, date_parser.parse(text, now)

    def _protect_terms(self, text: str, title: str) -> str:
        terms: List[str] = [t for t in RELIGIOUS_TERMS if re.search(rf"\b{t}\b", text, re.IGNORECASE)]
        for term in terms:
            if not re.search(rf"\b{term}\b", title, re.IGNORECASE):
                title = f"{title} {term}".strip()
        return title
