from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, List, Literal, Optional, Tuple

from pydantic import BaseModel, Field

from extraction.date_parser import clock_from_parts
from todo_agent.dates import WEEKDAY_NAMES, end_of_day, next_weekday
from todo_agent.models import Priority, RecurrenceRule


CommandType = Literal[
    "add",
    "tick",
    "delete",
    "archive",
    "tag",
    "filter",
    "priority",
    "due",
    "snooze",
    "repeat",
    "remind",
    "subtask",
    "project",
    "sort",
    "calendar",
    "dark",
    "light",
    "summarize",
    "help",
    "unknown",
]

PRIORITY_WORDS = {
    "high": "high",
    "urgent": "high",
    "important": "high",
    "medium": "medium",
    "normal": "medium",
    "low": "low",
}

SORT_WORDS = {
    "priority": "priority",
    "due date": "dueDate",
    "created": "createdAt",
    "created date": "createdAt",
    "alphabetical": "alphabetical",
    "name": "alphabetical",
}


class Command(BaseModel):
    """A parsed command. Only the fields relevant to ``type`` are set."""

    type: CommandType
    confidence: float = Field(1.0, ge=0.0, le=1.0)

    task_text: Optional[str] = None
    search: Optional[str] = None
    all_matches: bool = False
    completed_only: bool = False

    tag: Optional[str] = None
    # extra tags recovered by the extraction tiers
    tags: List[str] = Field(default_factory=list)
    priority: Optional[Priority] = None
    project: Optional[str] = None

    due: Optional[datetime] = None
    due_spec: Optional[str] = None

    reminder_time: Optional[datetime] = None
    reminder_hours_before: Optional[int] = None
    reminder_spec: Optional[str] = None

    subtask_text: Optional[str] = None
    parent_search: Optional[str] = None

    recurrence: Optional[RecurrenceRule] = None

    project_name: Optional[str] = None
    sort_criteria: Optional[str] = None

    snooze_amount: Optional[int] = None
    snooze_unit: Optional[Literal["days", "weeks", "months"]] = None

    period: Optional[Literal["today", "tomorrow", "week"]] = None


Builder = Callable[[re.Match, datetime], Optional[Command]]


@dataclass(frozen=True)
class Rule:
    name: str
    pattern: re.Pattern
    build: Builder

    def apply(self, text: str, now: datetime) -> Optional[Command]:
        m = self.pattern.match(text)
        if m is None:
            return None
        return self.build(m, now)


def _rule(name: str, pattern: str, build: Builder) -> Rule:
    return Rule(name=name, pattern=re.compile(pattern, re.IGNORECASE), build=build)


_WEEKDAY = "(" + "|".join(WEEKDAY_NAMES) + ")"
_WEEKDAY_NC = "(?:" + "|".join(WEEKDAY_NAMES) + ")"
_ALL = r"(all\s+)?"


def _search(m: re.Match, group: int) -> str:
    return m.group(group).strip()


def map_priority(word: Optional[str]) -> Optional[str]:
    if not word:
        return None
    return PRIORITY_WORDS.get(word.lower())


def split_add_markers(text: str) -> Tuple[str, Optional[str], Optional[str]]:
    """Peel trailing ``#tag`` / ``!priority`` markers (any order) or an ``as <tag>`` suffix."""
    tag: Optional[str] = None
    priority: Optional[str] = None
    seen_priority = False
    rest = text.strip()

    while True:
        m = re.match(r"^(.*?)\s+#(\w+)$", rest)
        if m and tag is None:
            rest, tag = m.group(1).strip(), m.group(2).lower()
            continue
        m = re.match(r"^(.*?)\s+!(\w+)$", rest)
        if m and not seen_priority:
            rest, priority = m.group(1).strip(), map_priority(m.group(2))
            seen_priority = True
            continue
        break

    if tag is None:
        m = re.match(r"^(.*?)\s+as\s+(\w+)$", rest, re.IGNORECASE)
        if m:
            rest, tag = m.group(1).strip(), m.group(2).lower()

    return rest, tag, priority


def _literal(kind: str) -> Builder:
    return lambda m, now: Command(type=kind)


def _add_subtask(m, now):
    return Command(type="subtask", subtask_text=_search(m, 1), parent_search=_search(m, 2))


def _add_to_project(m, now):
    return Command(type="add", task_text=_search(m, 1), project=_search(m, 2))


def _add(m, now):
    text, tag, priority = split_add_markers(m.group(1))
    if not text:
        return None
    return Command(type="add", task_text=text, tag=tag, priority=priority)


def _tick_subtask(m, now):
    return Command(type="subtask", subtask_text=_search(m, 1))


def _searching(kind: str) -> Builder:
    def build(m, now):
        return Command(type=kind, search=_search(m, 2), all_matches=bool(m.group(1)))

    return build


def _archive_completed(m, now):
    return Command(type="archive", search="completed", all_matches=True, completed_only=True)


def _tag(m, now):
    return Command(
        type="tag",
        search=_search(m, 2),
        all_matches=bool(m.group(1)),
        tag=m.group(3).lower(),
    )


def _filter(m, now):
    return Command(type="filter", tag=m.group(1).lower())


def _priority(m, now):
    return Command(
        type="priority",
        search=_search(m, 2),
        all_matches=bool(m.group(1)),
        priority=m.group(3).lower(),
    )


def resolve_due_spec(spec: str, now: datetime) -> Optional[datetime]:
    """today/tomorrow/next <weekday> resolved to 23:59:59 on that day."""
    spec = re.sub(r"\s+", " ", spec.strip().lower())
    today = now.date()
    if spec == "today":
        return end_of_day(today)
    if spec == "tomorrow":
        return end_of_day(today + timedelta(days=1))
    if spec.startswith("next "):
        name = spec[5:]
        if name in WEEKDAY_NAMES:
            return end_of_day(next_weekday(today, WEEKDAY_NAMES.index(name)))
    return None


def _due(m, now):
    spec = re.sub(r"\s+", " ", m.group(1).lower())
    due = resolve_due_spec(spec, now)
    if due is None:
        return None
    return Command(
        type="due",
        due_spec=spec,
        due=due,
        search=_search(m, 3),
        all_matches=bool(m.group(2)),
    )


def _snooze(m, now):
    unit = m.group(4).lower()
    if unit.startswith("week"):
        unit = "weeks"
    elif unit.startswith("month"):
        unit = "months"
    else:
        unit = "days"
    return Command(
        type="snooze",
        search=_search(m, 2),
        all_matches=bool(m.group(1)),
        snooze_amount=int(m.group(3)),
        snooze_unit=unit,
    )


def _repeat(kind: str) -> Builder:
    def build(m, now):
        return Command(
            type="repeat",
            search=_search(m, 1),
            recurrence=RecurrenceRule(type=kind, interval=1),
        )

    return build


def _repeat_weekly(m, now):
    day = WEEKDAY_NAMES.index(m.group(1).lower())
    return Command(
        type="repeat",
        search=_search(m, 2),
        recurrence=RecurrenceRule(type="weekly", interval=1, days_of_week=[day]),
    )


def _remind_absolute(m, now):
    day_spec = m.group(2).lower()
    hour, minute, meridiem = int(m.group(3)), int(m.group(4) or 0), m.group(5)
    clock = clock_from_parts(hour, minute, meridiem.lower() if meridiem else None)
    if clock is None:
        return None
    day = now.date() + timedelta(days=1 if day_spec == "tomorrow" else 0)
    time_spec = m.string[m.start(3):m.end()].strip().lower()
    return Command(
        type="remind",
        search=_search(m, 1),
        reminder_time=datetime.combine(day, clock),
        reminder_spec=f"{day_spec} {time_spec}",
    )


def _remind_relative(m, now):
    hours = int(m.group(1))
    return Command(
        type="remind",
        search=_search(m, 2),
        reminder_hours_before=hours,
        reminder_spec=f"{hours} hours before",
    )


def _create_project(m, now):
    return Command(type="project", project_name=_search(m, 1))


def _sort(m, now):
    key = re.sub(r"\s+", " ", m.group(1).lower())
    return Command(type="sort", sort_criteria=SORT_WORDS[key])


def _summarize(m, now):
    period = m.group(1).lower()
    return Command(type="summarize", period="week" if period == "this week" else period)


# Order matters: the first rule that matches wins. Literal commands come first
# so that "show calendar" is not read as a tag filter.
RULES: Tuple[Rule, ...] = (
    _rule("help", r"^(?:help|commands)$", _literal("help")),
    _rule("calendar", r"^(?:calendar|view\s+calendar|show\s+calendar|toggle\s+calendar)$", _literal("calendar")),
    _rule("dark", r"^dark\s+mode$", _literal("dark")),
    _rule("light", r"^light\s+mode$", _literal("light")),
    _rule("list_projects", r"^list\s+projects$", _literal("project")),
    _rule("add_subtask", r"^add\s+subtask\s+(.+?)\s+to\s+(.+)$", _add_subtask),
    _rule("add_to_project", r"^add\s+(.+?)\s+to\s+(.+?)\s+project$", _add_to_project),
    _rule("add", r"^add\s+(.+)$", _add),
    _rule("tick_subtask", r"^(?:tick|complete)\s+subtask\s+(.+)$", _tick_subtask),
    _rule("tick", r"^(?:tick|complete)\s+" + _ALL + r"(.+)$", _searching("tick")),
    _rule("delete", r"^(?:delete|remove)\s+" + _ALL + r"(.+)$", _searching("delete")),
    _rule("archive_completed", r"^archive\s+completed$", _archive_completed),
    _rule("archive", r"^archive\s+" + _ALL + r"(.+)$", _searching("archive")),
    _rule("tag", r"^tag\s+" + _ALL + r"(.+?)\s+as\s+(\w+)$", _tag),
    _rule("filter", r"^(?:filter|show)(?:\s+by)?\s+(\w+)(?:\s+tasks)?$", _filter),
    _rule("priority", r"^priority\s+" + _ALL + r"(.+?)\s+(high|medium|low)$", _priority),
    _rule("due", r"^due\s+(today|tomorrow|next\s+" + _WEEKDAY_NC + r")\s+" + _ALL + r"(.+)$", _due),
    _rule("snooze", r"^snooze\s+" + _ALL + r"(.+?)\s+(\d+)\s+(days?|weeks?|months?)$", _snooze),
    _rule("repeat_daily", r"^repeat\s+daily\s+(.+)$", _repeat("daily")),
    _rule("repeat_weekly", r"^repeat\s+weekly\s+on\s+" + _WEEKDAY + r"\s+(.+)$", _repeat_weekly),
    _rule("repeat_monthly", r"^repeat\s+monthly\s+(.+)$", _repeat("monthly")),
    _rule(
        "remind_absolute",
        r"^remind\s+me\s+(?:about\s+)?(.+?)\s+(today|tomorrow)\s+(\d{1,2})(?::(\d{2}))?\s*(am|pm)?$",
        _remind_absolute,
    ),
    _rule("remind_relative", r"^remind\s+me\s+(\d+)\s+hours?\s+before\s+(.+)$", _remind_relative),
    _rule("create_project", r"^create\s+project\s+(.+)$", _create_project),
    _rule("sort", r"^sort\s+by\s+(priority|due\s+date|created(?:\s+date)?|alphabetical|name)$", _sort),
    _rule("summarize", r"^summarize\s+(today|this\s+week|tomorrow)$", _summarize),
)


def parse(text: str, now: Optional[datetime] = None) -> Command:
    """Match ``text`` against the command grammar.

    Free text (titles, search terms) keeps its casing; keywords, tags and
    priorities are normalised to lower case.
    """
    now = now or datetime.now()
    cleaned = re.sub(r"\s+", " ", (text or "").strip())

    for rule in RULES:
        command = rule.apply(cleaned, now)
        if command is not None:
            return command

    return Command(type="unknown", confidence=0.0, task_text=cleaned)
