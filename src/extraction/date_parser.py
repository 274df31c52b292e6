"""Local natural-language date/time parsing.

Understands the phrases people put in quick task entries:
  - today | tonight | tomorrow | yesterday
  - <weekday>, this <weekday>, next <weekday>
  - next week | next month | next year
  - in <N> <unit>, after <N> <unit>, <N> <unit> from now
    (units: minutes, hours, days, weeks, months, years; N may be a word)
  - month names with a day in either order: "jan 5th", "5 january 2027"
  - ISO (2026-01-10) and US (1/10, 1/10/2026) dates
  - clock times: 5pm, 5:30 pm, at 17, 17:30, noon, midnight
  - parts of day: morning, afternoon, evening, night

A phrase naming only a day resolves to noon on that day. A phrase naming only
a clock time resolves to today, or tomorrow when that time already passed.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Callable, List, Optional, Tuple

from todo_agent.dates import WEEKDAY_NAMES, add_months, next_weekday


DATE_ONLY_TIME = time(12, 0)

_WORD_NUMS = {
    "a": 1,
    "an": 1,
    "one": 1,
    "two": 2,
    "three": 3,
    "four": 4,
    "five": 5,
    "six": 6,
    "seven": 7,
    "eight": 8,
    "nine": 9,
    "ten": 10,
    "eleven": 11,
    "twelve": 12,
}

_MONTHS = {
    "jan": 1,
    "feb": 2,
    "mar": 3,
    "apr": 4,
    "may": 5,
    "jun": 6,
    "jul": 7,
    "aug": 8,
    "sep": 9,
    "sept": 9,
    "oct": 10,
    "nov": 11,
    "dec": 12,
}

_PARTS_OF_DAY = {
    "morning": time(9, 0),
    "afternoon": time(14, 0),
    "evening": time(18, 0),
    "night": time(20, 0),
    "tonight": time(20, 0),
}

_NUM = r"(\d+|" + "|".join(_WORD_NUMS) + r")"
_UNIT = r"(minute|min|hour|hr|day|week|month|year)s?"
_WEEKDAY = r"(" + "|".join(WEEKDAY_NAMES) + r")"
_MONTH = (
    r"(jan(?:uary)?|feb(?:ruary)?|mar(?:ch)?|apr(?:il)?|may|june?|july?"
    r"|aug(?:ust)?|sep(?:t(?:ember)?)?|oct(?:ober)?|nov(?:ember)?|dec(?:ember)?)"
)
_ORD = r"(?:st|nd|rd|th)?"

# words that may sit between or around date pieces without changing meaning
_FILLER = {"at", "on", "by", "the", "of", "around", "before", "this", ","}


@dataclass(frozen=True)
class _Hit:
    start: int
    end: int
    day: Optional[date] = None
    moment: Optional[datetime] = None
    clock: Optional[time] = None
    meridiem: bool = False
    part_of_day: bool = False


@dataclass(frozen=True)
class DateMatch:
    value: datetime
    spans: Tuple[Tuple[int, int], ...]

    @property
    def start(self) -> int:
        return self.spans[0][0]

    @property
    def end(self) -> int:
        return self.spans[-1][1]


def _num(tok: str) -> int:
    return int(tok) if tok.isdigit() else _WORD_NUMS[tok]


def _month(tok: str) -> int:
    return _MONTHS[tok[:4] if tok.startswith("sept") else tok[:3]]


def _safe_date(y: int, m: int, d: int) -> Optional[date]:
    try:
        return date(y, m, d)
    except ValueError:
        return None


def _forward(d: Optional[date], today: date, explicit_year: bool) -> Optional[date]:
    if d is None or explicit_year or d >= today:
        return d
    return _safe_date(d.year + 1, d.month, d.day)


def _offset(now: datetime, n: int, unit: str) -> datetime:
    unit = unit.rstrip("s")
    if unit in ("minute", "min"):
        return now + timedelta(minutes=n)
    if unit in ("hour", "hr"):
        return now + timedelta(hours=n)
    if unit == "day":
        return now + timedelta(days=n)
    if unit == "week":
        return now + timedelta(weeks=n)
    if unit == "month":
        return add_months(now, n)
    return add_months(now, 12 * n)


def clock_from_parts(hour: int, minute: int, meridiem: Optional[str]) -> Optional[time]:
    """Build a clock time from a 12- or 24-hour reading."""
    if meridiem:
        m = meridiem.replace(".", "")
        if hour < 1 or hour > 12:
            return None
        if m == "pm" and hour < 12:
            hour += 12
        elif m == "am" and hour == 12:
            hour = 0
    if hour > 23 or minute > 59:
        return None
    return time(hour, minute)


_Resolver = Callable[[re.Match, datetime], Optional[_Hit]]


def _hit(m: re.Match, **kw) -> _Hit:
    return _Hit(start=m.start(), end=m.end(), **kw)


def _r_today(m, now):
    word = m.group(1)
    if word == "tonight":
        return _hit(m, day=now.date(), clock=_PARTS_OF_DAY["tonight"], part_of_day=True)
    return _hit(m, day=now.date())


def _r_tomorrow(m, now):
    return _hit(m, day=now.date() + timedelta(days=1))


def _r_yesterday(m, now):
    return _hit(m, day=now.date() - timedelta(days=1))


def _r_weekday(m, now):
    qualifier, name = m.group(1), m.group(2)
    target = WEEKDAY_NAMES.index(name)
    strict = qualifier in ("next", "coming")
    return _hit(m, day=next_weekday(now.date(), target, force_next_week=strict))


def _r_next_period(m, now):
    unit = m.group(1)
    if unit == "week":
        return _hit(m, day=now.date() + timedelta(days=7))
    if unit == "month":
        return _hit(m, day=add_months(now, 1).date())
    return _hit(m, day=add_months(now, 12).date())


def _r_relative(m, now):
    return _hit(m, moment=_offset(now, _num(m.group(1)), m.group(2)))


def _r_month_day(m, now):
    month, day, year = _month(m.group(1)), int(m.group(2)), m.group(3)
    d = _safe_date(int(year) if year else now.year, month, day)
    d = _forward(d, now.date(), bool(year))
    return _hit(m, day=d) if d else None


def _r_day_month(m, now):
    day, month, year = int(m.group(1)), _month(m.group(2)), m.group(3)
    d = _safe_date(int(year) if year else now.year, month, day)
    d = _forward(d, now.date(), bool(year))
    return _hit(m, day=d) if d else None


def _r_iso(m, now):
    d = _safe_date(int(m.group(1)), int(m.group(2)), int(m.group(3)))
    return _hit(m, day=d) if d else None


def _r_us(m, now):
    month, day, year = int(m.group(1)), int(m.group(2)), m.group(3)
    if year and len(year) == 2:
        year = "20" + year
    d = _safe_date(int(year) if year else now.year, month, day)
    d = _forward(d, now.date(), bool(year))
    return _hit(m, day=d) if d else None


def _r_meridiem(m, now):
    minute = int(m.group(2)) if m.group(2) else 0
    clock = clock_from_parts(int(m.group(1)), minute, m.group(3))
    return _hit(m, clock=clock, meridiem=True) if clock else None


def _r_at_hour(m, now):
    minute = int(m.group(2)) if m.group(2) else 0
    clock = clock_from_parts(int(m.group(1)), minute, None)
    return _hit(m, clock=clock) if clock else None


def _r_24h(m, now):
    clock = clock_from_parts(int(m.group(1)), int(m.group(2)), None)
    return _hit(m, clock=clock) if clock else None


def _r_noon(m, now):
    return _hit(m, clock=time(12, 0) if m.group(1) == "noon" else time(0, 0), meridiem=True)


def _r_part_of_day(m, now):
    return _hit(m, clock=_PARTS_OF_DAY[m.group(1)], part_of_day=True)


_RULES: List[Tuple[re.Pattern, _Resolver]] = [
    (re.compile(r"\b(today|tonight)\b"), _r_today),
    (re.compile(r"\b(?:tomorrow|tommorrow|tomorow|tmrw)\b"), _r_tomorrow),
    (re.compile(r"\byesterday\b"), _r_yesterday),
    (re.compile(r"\b(?:(next|this|coming)\s+)?" + _WEEKDAY + r"\b"), _r_weekday),
    (re.compile(r"\bnext\s+(week|month|year)\b"), _r_next_period),
    (re.compile(r"\b(?:in|after)\s+" + _NUM + r"\s+" + _UNIT + r"\b"), _r_relative),
    (re.compile(r"\b" + _NUM + r"\s+" + _UNIT + r"\s+(?:from\s+now|later)\b"), _r_relative),
    (re.compile(r"\b" + _MONTH + r"\.?\s+(\d{1,2})" + _ORD + r"(?:,?\s+(\d{4}))?\b"), _r_month_day),
    (re.compile(r"\b(\d{1,2})" + _ORD + r"\s+(?:of\s+)?" + _MONTH + r"(?:,?\s+(\d{4}))?\b"), _r_day_month),
    (re.compile(r"\b(\d{4})-(\d{2})-(\d{2})\b"), _r_iso),
    (re.compile(r"\b(\d{1,2})/(\d{1,2})(?:/(\d{2,4}))?\b"), _r_us),
    (re.compile(r"\b(?:at\s+|@\s*)?(\d{1,2})(?::(\d{2}))?\s*([ap]\.?m\.?)(?![a-z])"), _r_meridiem),
    (re.compile(r"(?:\bat\s+|@\s*)(\d{1,2})(?::(\d{2}))?\b(?!\s*[ap]\.?m)(?!\s*(?:" + _UNIT + r"))"), _r_at_hour),
    (re.compile(r"\b(\d{1,2}):(\d{2})\b"), _r_24h),
    (re.compile(r"\b(?:at\s+)?(noon|midnight)\b"), _r_noon),
    (re.compile(r"\b(?:in\s+the\s+|this\s+|at\s+)?(morning|afternoon|evening|night)\b"), _r_part_of_day),
]


def _collect(text: str, now: datetime) -> List[_Hit]:
    hits: List[_Hit] = []
    for pattern, resolve in _RULES:
        for m in pattern.finditer(text):
            h = resolve(m, now)
            if h is not None:
                hits.append(h)

    # longest match wins on overlap, earlier start breaks ties
    kept: List[_Hit] = []
    for h in sorted(hits, key=lambda h: (-(h.end - h.start), h.start)):
        if all(h.end <= k.start or h.start >= k.end for k in kept):
            kept.append(h)
    return sorted(kept, key=lambda h: h.start)


def _combine(hits: List[_Hit], now: datetime) -> Optional[datetime]:
    day_hit = next((h for h in hits if h.day or h.moment), None)
    clocks = [h for h in hits if h.clock is not None]
    exact = next((h for h in clocks if not h.part_of_day), None)
    part = next((h for h in clocks if h.part_of_day), None)

    clock: Optional[time] = None
    if exact is not None:
        clock = exact.clock
        # "5 in the evening", "at 7 tonight"
        if part is not None and not exact.meridiem and clock.hour < 12 and part.clock.hour >= 12:
            clock = time(clock.hour + 12, clock.minute)
    elif part is not None:
        clock = part.clock

    if day_hit is None and clock is None:
        return None

    if day_hit is not None and day_hit.moment is not None:
        if clock is None:
            return day_hit.moment.replace(second=0, microsecond=0)
        return datetime.combine(day_hit.moment.date(), clock)

    if day_hit is not None:
        return datetime.combine(day_hit.day, clock or DATE_ONLY_TIME)

    value = datetime.combine(now.date(), clock)
    if value < now:
        value += timedelta(days=1)
    return value


def _is_filler_only(text: str) -> bool:
    tokens = re.findall(r"[a-z0-9]+|,", text)
    return all(tok in _FILLER for tok in tokens)


def search(text: str, now: Optional[datetime] = None) -> Optional[DateMatch]:
    """Find the date expressed anywhere inside ``text``."""
    now = now or datetime.now()
    lowered = text.lower()
    hits = _collect(lowered, now)
    value = _combine(hits, now)
    if value is None:
        return None
    used = [h for h in hits if h.day or h.moment or h.clock]
    return DateMatch(value=value, spans=tuple((h.start, h.end) for h in used))


def parse(text: str, now: Optional[datetime] = None, *, strict: bool = False) -> Optional[datetime]:
    """Parse a date phrase.

    With ``strict`` the whole text must be a date expression (connecting
    words such as "at" or "on" are allowed), otherwise ``None`` is returned.
    """
    now = now or datetime.now()
    lowered = text.lower().strip()
    if not lowered:
        return None
    found = search(lowered, now)
    if found is None:
        return None
    if strict:
        rest = lowered
        for start, end in reversed(found.spans):
            rest = rest[:start] + " " + rest[end:]
        if not _is_filler_only(rest):
            return None
    return found.value


def strip_dates(text: str, now: Optional[datetime] = None) -> str:
    """Remove every recognised date/time phrase from ``text``."""
    found = search(text, now)
    if found is None:
        return text
    out = text
    for start, end in reversed(found.spans):
        out = out[:start] + " " + out[end:]
    return re.sub(r"\s{2,}", " ", out).strip()
