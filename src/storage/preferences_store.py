from __future__ import annotations

import logging

from pydantic import ValidationError

from storage.kv_store import KeyValueStore
from todo_agent.filters import SORT_CRITERIA
from todo_agent.models import Preferences

logger = logging.getLogger(__name__)

SORT_KEY = "sortCriteria"
DARK_MODE_KEY = "darkMode"
CALENDAR_KEY = "showCalendar"
FILTER_KEY = "filterTag"


class PreferencesStore:
    def __init__(self, kv: KeyValueStore):
        self.kv = kv

    def load(self) -> Preferences:
        try:
            sort = self.kv.get(SORT_KEY)
            data = {
                "sort_criteria": sort if sort in SORT_CRITERIA else "createdAt",
                "dark_mode": bool(self.kv.get(DARK_MODE_KEY) or False),
                "show_calendar": bool(self.kv.get(CALENDAR_KEY) or False),
                "filter_tag": self.kv.get(FILTER_KEY),
            }
            return Preferences(**data)
        except (ValidationError, ValueError, TypeError) as e:
            logger.warning(f"Falling back to default preferences: {e}")
            return Preferences()

    def save(self, prefs: Preferences) -> None:
        self.kv.set(SORT_KEY, prefs.sort_criteria)
        self.kv.set(DARK_MODE_KEY, prefs.dark_mode)
        self.kv.set(CALENDAR_KEY, prefs.show_calendar)
        self.kv.set(FILTER_KEY, prefs.filter_tag)
