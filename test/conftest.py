from datetime import datetime
from typing import Optional

import pytest

from llm.llm_client import LLMClient
from llm.schemas import Classification
from storage.kv_store import InMemoryStore
from storage.preferences_store import PreferencesStore
from storage.task_store import TaskStore


class FakeProvider:
    def __init__(self, response_text: str, label: Optional[str] = None, confidence: float = 0.0):
        self._response_text = response_text
        self._label = label
        self._confidence = confidence
        self.calls = 0

    def generate(self, *, system: str, user: str) -> str:
        self.calls += 1
        return self._response_text

    def classify(self, *, text: str, examples) -> Classification:
        if self._label is None:
            raise ValueError("no classifier configured")
        return Classification(label=self._label, confidence=self._confidence)


class FailingProvider:
    def generate(self, *, system: str, user: str) -> str:
        raise ValueError("provider unavailable")

    def classify(self, *, text: str, examples) -> Classification:
        raise ValueError("provider unavailable")


@pytest.fixture
def fake_provider_factory():
    def _make(response_text: str = "", label: Optional[str] = None, confidence: float = 0.0):
        return FakeProvider(response_text, label=label, confidence=confidence)
    return _make


@pytest.fixture
def failing_client():
    return LLMClient(provider=FailingProvider())


@pytest.fixture
def now():
    # Wednesday
    return datetime(2024, 5, 15, 10, 0)


@pytest.fixture
def kv():
    return InMemoryStore()


@pytest.fixture
def store(kv):
    return TaskStore(kv)


@pytest.fixture
def prefs_store(kv):
    return PreferencesStore(kv)
