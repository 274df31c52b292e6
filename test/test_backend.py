from datetime import datetime

import pytest
from prometheus_client import REGISTRY

from api.backend import CommandBackend
from integration.notifier import LoggingNotifier
from llm.llm_client import LLMClient
from llm.providers.mock_provider import MockProvider
from todo_agent.models import RecurrenceRule
from todo_agent.errors import InvalidCommandError, TaskNotFoundError


def _backend(store, prefs_store, provider):
    return CommandBackend(store, prefs_store, client=LLMClient(provider=provider), notifier=LoggingNotifier())


def _count(kind, route):
    return REGISTRY.get_sample_value("todo_commands_total", {"type": kind, "route": route}) or 0.0


def test_rule_command_and_auto_tag(store, prefs_store, fake_provider_factory, now):
    backend = _backend(store, prefs_store, fake_provider_factory(label="errand", confidence=0.9))
    before = _count("add", "rule")

    outcome = backend.submit("add buy milk", now)
    assert outcome.route == "rule"
    assert outcome.message == "Added task: buy milk"
    assert outcome.tasks[0].tags == ["errand"]
    assert _count("add", "rule") == before + 1


def test_explicit_tag_skips_classifier(store, prefs_store, fake_provider_factory, now):
    backend = _backend(store, prefs_store, fake_provider_factory(label="errand", confidence=0.9))
    assert backend.submit("add report #work", now).tasks[0].tags == ["work"]


def test_intent_route(store, prefs_store, fake_provider_factory, now):
    backend = _backend(store, prefs_store, fake_provider_factory(label="delete_task", confidence=0.9))
    backend.submit("add milk run #home", now)
    backend.submit("add milk #home", now)

    outcome = backend.submit("erase the milk", now)
    assert outcome.route == "intent"
    assert outcome.command.type == "delete"
    assert len(store.tasks) == 1


def test_extraction_route(store, prefs_store, fake_provider_factory, now):
    provider = fake_provider_factory('{"title":"Call mom","due":"tomorrow at 5pm","tags":[],"priority":null}')
    backend = _backend(store, prefs_store, provider)

    outcome = backend.submit("call mom tomorrow at 5pm", now)
    assert outcome.route == "extraction"
    task = store.tasks[0]
    assert task.title == "Call mom"
    assert task.due_date == datetime(2024, 5, 16, 17, 0)
    assert task.tags == ["general"]


def test_extraction_falls_back_to_heuristics(store, prefs_store, failing_client, now):
    backend = CommandBackend(store, prefs_store, client=failing_client, notifier=LoggingNotifier())
    outcome = backend.submit("remind me to call mom tomorrow at 5pm", now)
    assert outcome.route == "extraction"
    task = store.tasks[0]
    assert task.title == "Call mom"
    assert task.reminders[0].time == datetime(2024, 5, 16, 16, 30)
    assert task.reminders[0].type == "relative"


def test_command_looking_input_is_not_a_task(store, prefs_store, fake_provider_factory, now):
    backend = _backend(store, prefs_store, fake_provider_factory("{}"))
    outcome = backend.submit("settings please", now)
    assert outcome.command is None
    assert outcome.route == "not_a_task"
    assert store.tasks == ()


def test_preferences_persist(store, prefs_store, fake_provider_factory, now):
    backend = _backend(store, prefs_store, fake_provider_factory())
    backend.submit("sort by priority", now)
    assert prefs_store.load().sort_criteria == "priority"


def test_completing_recurring_task_regenerates(store, prefs_store, fake_provider_factory, now):
    backend = _backend(store, prefs_store, fake_provider_factory())
    backend.submit("add water plants", now)
    backend.submit("repeat daily water plants", now)
    backend.submit("tick water plants", now)

    assert [t.status for t in store.tasks] == ["completed", "pending"]
    assert store.tasks[1].due_date == datetime(2024, 5, 16, 23, 59, 59)


def test_toggle_and_errors(store, prefs_store, fake_provider_factory, now):
    backend = _backend(store, prefs_store, fake_provider_factory())
    backend.submit("add report", now)
    task_id = store.tasks[0].id

    assert backend.toggle(task_id, now).done
    assert not backend.toggle(task_id, now).done
    with pytest.raises(TaskNotFoundError):
        backend.toggle("missing")
    with pytest.raises(InvalidCommandError):
        backend.submit("   ")


def test_offline_provider_keeps_due_date(store, prefs_store, now):
    backend = _backend(store, prefs_store, MockProvider())
    outcome = backend.submit("remind me to call mom tomorrow at 5pm", now)

    assert outcome.route == "extraction"
    task = store.tasks[0]
    assert task.title == "Call mom"
    assert task.due_date == datetime(2024, 5, 16, 17, 0)
    assert task.reminders[0].time == datetime(2024, 5, 16, 16, 30)


def test_update_fields_feed_conflict_detection(store, prefs_store, fake_provider_factory, now):
    backend = _backend(store, prefs_store, fake_provider_factory())
    backend.submit("add report", now)
    backend.submit("add slides", now)
    report, slides = (t.id for t in store.tasks)

    updated = backend.update(
        report,
        {
            "notes": "first draft",
            "due_date": datetime(2024, 5, 16, 12, 0),
            "start_time": datetime(2024, 5, 16, 9, 0),
            "estimated_duration_min": 90,
        },
    )
    assert updated.notes == "first draft"
    assert updated.estimated_duration_min == 90
    assert store.snapshot.find(report) == updated

    backend.update(slides, {"due_date": datetime(2024, 5, 16, 10, 0), "tags": ["#Work"]})
    assert store.snapshot.find(slides).tags == ["work"]

    result = backend.conflicts(report)
    assert result.has_conflict
    assert [t.id for t in result.conflicting_tasks] == [slides]


def test_update_rejects_bad_values(store, prefs_store, fake_provider_factory, now):
    backend = _backend(store, prefs_store, fake_provider_factory())
    backend.submit("add report", now)
    task_id = store.tasks[0].id

    with pytest.raises(InvalidCommandError):
        backend.update(task_id, {"title": "   "})
    with pytest.raises(TaskNotFoundError):
        backend.update("missing", {"notes": "x"})
    assert store.tasks[0].title == "report"


def test_batch_complete_and_archive(store, prefs_store, fake_provider_factory, now):
    backend = _backend(store, prefs_store, fake_provider_factory())
    for text in ("add water plants", "add report", "add slides"):
        backend.submit(text, now)
    plants, report, slides = (t.id for t in store.tasks)
    backend.update(plants, {"due_date": datetime(2024, 5, 15, 18, 0), "recurring": RecurrenceRule(type="daily")}, now)

    assert backend.batch_complete([plants, report, "missing"], now) == 2
    assert backend.batch_complete([report], now) == 0
    statuses = [t.status for t in store.tasks]
    assert statuses == ["completed", "completed", "pending", "pending"]
    assert store.tasks[3].title == "water plants"
    assert store.tasks[3].due_date == datetime(2024, 5, 16, 18, 0)

    assert backend.batch_archive([report, slides], now) == 2
    assert [t.status for t in store.tasks][1:3] == ["archived", "archived"]
