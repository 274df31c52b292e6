from datetime import datetime

from storage.kv_store import InMemoryStore, JsonFileStore
from storage.preferences_store import PreferencesStore
from storage.task_store import TaskStore, migrate_task
from todo_agent.models import Preferences, Reminder, Task


def test_round_trip(kv):
    store = TaskStore(kv)
    task = Task(
        title="Report",
        tags=["work"],
        due_date=datetime(2024, 5, 16, 9),
        reminders=[Reminder(time=datetime(2024, 5, 16, 8, 30), type="relative")],
    )
    store.mutate(lambda s: s.with_tasks([task]).with_projects(["launch"]))

    reloaded = TaskStore(kv)
    assert reloaded.tasks == (task,)
    assert reloaded.snapshot.projects == ("launch",)


def test_mutate_versions(store):
    assert store.snapshot.version == 0
    store.mutate(lambda s: s.with_tasks([Task(title="a")]))
    assert store.snapshot.version == 1
    store.mutate(lambda s: s)
    assert store.snapshot.version == 1


def test_migrates_legacy_tasks():
    raw = {
        "id": "1",
        "text": "Buy milk",
        "tag": "errand",
        "done": True,
        "createdAt": 1715760000000,
        "dueDate": 1715846400000,
        "priority": "",
        "recurring": {"type": "weekly", "interval": 1, "daysOfWeek": [1]},
    }
    data = migrate_task(raw)
    task = Task.model_validate(data)
    assert task.title == "Buy milk"
    assert task.tags == ["errand"]
    assert task.status == "completed"
    assert task.done
    assert task.created_at == datetime.fromtimestamp(1715760000)
    assert task.priority is None
    assert task.recurring.days_of_week == [1]


def test_unreadable_tasks_are_skipped():
    kv = InMemoryStore({"tasks": [{"id": "x", "title": "  "}, {"id": "y", "title": "ok"}, "junk"]})
    assert [t.id for t in TaskStore(kv).tasks] == ["y"]


def test_json_file_store(tmp_path):
    path = tmp_path / "store.json"
    kv = JsonFileStore(str(path))
    kv.set("darkMode", True)
    assert JsonFileStore(str(path)).get("darkMode") is True

    path.write_text("{not json", encoding="utf-8")
    assert kv.get("darkMode") is None


def test_preferences(kv, prefs_store):
    assert prefs_store.load() == Preferences()
    prefs_store.save(Preferences(sort_criteria="priority", dark_mode=True))
    assert kv.get("sortCriteria") == "priority"
    assert PreferencesStore(kv).load().dark_mode

    kv.set("sortCriteria", "bogus")
    assert prefs_store.load().sort_criteria == "createdAt"
