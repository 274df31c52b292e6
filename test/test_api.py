import importlib

import pytest
from fastapi.testclient import TestClient

from api.backend import CommandBackend
from api.dependencies import get_backend
from integration.notifier import LoggingNotifier
from llm.llm_client import LLMClient


def _import_app():
    # Import lazily so environment variables (if any) can be set before import.
    return importlib.import_module("api.main")


@pytest.fixture
def client(store, prefs_store, fake_provider_factory):
    mod = _import_app()
    provider = fake_provider_factory('{"title":"Call mom","due":"tomorrow","tags":[],"priority":null}')
    backend = CommandBackend(store, prefs_store, client=LLMClient(provider=provider), notifier=LoggingNotifier())
    mod.app.dependency_overrides[get_backend] = lambda: backend
    yield TestClient(mod.app)
    mod.app.dependency_overrides.clear()


def _add(client, text):
    r = client.post("/commands", json={"text": text})
    assert r.status_code == 200
    return r.json()


def test_commands_endpoint(client):
    body = _add(client, "add buy milk #errand !high")
    assert body["message"] == "Added task: buy milk"
    assert body["route"] == "rule"
    assert body["tasks"][0]["tags"] == ["errand"]
    assert body["tasks"][0]["priority"] == "high"
    assert body["tasks"][0]["done"] is False

    body = _add(client, "call mom tomorrow")
    assert body["route"] == "extraction"
    assert body["command"]["type"] == "add"


def test_empty_command_is_rejected(client):
    assert client.post("/commands", json={"text": " "}).status_code == 400


def test_task_endpoints(client):
    first = _add(client, "add report !low")["tasks"][0]["id"]
    second = _add(client, "add slides !high")["tasks"][0]["id"]

    r = client.get("/tasks", params={"sort": "priority"})
    assert [t["id"] for t in r.json()["tasks"]] == [second, first]
    assert client.get("/tasks", params={"sort": "bogus"}).status_code == 400

    r = client.post(f"/tasks/{first}/toggle")
    assert r.json()["task"]["status"] == "completed"

    assert client.delete(f"/tasks/{second}").status_code == 200
    assert client.delete(f"/tasks/{second}").status_code == 404

    r = client.post("/tasks/batch-delete", json={"ids": [first, "nope"]})
    assert r.json()["deleted"] == 1
    assert client.get("/tasks").json()["total"] == 0


def test_conflicts_and_calendar(client):
    task_id = _add(client, "add report")["tasks"][0]["id"]
    r = client.get(f"/tasks/{task_id}/conflicts")
    assert r.json() == {"has_conflict": False, "conflicting_tasks": [], "suggested_time": None}
    assert client.get("/tasks/missing/conflicts").status_code == 404

    r = client.get("/calendar/2024/2")
    weeks = r.json()["weeks"]
    assert len(weeks) == 5
    assert weeks[0][:4] == [None, None, None, None]
    assert weeks[0][4]["date"] == "2024-02-01"
    assert client.get("/calendar/2024/13").status_code == 400


def test_assistant_and_reminders(client):
    r = client.post("/assistant", json={"question": "how am i doing"})
    assert r.json()["kind"] == "progress"

    r = client.post("/reminders/check")
    assert r.json() == {"fired": []}


def test_health_and_metrics(client):
    _add(client, "help")
    assert client.get("/health").json()["status"] == "healthy"

    r = client.get("/metrics")
    assert r.status_code == 200
    assert "text/plain" in r.headers.get("content-type", "")
    assert "todo_commands_total" in r.text
    assert "todo_request_latency_seconds" in r.text


def test_patch_task(client):
    task_id = _add(client, "add report")["tasks"][0]["id"]

    r = client.patch(
        f"/tasks/{task_id}",
        json={"notes": "outline first", "start_time": "2024-05-16T09:00:00", "estimated_duration_min": 45},
    )
    assert r.status_code == 200
    task = r.json()["task"]
    assert task["notes"] == "outline first"
    assert task["start_time"] == "2024-05-16T09:00:00"
    assert task["estimated_duration_min"] == 45
    assert task["title"] == "report"

    assert client.patch(f"/tasks/{task_id}", json={"title": ""}).status_code == 400
    assert client.patch(f"/tasks/{task_id}", json={"priority": "urgent"}).status_code == 422
    assert client.patch("/tasks/missing", json={"notes": "x"}).status_code == 404


def test_batch_status_endpoints(client):
    first = _add(client, "add report")["tasks"][0]["id"]
    second = _add(client, "add slides")["tasks"][0]["id"]

    r = client.post("/tasks/batch-complete", json={"ids": [first, second]})
    assert r.json() == {"status": "completed", "updated": 2}

    r = client.post("/tasks/batch-archive", json={"ids": [first]})
    assert r.json() == {"status": "archived", "updated": 1}

    statuses = {t["id"]: t["status"] for t in client.get("/tasks", params={"include_archived": True}).json()["tasks"]}
    assert statuses == {first: "archived", second: "completed"}
