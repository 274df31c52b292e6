import os

from api import state
from api.backend import CommandBackend
from storage.kv_store import JsonFileStore
from storage.preferences_store import PreferencesStore
from storage.task_store import TaskStore

# Configuration
TODO_DATA_PATH = os.getenv("TODO_DATA_PATH", "data/store.json")


def build_backend(data_path: str = TODO_DATA_PATH) -> CommandBackend:
    kv = JsonFileStore(data_path)
    return CommandBackend(TaskStore(kv), PreferencesStore(kv))


def get_backend() -> CommandBackend:
    if state.backend is None:
        state.backend = build_backend()
    return state.backend
