# tests/conftest.py

import pytest

import taskpulse.config.config_manager as cf
from taskpulse.utils.clock import FixedClock
from taskpulse.utils.db.storage import JsonStorage
from taskpulse.utils.db.task_repository import TaskStore

from .fakes import NOW, MemoryStorage, RecordingDispatcher


@pytest.fixture
def clock():
    return FixedClock(NOW)


@pytest.fixture
def memory_storage():
    return MemoryStorage()


@pytest.fixture
def json_storage(tmp_path):
    return JsonStorage(tmp_path / "data")


@pytest.fixture
def store(memory_storage, clock):
    """A TaskStore without the auto-reconcile listener the CLI attaches."""
    return TaskStore(memory_storage, clock=clock)


@pytest.fixture
def dispatcher():
    return RecordingDispatcher()


@pytest.fixture
def taskpulse_home(tmp_path, monkeypatch):
    """
    Point config_manager.BASE_DIR and USER_CONFIG at a temp directory so
    nothing touches ~/.taskpulse.
    """
    home = tmp_path / "taskpulse_home"
    monkeypatch.setattr(cf, "BASE_DIR", home)
    monkeypatch.setattr(cf, "USER_CONFIG", home / "config.toml")
    yield home
