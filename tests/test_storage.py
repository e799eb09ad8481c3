# tests/test_storage.py

import pytest

from taskpulse.utils.db.storage import TASKS_KEY, JsonStorage
from taskpulse.utils.error_handler import StorageError


def test_missing_document_loads_as_none(json_storage):
    assert json_storage.load(TASKS_KEY) is None


def test_save_then_load(json_storage):
    json_storage.save(TASKS_KEY, [{"id": "1", "title": "Café"}])

    assert json_storage.load(TASKS_KEY) == [{"id": "1", "title": "Café"}]
    assert json_storage.path_for(TASKS_KEY).name == "tasks.json"
    assert list(json_storage.data_dir.iterdir()) == [json_storage.path_for(TASKS_KEY)]


@pytest.mark.parametrize("content", ["", "   \n", "{not json", "[1, 2"])
def test_empty_or_corrupt_document_loads_as_none(json_storage, content):
    json_storage.data_dir.mkdir(parents=True)
    json_storage.path_for(TASKS_KEY).write_text(content, encoding="utf-8")
    assert json_storage.load(TASKS_KEY) is None


def test_failed_write_raises_storage_error(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("a file where the data directory should be")
    storage = JsonStorage(blocker / "data")

    with pytest.raises(StorageError):
        storage.save(TASKS_KEY, [])


def test_unserialisable_data_raises_storage_error(json_storage):
    with pytest.raises(StorageError):
        json_storage.save(TASKS_KEY, [object()])
