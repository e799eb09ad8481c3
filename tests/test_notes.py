# tests/test_notes.py

import pytest

from taskpulse.utils.db.note_repository import NoteStore
from taskpulse.utils.db.storage import NOTES_KEY
from taskpulse.utils.error_handler import ValidationError

from .fakes import NOW, MemoryStorage


@pytest.fixture
def notes(memory_storage, clock):
    return NoteStore(memory_storage, clock=clock)


def test_add_and_update_note(notes, memory_storage):
    note_id = notes.add_note("Groceries")
    note = notes.get_note(note_id)
    assert note.title == "Groceries"
    assert note.created_at == NOW

    notes.update_note(note_id, {"content": "- eggs\n- milk"})
    assert notes.get_note(note_id).content == "- eggs\n- milk"
    assert memory_storage.data[NOTES_KEY][0]["content"] == "- eggs\n- milk"


def test_note_guards(notes):
    with pytest.raises(ValidationError):
        notes.add_note("  ")
    note_id = notes.add_note("Trip")
    with pytest.raises(ValidationError):
        notes.update_note(note_id, {"colour": "red"})
    with pytest.raises(KeyError):
        notes.update_note("missing", {"title": "x"})


def test_sections_lifecycle(notes):
    note_id = notes.add_note("Trip")
    packing = notes.add_note_section(note_id, "Packing")
    route = notes.add_note_section(note_id, "Route")

    updated = notes.update_note_section(note_id, packing, {"content": "passport"})
    assert updated.content == "passport"
    assert [s.title for s in notes.get_note(note_id).sections] == ["Packing", "Route"]

    assert notes.delete_note_section(note_id, route) is True
    assert notes.delete_note_section(note_id, route) is False
    with pytest.raises(KeyError):
        notes.update_note_section(note_id, route, {"title": "gone"})


def test_notes_persist_with_sections(memory_storage, clock):
    first = NoteStore(memory_storage, clock=clock)
    note_id = first.add_note("Ideas")
    first.add_note_section(note_id, "Later")

    reloaded = NoteStore(memory_storage, clock=clock).get_note(note_id)
    assert reloaded == first.get_note(note_id)


def test_delete_note(notes):
    note_id = notes.add_note("Scratch")
    assert notes.delete_note(note_id).title == "Scratch"
    assert notes.delete_note(note_id) is None
    assert notes.get_all_notes() == []


def test_note_with_malformed_sections_still_loads(clock):
    storage = MemoryStorage({NOTES_KEY: [
        {"id": "n1", "title": "Trip", "sections": 4},
        {"id": "n2", "title": "Books", "sections": ["x", {"id": "s1", "title": "Fiction"}]},
    ]})

    loaded = {n.id: n for n in NoteStore(storage, clock=clock).get_all_notes()}

    assert loaded["n1"].sections == []
    assert [s.title for s in loaded["n2"].sections] == ["Fiction"]
