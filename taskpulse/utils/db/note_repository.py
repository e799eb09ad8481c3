# taskpulse/utils/db/note_repository.py
import copy
import logging
import uuid
from typing import Any, Dict, List, Optional

from taskpulse.utils.clock import SystemClock
from taskpulse.utils.db.models import Note, NoteSection, note_from_row, note_to_row
from taskpulse.utils.db.storage import NOTES_KEY
from taskpulse.utils.error_handler import ValidationError

logger = logging.getLogger(__name__)

NOTE_FIELDS = ("title", "content")


class NoteStore:
    def __init__(self, storage, clock=None):
        self.storage = storage
        self.clock = clock or SystemClock()
        self._notes: Dict[str, Note] = {}
        self.load()

    def load(self) -> None:
        rows = self.storage.load(NOTES_KEY)
        if rows is not None and not isinstance(rows, list):
            logger.warning("Stored notes are not a list; starting empty")
            rows = None
        self._notes = {}
        for row in rows or []:
            note = note_from_row(row)
            if note is not None:
                self._notes[note.id] = note

    def save(self) -> None:
        self.storage.save(NOTES_KEY, [note_to_row(n) for n in self._notes.values()])

    def _get(self, note_id: str) -> Note:
        note = self._notes.get(note_id)
        if note is None:
            raise KeyError(f"No note with id {note_id!r}")
        return note

    def get_all_notes(self) -> List[Note]:
        return [copy.deepcopy(n) for n in self._notes.values()]

    def get_note(self, note_id: str) -> Optional[Note]:
        note = self._notes.get(note_id)
        return copy.deepcopy(note) if note else None

    def add_note(self, title: str) -> str:
        """Create an empty note and return its id."""
        title = (title or "").strip()
        if not title:
            raise ValidationError("Note title is required")
        note = Note(id=str(uuid.uuid4()), title=title, created_at=self.clock.now())
        self._notes[note.id] = note
        self.save()
        logger.info(f"Added note {note.id}: {title}")
        return note.id

    def update_note(self, note_id: str, updates: Dict[str, Any]) -> Note:
        note = self._get(note_id)
        unknown = set(updates) - set(NOTE_FIELDS)
        if unknown:
            raise ValidationError(f"Unknown note field(s): {', '.join(sorted(unknown))}")
        for key, value in updates.items():
            setattr(note, key, "" if value is None else str(value))
        self.save()
        return copy.deepcopy(note)

    def delete_note(self, note_id: str) -> Optional[Note]:
        note = self._notes.pop(note_id, None)
        if note is not None:
            self.save()
            logger.info(f"Deleted note {note_id}")
        return note

    def add_note_section(self, note_id: str, title: str) -> str:
        """Append a section to a note and return the section id."""
        note = self._get(note_id)
        section = NoteSection(id=str(uuid.uuid4()), title=(title or "").strip())
        note.sections.append(section)
        self.save()
        return section.id

    def update_note_section(self, note_id: str, section_id: str, updates: Dict[str, Any]) -> NoteSection:
        note = self._get(note_id)
        unknown = set(updates) - set(NOTE_FIELDS)
        if unknown:
            raise ValidationError(f"Unknown section field(s): {', '.join(sorted(unknown))}")
        for section in note.sections:
            if section.id == section_id:
                for key, value in updates.items():
                    setattr(section, key, "" if value is None else str(value))
                self.save()
                return copy.deepcopy(section)
        raise KeyError(f"No section {section_id!r} in note {note_id!r}")

    def delete_note_section(self, note_id: str, section_id: str) -> bool:
        note = self._get(note_id)
        before = len(note.sections)
        note.sections = [s for s in note.sections if s.id != section_id]
        if len(note.sections) == before:
            return False
        self.save()
        return True
