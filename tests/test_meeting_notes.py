from datetime import UTC, datetime
from pathlib import Path

import pytest

from fundrazor.domain.rules import NotFoundError, ValidationError
from fundrazor.services import meeting_notes, persons
from fundrazor.store.migrations import SCHEMA_PATH
from fundrazor.store.sqlite import SqliteStore


def _store(tmp_path: Path) -> SqliteStore:
    store = SqliteStore(tmp_path / "test.sqlite")
    store.apply_schema(SCHEMA_PATH)
    return store


def test_note_requires_transcript(tmp_path: Path) -> None:
    store = _store(tmp_path)
    with pytest.raises(ValidationError):
        meeting_notes.add_meeting_note(store, "   ")
    assert meeting_notes.list_meeting_notes(store) == []


def test_note_defaults_and_donor_link(tmp_path: Path) -> None:
    store = _store(tmp_path)
    person = persons.add_person(store, "Ada", "Lovelace")

    note = meeting_notes.add_meeting_note(
        store,
        "Discussed the new science wing.",
        person_id=person.person_id,
        topics=["science wing", " naming rights "],
        action_items=["Send proposal"],
        recorded_at=datetime(2026, 2, 10, 15, 30, tzinfo=UTC),
    )

    assert note.title == "Untitled Meeting"
    assert note.status == "completed"
    assert note.donor_name == "Ada Lovelace"
    assert note.topics == ["science wing", "naming rights"]
    assert note.key_learnings == []
    assert note.action_items == ["Send proposal"]


def test_notes_listed_newest_first(tmp_path: Path) -> None:
    store = _store(tmp_path)
    meeting_notes.add_meeting_note(
        store, "First", title="Older", recorded_at=datetime(2026, 1, 1, tzinfo=UTC)
    )
    meeting_notes.add_meeting_note(
        store, "Second", title="Newer", recorded_at=datetime(2026, 2, 1, tzinfo=UTC)
    )

    assert [n.title for n in meeting_notes.list_meeting_notes(store)] == ["Newer", "Older"]


def test_note_for_unknown_person(tmp_path: Path) -> None:
    store = _store(tmp_path)
    with pytest.raises(NotFoundError):
        meeting_notes.add_meeting_note(store, "Notes", person_id="missing")
