from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from uuid import uuid4

import structlog

from fundrazor.domain import rules
from fundrazor.domain.models import MeetingNote
from fundrazor.services.events import EventLogger, log_event
from fundrazor.services.persons import find_person
from fundrazor.services.utils import json_list, utc_now, utc_now_iso
from fundrazor.store.sqlite import SqliteStore

logger = structlog.get_logger(__name__)

DEFAULT_TITLE = "Untitled Meeting"


def add_meeting_note(
    store: SqliteStore,
    transcription: str | None,
    title: str | None = None,
    person_id: str | None = None,
    donor_name: str | None = None,
    purpose: str | None = None,
    topics: Sequence[str] | None = None,
    key_learnings: Sequence[str] | None = None,
    action_items: Sequence[str] | None = None,
    recorded_at: datetime | None = None,
    events: EventLogger | None = None,
) -> MeetingNote:
    if transcription is None or not transcription.strip():
        raise rules.ValidationError(
            "A transcript is required. Enter the meeting notes manually."
        )

    note_id = str(uuid4())
    with store.session() as session:
        if person_id:
            person = find_person(session, person_id)
            if person is None:
                raise rules.NotFoundError("Person", person_id)
            donor_name = donor_name or person.full_name
        session.insert(
            "meeting_notes",
            {
                "note_id": note_id,
                "person_id": person_id,
                "title": (title or "").strip() or DEFAULT_TITLE,
                "recorded_at": rules.as_utc(recorded_at or utc_now()).isoformat(),
                "transcription": transcription.strip(),
                "purpose": purpose,
                "topics": json_list(topics),
                "key_learnings": json_list(key_learnings),
                "action_items": json_list(action_items),
                "donor_name": donor_name,
                "status": "completed",
                "created_at": utc_now_iso(),
            },
        )
    logger.info(
        "meeting_note_created", note_id=note_id, action_items=len(action_items or [])
    )
    log_event(events, "created", "meeting_note", note_id, person_id=person_id)
    return get_meeting_note(store, note_id)


def get_meeting_note(store: SqliteStore, note_id: str) -> MeetingNote:
    row = store.fetch_one("SELECT * FROM meeting_notes WHERE note_id = ?", (note_id,))
    if row is None:
        raise rules.NotFoundError("Meeting note", note_id)
    return MeetingNote.from_row(row)


def list_meeting_notes(store: SqliteStore, person_id: str | None = None) -> list[MeetingNote]:
    if person_id:
        rows = store.fetch_all(
            "SELECT * FROM meeting_notes WHERE person_id = ? ORDER BY recorded_at DESC, rowid DESC",
            (person_id,),
        )
    else:
        rows = store.fetch_all("SELECT * FROM meeting_notes ORDER BY recorded_at DESC, rowid DESC")
    return [MeetingNote.from_row(row) for row in rows]
