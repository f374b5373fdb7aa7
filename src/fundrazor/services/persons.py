from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any, Protocol
from uuid import uuid4

import structlog

from fundrazor.domain import rules
from fundrazor.domain.models import Person
from fundrazor.services.events import EventLogger, log_event
from fundrazor.services.utils import utc_now_iso
from fundrazor.store.sqlite import SqliteSession, SqliteStore

logger = structlog.get_logger(__name__)

EDITABLE_FIELDS = {
    "first_name",
    "last_name",
    "preferred_name",
    "primary_email",
    "primary_phone",
    "organization_name",
    "wealth_band",
    "relationship_energy",
    "relationship_structure",
}
DERIVED_FIELDS = {
    "engagement_score",
    "capacity_score",
    "affinity_score",
    "last_gift_date",
    "last_gift_amount",
    "total_lifetime_giving",
}

LIST_ORDER = "ORDER BY CAST(total_lifetime_giving AS REAL) DESC, created_at, rowid"


class _Reader(Protocol):
    def fetch_one(self, query: str, params: Iterable[object] | None = None): ...

    def fetch_all(self, query: str, params: Iterable[object] | None = None): ...


def add_person(
    store: SqliteStore,
    first_name: str,
    last_name: str,
    email: str | None = None,
    phone: str | None = None,
    organization_name: str | None = None,
    preferred_name: str | None = None,
    wealth_band: str | None = None,
    events: EventLogger | None = None,
) -> Person:
    rules.require(first_name, "first name")
    rules.require(last_name, "last name")
    rules.validate_email(email)
    rules.validate_phone(phone)

    now = utc_now_iso()
    person_id = str(uuid4())
    with store.session() as session:
        session.insert(
            "persons",
            {
                "person_id": person_id,
                "first_name": first_name.strip(),
                "last_name": last_name.strip(),
                "preferred_name": preferred_name,
                "primary_email": email,
                "primary_phone": phone,
                "organization_name": organization_name,
                "wealth_band": wealth_band,
                "engagement_score": 0,
                "capacity_score": 0,
                "affinity_score": 0,
                "total_lifetime_giving": "0.00",
                "created_at": now,
                "updated_at": now,
            },
        )
    logger.info("person_created", person_id=person_id)
    log_event(events, "created", "person", person_id, person_id=person_id)
    return get_person(store, person_id)


def find_person(db: _Reader, person_id: str) -> Person | None:
    row = db.fetch_one("SELECT * FROM persons WHERE person_id = ?", (person_id,))
    return Person.from_row(row) if row else None


def get_person(db: _Reader, person_id: str) -> Person:
    person = find_person(db, person_id)
    if person is None:
        raise rules.NotFoundError("Person", person_id)
    return person


def list_persons(db: _Reader, search: str | None = None) -> list[Person]:
    if search:
        pattern = f"%{search}%"
        rows = db.fetch_all(
            "SELECT * FROM persons WHERE first_name LIKE ? OR last_name LIKE ? "
            f"OR primary_email LIKE ? {LIST_ORDER}",
            (pattern, pattern, pattern),
        )
    else:
        rows = db.fetch_all(f"SELECT * FROM persons {LIST_ORDER}")
    return [Person.from_row(row) for row in rows]


def update_person(
    store: SqliteStore,
    person_id: str,
    fields: Mapping[str, Any],
    events: EventLogger | None = None,
) -> Person:
    unknown = set(fields) - EDITABLE_FIELDS
    if unknown:
        raise rules.ValidationError(f"Cannot update person fields: {', '.join(sorted(unknown))}")
    if "first_name" in fields:
        rules.require(fields["first_name"], "first name")
    if "last_name" in fields:
        rules.require(fields["last_name"], "last name")
    rules.validate_email(fields.get("primary_email"))
    rules.validate_phone(fields.get("primary_phone"))
    rules.validate_range(fields.get("relationship_energy"), "energy score")
    rules.validate_range(fields.get("relationship_structure"), "structure score")

    with store.session() as session:
        if not write_person_fields(session, person_id, fields):
            raise rules.NotFoundError("Person", person_id)
    logger.info("person_updated", person_id=person_id, fields=sorted(fields))
    log_event(events, "updated", "person", person_id, person_id=person_id, changed_fields=fields)
    return get_person(store, person_id)


def set_relationship_energy(store: SqliteStore, person_id: str, score: int) -> Person:
    return update_person(store, person_id, {"relationship_energy": score})


def set_relationship_structure(store: SqliteStore, person_id: str, score: int) -> Person:
    return update_person(store, person_id, {"relationship_structure": score})


def write_person_fields(session: SqliteSession, person_id: str, fields: Mapping[str, Any]) -> bool:
    """Partial update of any person column. Returns False when the person is missing."""
    unknown = set(fields) - EDITABLE_FIELDS - DERIVED_FIELDS
    if unknown:
        raise rules.ValidationError(f"Unknown person fields: {', '.join(sorted(unknown))}")
    values = dict(fields)
    values["updated_at"] = utc_now_iso()
    return session.update("persons", "person_id", person_id, values) > 0
