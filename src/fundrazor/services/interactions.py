from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime
from typing import Any
from uuid import uuid4

import structlog

from fundrazor.domain import rules
from fundrazor.domain.models import Interaction
from fundrazor.domain.stages import InteractionType
from fundrazor.services.events import EventLogger, log_event
from fundrazor.services.persons import find_person
from fundrazor.services.scoring import recompute_donor_scores
from fundrazor.services.utils import utc_now_iso
from fundrazor.store.sqlite import SqliteStore

logger = structlog.get_logger(__name__)

EDITABLE_FIELDS = {"type", "occurred_at", "owner_id", "notes", "source"}


def add_interaction(
    store: SqliteStore,
    person_id: str,
    interaction_type: str,
    occurred_at: datetime,
    owner_id: str | None = None,
    notes: str | None = None,
    source: str | None = None,
    events: EventLogger | None = None,
    now: datetime | None = None,
) -> Interaction:
    rules.require(person_id, "person id")
    rules.require(interaction_type, "interaction type")
    rules.validate_enum(interaction_type, [t.value for t in InteractionType], "type")
    if occurred_at is None:
        raise rules.ValidationError("occurred date/time is required.")

    interaction_id = str(uuid4())
    with store.session() as session:
        if find_person(session, person_id) is None:
            raise rules.NotFoundError("Person", person_id)
        session.insert(
            "interactions",
            {
                "interaction_id": interaction_id,
                "person_id": person_id,
                "type": interaction_type,
                "occurred_at": rules.as_utc(occurred_at).isoformat(),
                "owner_id": owner_id,
                "notes": notes,
                "source": source,
                "created_at": utc_now_iso(),
            },
        )
        recompute_donor_scores(session, person_id, now)
    logger.info(
        "interaction_created",
        interaction_id=interaction_id,
        person_id=person_id,
        type=interaction_type,
    )
    log_event(events, "created", "interaction", interaction_id, person_id=person_id)
    return get_interaction(store, interaction_id)


def get_interaction(store: SqliteStore, interaction_id: str) -> Interaction:
    row = store.fetch_one(
        "SELECT * FROM interactions WHERE interaction_id = ?", (interaction_id,)
    )
    if row is None:
        raise rules.NotFoundError("Interaction", interaction_id)
    return Interaction.from_row(row)


def list_interactions(store: SqliteStore, person_id: str | None = None) -> list[Interaction]:
    if person_id:
        rows = store.fetch_all(
            "SELECT * FROM interactions WHERE person_id = ? ORDER BY occurred_at DESC",
            (person_id,),
        )
    else:
        rows = store.fetch_all("SELECT * FROM interactions ORDER BY occurred_at DESC")
    return [Interaction.from_row(row) for row in rows]


def update_interaction(
    store: SqliteStore,
    interaction_id: str,
    fields: Mapping[str, Any],
    events: EventLogger | None = None,
    now: datetime | None = None,
) -> Interaction:
    unknown = set(fields) - EDITABLE_FIELDS
    if unknown:
        raise rules.ValidationError(
            f"Cannot update interaction fields: {', '.join(sorted(unknown))}"
        )
    values = dict(fields)
    rules.validate_enum(values.get("type"), [t.value for t in InteractionType], "type")
    if "occurred_at" in values:
        if values["occurred_at"] is None:
            raise rules.ValidationError("occurred date/time is required.")
        values["occurred_at"] = rules.as_utc(values["occurred_at"]).isoformat()

    existing = get_interaction(store, interaction_id)
    with store.session() as session:
        session.update("interactions", "interaction_id", interaction_id, values)
        recompute_donor_scores(session, existing.person_id, now)
    logger.info("interaction_updated", interaction_id=interaction_id, fields=sorted(values))
    log_event(
        events,
        "updated",
        "interaction",
        interaction_id,
        person_id=existing.person_id,
        changed_fields=values,
    )
    return get_interaction(store, interaction_id)


def delete_interaction(
    store: SqliteStore,
    interaction_id: str,
    events: EventLogger | None = None,
    now: datetime | None = None,
) -> Interaction:
    existing = get_interaction(store, interaction_id)
    with store.session() as session:
        session.delete("interactions", "interaction_id", interaction_id)
        recompute_donor_scores(session, existing.person_id, now)
    logger.info("interaction_deleted", interaction_id=interaction_id, person_id=existing.person_id)
    log_event(events, "deleted", "interaction", interaction_id, person_id=existing.person_id)
    return existing
