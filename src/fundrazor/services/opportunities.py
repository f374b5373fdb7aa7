from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import datetime
from decimal import Decimal
from typing import Any, Protocol
from uuid import uuid4

import structlog

from fundrazor.domain import rules
from fundrazor.domain.models import Opportunity
from fundrazor.domain.stages import OpportunityStage
from fundrazor.services.events import EventLogger, log_event
from fundrazor.services.persons import find_person
from fundrazor.services.utils import iso_or_none, utc_now, utc_now_iso
from fundrazor.store.sqlite import SqliteStore

logger = structlog.get_logger(__name__)

EDITABLE_FIELDS = {
    "owner_id",
    "stage",
    "ask_amount",
    "probability",
    "close_date",
    "days_in_stage",
    "notes",
}


class _Reader(Protocol):
    def fetch_all(self, query: str, params: Iterable[object] | None = None): ...


def add_opportunity(
    store: SqliteStore,
    person_id: str,
    owner_id: str | None = None,
    stage: str = OpportunityStage.PROSPECT.value,
    ask_amount: str | Decimal | None = None,
    probability: int | None = None,
    close_date: datetime | None = None,
    days_in_stage: int | None = 0,
    notes: str | None = None,
    events: EventLogger | None = None,
) -> Opportunity:
    rules.require(person_id, "person id")
    rules.validate_enum(stage, [s.value for s in OpportunityStage], "stage")
    amount = rules.parse_amount(ask_amount, "ask amount")
    rules.validate_range(probability, "probability")
    if days_in_stage is not None and days_in_stage < 0:
        raise rules.ValidationError("days in stage cannot be negative.")
    if close_date is not None and rules.as_utc(close_date) < utc_now():
        logger.warning("opportunity_past_close_date", close_date=close_date.isoformat())

    now = utc_now_iso()
    opportunity_id = str(uuid4())
    with store.session() as session:
        if find_person(session, person_id) is None:
            raise rules.NotFoundError("Person", person_id)
        session.insert(
            "opportunities",
            {
                "opportunity_id": opportunity_id,
                "person_id": person_id,
                "owner_id": owner_id,
                "stage": stage,
                "ask_amount": rules.format_amount(amount) if amount is not None else None,
                "probability": probability,
                "close_date": iso_or_none(rules.as_utc(close_date) if close_date else None),
                "days_in_stage": days_in_stage,
                "notes": notes,
                "created_at": now,
                "updated_at": now,
            },
        )
    logger.info(
        "opportunity_created", opportunity_id=opportunity_id, person_id=person_id, stage=stage
    )
    log_event(events, "created", "opportunity", opportunity_id, person_id=person_id)
    return get_opportunity(store, opportunity_id)


def get_opportunity(store: SqliteStore, opportunity_id: str) -> Opportunity:
    row = store.fetch_one(
        "SELECT * FROM opportunities WHERE opportunity_id = ?", (opportunity_id,)
    )
    if row is None:
        raise rules.NotFoundError("Opportunity", opportunity_id)
    return Opportunity.from_row(row)


def list_opportunities(
    db: _Reader, owner_id: str | None = None, person_id: str | None = None
) -> list[Opportunity]:
    clauses: list[str] = []
    params: list[str] = []
    if owner_id:
        clauses.append("owner_id = ?")
        params.append(owner_id)
    if person_id:
        clauses.append("person_id = ?")
        params.append(person_id)
    where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
    rows = db.fetch_all(f"SELECT * FROM opportunities {where} ORDER BY created_at, rowid", params)
    return [Opportunity.from_row(row) for row in rows]


def update_opportunity(
    store: SqliteStore,
    opportunity_id: str,
    fields: Mapping[str, Any],
    events: EventLogger | None = None,
) -> Opportunity:
    unknown = set(fields) - EDITABLE_FIELDS
    if unknown:
        raise rules.ValidationError(
            f"Cannot update opportunity fields: {', '.join(sorted(unknown))}"
        )
    values = dict(fields)
    rules.validate_enum(values.get("stage"), [s.value for s in OpportunityStage], "stage")
    rules.validate_range(values.get("probability"), "probability")
    if "ask_amount" in values and values["ask_amount"] is not None:
        values["ask_amount"] = rules.format_amount(
            rules.parse_amount(values["ask_amount"], "ask amount")
        )
    if "close_date" in values:
        values["close_date"] = iso_or_none(
            rules.as_utc(values["close_date"]) if values["close_date"] else None
        )

    existing = get_opportunity(store, opportunity_id)
    if "stage" in values and values["stage"] != existing.stage and "days_in_stage" not in values:
        values["days_in_stage"] = 0
    values["updated_at"] = utc_now_iso()
    with store.session() as session:
        session.update("opportunities", "opportunity_id", opportunity_id, values)
    logger.info("opportunity_updated", opportunity_id=opportunity_id, fields=sorted(values))
    log_event(
        events,
        "updated",
        "opportunity",
        opportunity_id,
        person_id=existing.person_id,
        changed_fields=values,
    )
    return get_opportunity(store, opportunity_id)
