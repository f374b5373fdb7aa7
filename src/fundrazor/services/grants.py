from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime
from decimal import Decimal
from typing import Any
from uuid import uuid4

import structlog

from fundrazor.domain import rules
from fundrazor.domain.models import Grant
from fundrazor.domain.stages import GrantStage
from fundrazor.services.events import EventLogger, log_event
from fundrazor.services.utils import iso_or_none, utc_now_iso
from fundrazor.store.sqlite import SqliteStore

logger = structlog.get_logger(__name__)

DATE_FIELDS = ("loi_due_date", "application_due_date", "decision_date", "report_due_date")
AMOUNT_FIELDS = ("ask_amount", "awarded_amount")
EDITABLE_FIELDS = {
    "funder_name",
    "funder_contact_id",
    "stage",
    "purpose",
    "owner_id",
    "notes",
    *DATE_FIELDS,
    *AMOUNT_FIELDS,
}


def add_grant(
    store: SqliteStore,
    funder_name: str,
    stage: str = GrantStage.RESEARCH.value,
    purpose: str | None = None,
    ask_amount: str | Decimal | None = None,
    awarded_amount: str | Decimal | None = None,
    owner_id: str | None = None,
    funder_contact_id: str | None = None,
    loi_due_date: datetime | None = None,
    application_due_date: datetime | None = None,
    decision_date: datetime | None = None,
    report_due_date: datetime | None = None,
    notes: str | None = None,
    events: EventLogger | None = None,
) -> Grant:
    rules.require(funder_name, "funder name")
    values = _normalize(
        {
            "funder_name": funder_name.strip(),
            "funder_contact_id": funder_contact_id,
            "stage": stage,
            "purpose": purpose,
            "ask_amount": ask_amount,
            "awarded_amount": awarded_amount,
            "owner_id": owner_id,
            "loi_due_date": loi_due_date,
            "application_due_date": application_due_date,
            "decision_date": decision_date,
            "report_due_date": report_due_date,
            "notes": notes,
        }
    )
    _check_deadlines(values["loi_due_date"], values["application_due_date"])

    now = utc_now_iso()
    grant_id = str(uuid4())
    with store.session() as session:
        session.insert(
            "grants", {"grant_id": grant_id, **values, "created_at": now, "updated_at": now}
        )
    logger.info("grant_created", grant_id=grant_id, funder=funder_name, stage=stage)
    log_event(events, "created", "grant", grant_id)
    return get_grant(store, grant_id)


def get_grant(store: SqliteStore, grant_id: str) -> Grant:
    row = store.fetch_one("SELECT * FROM grants WHERE grant_id = ?", (grant_id,))
    if row is None:
        raise rules.NotFoundError("Grant", grant_id)
    return Grant.from_row(row)


def list_grants(
    store: SqliteStore, owner_id: str | None = None, stage: str | None = None
) -> list[Grant]:
    rules.validate_enum(stage, [s.value for s in GrantStage], "stage")
    clauses: list[str] = []
    params: list[str] = []
    if owner_id:
        clauses.append("owner_id = ?")
        params.append(owner_id)
    if stage:
        clauses.append("stage = ?")
        params.append(stage)
    where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
    rows = store.fetch_all(
        f"SELECT * FROM grants {where} "
        "ORDER BY application_due_date IS NULL, application_due_date, created_at",
        params,
    )
    return [Grant.from_row(row) for row in rows]


def update_grant(
    store: SqliteStore,
    grant_id: str,
    fields: Mapping[str, Any],
    events: EventLogger | None = None,
) -> Grant:
    unknown = set(fields) - EDITABLE_FIELDS
    if unknown:
        raise rules.ValidationError(f"Cannot update grant fields: {', '.join(sorted(unknown))}")
    if "funder_name" in fields:
        rules.require(fields["funder_name"], "funder name")
    values = _normalize(fields)

    existing = get_grant(store, grant_id)
    loi = values["loi_due_date"] if "loi_due_date" in values else iso_or_none(existing.loi_due_date)
    application = (
        values["application_due_date"]
        if "application_due_date" in values
        else iso_or_none(existing.application_due_date)
    )
    _check_deadlines(loi, application)

    values["updated_at"] = utc_now_iso()
    with store.session() as session:
        session.update("grants", "grant_id", grant_id, values)
    logger.info("grant_updated", grant_id=grant_id, fields=sorted(values))
    log_event(events, "updated", "grant", grant_id, changed_fields=values)
    return get_grant(store, grant_id)


def _normalize(fields: Mapping[str, Any]) -> dict[str, Any]:
    values = dict(fields)
    rules.validate_enum(values.get("stage"), [s.value for s in GrantStage], "stage")
    for name in AMOUNT_FIELDS:
        if values.get(name) is not None:
            amount = rules.parse_amount(values[name], name.replace("_", " "))
            values[name] = rules.format_amount(amount)
    for name in DATE_FIELDS:
        if name in values:
            values[name] = iso_or_none(rules.as_utc(values[name]) if values[name] else None)
    return values


def _check_deadlines(loi_due: str | None, application_due: str | None) -> None:
    if loi_due and application_due and loi_due >= application_due:
        raise rules.ValidationError("LOI due date must be before application due date.")
