from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime
from decimal import Decimal
from typing import Any
from uuid import uuid4

import structlog

from fundrazor.domain import rules
from fundrazor.domain.models import Gift
from fundrazor.domain.scoring import total_giving as sum_gifts
from fundrazor.domain.stages import Currency, GiftType
from fundrazor.services.events import EventLogger, log_event
from fundrazor.services.persons import find_person
from fundrazor.services.scoring import recompute_donor_scores
from fundrazor.services.utils import utc_now_iso
from fundrazor.store.sqlite import SqliteStore

logger = structlog.get_logger(__name__)

EDITABLE_FIELDS = {
    "person_id",
    "amount",
    "currency",
    "received_at",
    "gift_type",
    "designation",
    "payment_method",
}


def add_gift(
    store: SqliteStore,
    person_id: str,
    amount: str | Decimal,
    received_at: datetime,
    gift_type: str = GiftType.ONE_TIME.value,
    currency: str = Currency.USD.value,
    designation: str | None = None,
    payment_method: str | None = None,
    events: EventLogger | None = None,
    now: datetime | None = None,
) -> Gift:
    rules.require(person_id, "person id")
    parsed_amount = rules.parse_amount(amount, "amount")
    if parsed_amount is None:
        raise rules.ValidationError("amount is required.")
    if received_at is None:
        raise rules.ValidationError("received date is required.")
    rules.validate_enum(gift_type, [g.value for g in GiftType], "gift type")
    rules.validate_enum(currency, [c.value for c in Currency], "currency")

    gift_id = str(uuid4())
    with store.session() as session:
        if find_person(session, person_id) is None:
            raise rules.NotFoundError("Person", person_id)
        session.insert(
            "gifts",
            {
                "gift_id": gift_id,
                "person_id": person_id,
                "amount": rules.format_amount(parsed_amount),
                "currency": currency,
                "received_at": rules.as_utc(received_at).isoformat(),
                "gift_type": gift_type,
                "designation": designation,
                "payment_method": payment_method,
                "created_at": utc_now_iso(),
            },
        )
        recompute_donor_scores(session, person_id, now)
    logger.info(
        "gift_created",
        gift_id=gift_id,
        person_id=person_id,
        amount=rules.format_amount(parsed_amount),
        gift_type=gift_type,
    )
    log_event(events, "created", "gift", gift_id, person_id=person_id)
    return get_gift(store, gift_id)


def get_gift(store: SqliteStore, gift_id: str) -> Gift:
    row = store.fetch_one("SELECT * FROM gifts WHERE gift_id = ?", (gift_id,))
    if row is None:
        raise rules.NotFoundError("Gift", gift_id)
    return Gift.from_row(row)


def list_gifts(store: SqliteStore, person_id: str | None = None) -> list[Gift]:
    logger.debug("gifts_fetch", person_id=person_id)
    if person_id:
        rows = store.fetch_all(
            "SELECT * FROM gifts WHERE person_id = ? ORDER BY received_at DESC", (person_id,)
        )
    else:
        rows = store.fetch_all("SELECT * FROM gifts ORDER BY received_at DESC")
    return [Gift.from_row(row) for row in rows]


def total_giving(store: SqliteStore, person_id: str) -> Decimal:
    return sum_gifts(list_gifts(store, person_id))


def update_gift(
    store: SqliteStore,
    gift_id: str,
    fields: Mapping[str, Any],
    events: EventLogger | None = None,
    now: datetime | None = None,
) -> Gift:
    unknown = set(fields) - EDITABLE_FIELDS
    if unknown:
        raise rules.ValidationError(f"Cannot update gift fields: {', '.join(sorted(unknown))}")

    values = dict(fields)
    if "amount" in values:
        amount = rules.parse_amount(values["amount"], "amount")
        if amount is None:
            raise rules.ValidationError("amount is required.")
        values["amount"] = rules.format_amount(amount)
    if "received_at" in values:
        if values["received_at"] is None:
            raise rules.ValidationError("received date is required.")
        values["received_at"] = rules.as_utc(values["received_at"]).isoformat()
    rules.validate_enum(values.get("gift_type"), [g.value for g in GiftType], "gift type")
    rules.validate_enum(values.get("currency"), [c.value for c in Currency], "currency")

    existing = get_gift(store, gift_id)
    with store.session() as session:
        new_person_id = values.get("person_id", existing.person_id)
        if new_person_id != existing.person_id and find_person(session, new_person_id) is None:
            raise rules.NotFoundError("Person", new_person_id)
        session.update("gifts", "gift_id", gift_id, values)
        # A gift moved to another donor changes both donors' history.
        for person_id in dict.fromkeys((existing.person_id, new_person_id)):
            recompute_donor_scores(session, person_id, now)
    logger.info("gift_updated", gift_id=gift_id, fields=sorted(values))
    log_event(events, "updated", "gift", gift_id, person_id=new_person_id, changed_fields=values)
    return get_gift(store, gift_id)


def delete_gift(
    store: SqliteStore,
    gift_id: str,
    events: EventLogger | None = None,
    now: datetime | None = None,
) -> Gift:
    existing = get_gift(store, gift_id)
    with store.session() as session:
        session.delete("gifts", "gift_id", gift_id)
        recompute_donor_scores(session, existing.person_id, now)
    logger.info(
        "gift_deleted", gift_id=gift_id, person_id=existing.person_id, amount=str(existing.amount)
    )
    log_event(events, "deleted", "gift", gift_id, person_id=existing.person_id)
    return existing
