from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from fundrazor.domain import rules
from fundrazor.domain.models import Gift, Person
from fundrazor.services.persons import list_persons
from fundrazor.services.utils import utc_now
from fundrazor.store.sqlite import SqliteStore


@dataclass(frozen=True)
class LapsedDonor:
    person: Person
    last_gift_year: int
    last_gift_amount: Decimal
    lifetime_giving: Decimal


def lybunt_donors(store: SqliteStore, now: datetime | None = None) -> list[LapsedDonor]:
    """Donors who gave last year but not yet this year."""
    year = (rules.as_utc(now) if now else utc_now()).year
    return _lapsed(store, lambda years: year - 1 in years and year not in years)


def sybunt_donors(store: SqliteStore, now: datetime | None = None) -> list[LapsedDonor]:
    """Donors who gave two or more years ago and not in the last two years."""
    year = (rules.as_utc(now) if now else utc_now()).year
    return _lapsed(
        store,
        lambda years: min(years) <= year - 2 and not years & {year - 1, year},
    )


def _lapsed(store: SqliteStore, matches) -> list[LapsedDonor]:
    gifts_by_person: dict[str, list[Gift]] = defaultdict(list)
    for row in store.fetch_all("SELECT * FROM gifts ORDER BY received_at DESC"):
        gift = Gift.from_row(row)
        gifts_by_person[gift.person_id].append(gift)

    donors: list[LapsedDonor] = []
    for person in list_persons(store):
        gifts = gifts_by_person.get(person.person_id)
        if not gifts:
            continue
        years = {gift.received_at.year for gift in gifts}
        if not matches(years):
            continue
        latest = gifts[0]
        donors.append(
            LapsedDonor(
                person=person,
                last_gift_year=latest.received_at.year,
                last_gift_amount=latest.amount,
                lifetime_giving=sum((gift.amount for gift in gifts), Decimal("0")),
            )
        )
    return donors
