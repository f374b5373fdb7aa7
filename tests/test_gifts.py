from datetime import UTC, datetime
from decimal import Decimal
from pathlib import Path

import pytest

from fundrazor.domain.rules import NotFoundError, ValidationError
from fundrazor.services import gifts, persons, scoring
from fundrazor.services.events import EventLogger
from fundrazor.store.migrations import SCHEMA_PATH
from fundrazor.store.sqlite import SqliteStore

NOW = datetime(2026, 3, 1, tzinfo=UTC)


def _store(tmp_path: Path) -> SqliteStore:
    store = SqliteStore(tmp_path / "test.sqlite")
    store.apply_schema(SCHEMA_PATH)
    return store


def test_add_gift_recomputes_donor_scores(tmp_path: Path) -> None:
    store = _store(tmp_path)
    person = persons.add_person(store, "Ada", "Lovelace")

    gifts.add_gift(store, person.person_id, "250.50", datetime(2026, 2, 1, tzinfo=UTC), now=NOW)

    refreshed = persons.get_person(store, person.person_id)
    assert refreshed.total_lifetime_giving == Decimal("250.50")
    assert refreshed.last_gift_amount == Decimal("250.50")
    assert refreshed.last_gift_date == datetime(2026, 2, 1, tzinfo=UTC)
    assert refreshed.capacity_score == 40
    assert refreshed.engagement_score == 0
    assert refreshed.affinity_score > 0


def test_lifetime_giving_is_exact_decimal_sum(tmp_path: Path) -> None:
    store = _store(tmp_path)
    person = persons.add_person(store, "Ada", "Lovelace")
    for amount in ("0.10", "0.20", "1000"):
        gifts.add_gift(store, person.person_id, amount, datetime(2026, 1, 5, tzinfo=UTC), now=NOW)

    assert persons.get_person(store, person.person_id).total_lifetime_giving == Decimal("1000.30")
    assert gifts.total_giving(store, person.person_id) == Decimal("1000.30")


def test_update_and_delete_recompute_scores(tmp_path: Path) -> None:
    store = _store(tmp_path)
    person = persons.add_person(store, "Ada", "Lovelace")
    gift = gifts.add_gift(
        store, person.person_id, "50", datetime(2026, 1, 5, tzinfo=UTC), now=NOW
    )
    assert persons.get_person(store, person.person_id).capacity_score == 25

    gifts.update_gift(store, gift.gift_id, {"amount": "12000"}, now=NOW)
    updated = persons.get_person(store, person.person_id)
    assert updated.capacity_score == 100
    assert updated.total_lifetime_giving == Decimal("12000")

    gifts.delete_gift(store, gift.gift_id, now=NOW)
    cleared = persons.get_person(store, person.person_id)
    assert cleared.capacity_score == 0
    assert cleared.affinity_score == 0
    assert cleared.total_lifetime_giving == Decimal("0")
    assert cleared.last_gift_date is None
    assert cleared.last_gift_amount is None


def test_moving_gift_recomputes_both_donors(tmp_path: Path) -> None:
    store = _store(tmp_path)
    first = persons.add_person(store, "Ada", "Lovelace")
    second = persons.add_person(store, "Grace", "Hopper")
    gift = gifts.add_gift(store, first.person_id, "700", datetime(2026, 1, 5, tzinfo=UTC), now=NOW)

    gifts.update_gift(store, gift.gift_id, {"person_id": second.person_id}, now=NOW)

    assert persons.get_person(store, first.person_id).total_lifetime_giving == Decimal("0")
    assert persons.get_person(store, second.person_id).total_lifetime_giving == Decimal("700")
    assert persons.get_person(store, second.person_id).capacity_score == 55


def test_list_gifts_newest_first(tmp_path: Path) -> None:
    store = _store(tmp_path)
    person = persons.add_person(store, "Ada", "Lovelace")
    gifts.add_gift(store, person.person_id, "10", datetime(2025, 1, 1, tzinfo=UTC), now=NOW)
    gifts.add_gift(store, person.person_id, "20", datetime(2026, 1, 1, tzinfo=UTC), now=NOW)

    listed = gifts.list_gifts(store, person.person_id)
    assert [g.amount for g in listed] == [Decimal("20.00"), Decimal("10.00")]


@pytest.mark.parametrize("amount", ["abc", "0", "-5", "NaN"])
def test_invalid_amount_rejected(tmp_path: Path, amount: str) -> None:
    store = _store(tmp_path)
    person = persons.add_person(store, "Ada", "Lovelace")

    with pytest.raises(ValidationError):
        gifts.add_gift(store, person.person_id, amount, NOW)
    assert gifts.list_gifts(store, person.person_id) == []


def test_gift_for_unknown_person_rejected(tmp_path: Path) -> None:
    store = _store(tmp_path)
    with pytest.raises(NotFoundError):
        gifts.add_gift(store, "missing", "100", NOW)


def test_gift_events_logged(tmp_path: Path) -> None:
    store = _store(tmp_path)
    events_path = tmp_path / "events.ndjson"
    events = EventLogger(path=events_path, workspace="test")
    person = persons.add_person(store, "Ada", "Lovelace")

    gifts.add_gift(store, person.person_id, "100", NOW, events=events, now=NOW)

    lines = events_path.read_text(encoding="utf-8").splitlines()
    assert len(lines) == 1
    assert '"entity_type": "gift"' in lines[0]


def test_naive_clock_is_treated_as_utc(tmp_path: Path) -> None:
    store = _store(tmp_path)
    person = persons.add_person(store, "Ada", "Lovelace")

    gifts.add_gift(store, person.person_id, "100", datetime(2025, 6, 1), now=datetime(2026, 3, 1))

    refreshed = persons.get_person(store, person.person_id)
    assert refreshed.last_gift_date == datetime(2025, 6, 1, tzinfo=UTC)
    assert refreshed.capacity_score == 40
    assert len(gifts.list_gifts(store, person.person_id)) == 1


def test_recompute_missing_person_is_noop(tmp_path: Path) -> None:
    store = _store(tmp_path)

    with store.session() as session:
        assert scoring.recompute_donor_scores(session, "missing", NOW) is None
    assert store.fetch_all("SELECT * FROM persons") == []


def test_recompute_all_rewrites_stale_scores(tmp_path: Path) -> None:
    store = _store(tmp_path)
    donor = persons.add_person(store, "Ada", "Lovelace")
    prospect = persons.add_person(store, "Grace", "Hopper")
    gifts.add_gift(store, donor.person_id, "12000", datetime(2026, 2, 1, tzinfo=UTC), now=NOW)
    with store.session() as session:
        for person_id in (donor.person_id, prospect.person_id):
            persons.write_person_fields(
                session,
                person_id,
                {"engagement_score": 99, "capacity_score": 1, "total_lifetime_giving": "5.00"},
            )

    assert scoring.recompute_all(store, now=NOW) == 2

    refreshed = persons.get_person(store, donor.person_id)
    assert refreshed.engagement_score == 0
    assert refreshed.capacity_score == 100
    assert refreshed.total_lifetime_giving == Decimal("12000")
    blank = persons.get_person(store, prospect.person_id)
    assert blank.engagement_score == 0
    assert blank.capacity_score == 0
    assert blank.total_lifetime_giving == Decimal("0")
