from datetime import UTC, datetime
from decimal import Decimal
from pathlib import Path

from fundrazor.services import analytics, gifts, persons
from fundrazor.store.migrations import SCHEMA_PATH
from fundrazor.store.sqlite import SqliteStore

NOW = datetime(2026, 3, 1, tzinfo=UTC)


def _store(tmp_path: Path) -> SqliteStore:
    store = SqliteStore(tmp_path / "test.sqlite")
    store.apply_schema(SCHEMA_PATH)
    return store


def _donor(store: SqliteStore, name: str, *gift_dates: tuple[int, int, int]) -> str:
    person = persons.add_person(store, name, "Donor")
    for year, month, day in gift_dates:
        received_at = datetime(year, month, day, tzinfo=UTC)
        gifts.add_gift(store, person.person_id, "100", received_at, now=NOW)
    return person.person_id


def test_lybunt_and_sybunt_segments(tmp_path: Path) -> None:
    store = _store(tmp_path)
    _donor(store, "Lapsed", (2024, 5, 1), (2025, 11, 20))
    _donor(store, "Renewed", (2025, 6, 1), (2026, 1, 15))
    _donor(store, "Old", (2022, 3, 1), (2023, 12, 31))
    _donor(store, "Never")

    lybunt = analytics.lybunt_donors(store, now=NOW)
    sybunt = analytics.sybunt_donors(store, now=NOW)

    assert [d.person.first_name for d in lybunt] == ["Lapsed"]
    assert lybunt[0].last_gift_year == 2025
    assert lybunt[0].lifetime_giving == Decimal("200")
    assert [d.person.first_name for d in sybunt] == ["Old"]
    assert sybunt[0].last_gift_year == 2023
