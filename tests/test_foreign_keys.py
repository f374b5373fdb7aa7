import sqlite3
from pathlib import Path

import pytest

from fundrazor.store.migrations import SCHEMA_PATH
from fundrazor.store.sqlite import SqliteStore


def test_foreign_keys_enforced(tmp_path: Path) -> None:
    store = SqliteStore(tmp_path / "test.sqlite")
    store.apply_schema(SCHEMA_PATH)

    with pytest.raises(sqlite3.IntegrityError):
        store.execute(
            "INSERT INTO gifts (gift_id, person_id, amount, currency, received_at, gift_type, "
            "created_at) VALUES (?, ?, ?, ?, ?, ?, ?)",
            (
                "gift-1",
                "missing-person",
                "100.00",
                "USD",
                "2026-01-01T00:00:00+00:00",
                "one_time",
                "2026-01-01T00:00:00+00:00",
            ),
        )
