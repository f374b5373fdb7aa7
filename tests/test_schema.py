from pathlib import Path

import pytest

from fundrazor.store.migrations import SCHEMA_PATH, SchemaError, load_schema
from fundrazor.store.sqlite import SqliteStore


def test_apply_schema_creates_tables(tmp_path: Path) -> None:
    store = SqliteStore(tmp_path / "test.sqlite")
    store.apply_schema(SCHEMA_PATH)

    rows = store.fetch_all("SELECT name FROM sqlite_master WHERE type='table'")
    names = {row["name"] for row in rows}
    assert {
        "users",
        "persons",
        "gifts",
        "interactions",
        "opportunities",
        "grants",
        "tasks",
        "meeting_notes",
    } <= names


def test_apply_schema_is_idempotent(tmp_path: Path) -> None:
    store = SqliteStore(tmp_path / "test.sqlite")
    store.apply_schema(SCHEMA_PATH)
    store.apply_schema(SCHEMA_PATH)

    row = store.fetch_one("SELECT COUNT(*) AS n FROM __schema_meta")
    assert row["n"] == 1


def test_open_rule_tasks_have_partial_unique_index(tmp_path: Path) -> None:
    store = SqliteStore(tmp_path / "test.sqlite")
    store.apply_schema(SCHEMA_PATH)

    row = store.fetch_one(
        "SELECT sql FROM sqlite_master WHERE type='index' AND name='uq_tasks_person_id_rule_id'"
    )
    assert row is not None
    assert "WHERE completed = 0 AND rule_id IS NOT NULL" in row["sql"]


def test_schema_declares_enums() -> None:
    schema = load_schema(SCHEMA_PATH)
    assert schema.enum_values("task_priority") == ["low", "medium", "high", "urgent"]


def test_unknown_enum_reference_rejected(tmp_path: Path) -> None:
    bad = tmp_path / "bad.yaml"
    bad.write_text(
        "version: 1\n"
        "enums: {}\n"
        "tables:\n"
        "  things:\n"
        "    primary_key: thing_id\n"
        "    fields:\n"
        "      thing_id: {type: uuid, required: true}\n"
        "      kind: {type: enum, enum: missing}\n",
        encoding="utf-8",
    )
    store = SqliteStore(tmp_path / "test.sqlite")
    with pytest.raises(SchemaError):
        store.apply_schema(bad)
