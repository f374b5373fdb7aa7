from datetime import UTC, datetime
from pathlib import Path

from openpyxl import load_workbook

from fundrazor.services import exports, gifts, persons
from fundrazor.store.migrations import SCHEMA_PATH
from fundrazor.store.sqlite import SqliteStore


def _store(tmp_path: Path) -> SqliteStore:
    store = SqliteStore(tmp_path / "test.sqlite")
    store.apply_schema(SCHEMA_PATH)
    return store


def test_export_excel_has_sheet_per_table(tmp_path: Path) -> None:
    store = _store(tmp_path)
    person = persons.add_person(store, "Ada", "Lovelace")
    gifts.add_gift(store, person.person_id, "100", datetime(2026, 1, 1, tzinfo=UTC))
    out = tmp_path / "exports" / "crm.xlsx"

    exports.export_excel(store, out)

    wb = load_workbook(out)
    assert wb.sheetnames == exports.TABLES
    rows = list(wb["gifts"].iter_rows(values_only=True))
    assert rows[0][0] == "gift_id"
    assert rows[1][2] == "100.00"


def test_csv_snapshot_writes_headers_for_empty_tables(tmp_path: Path) -> None:
    store = _store(tmp_path)
    out_dir = tmp_path / "snapshot"

    exports.export_csv_tables(store, out_dir)

    header = (out_dir / "grants.csv").read_text(encoding="utf-8").splitlines()[0]
    assert header.startswith("grant_id,funder_name")
