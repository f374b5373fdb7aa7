from __future__ import annotations

import csv
from collections.abc import Iterable
from pathlib import Path

from openpyxl import Workbook

from fundrazor.store.sqlite import SqliteStore

TABLES = [
    "users",
    "persons",
    "gifts",
    "interactions",
    "opportunities",
    "grants",
    "tasks",
    "meeting_notes",
]


def export_excel(store: SqliteStore, out_path: Path) -> None:
    out_path.parent.mkdir(parents=True, exist_ok=True)
    wb = Workbook()
    wb.remove(wb.active)

    for table in TABLES:
        rows = store.fetch_all(f"SELECT * FROM {table}")
        ws = wb.create_sheet(title=table)
        _write_sheet(ws, rows)

    wb.save(out_path)


def export_csv_tables(store: SqliteStore, out_dir: Path) -> None:
    out_dir.mkdir(parents=True, exist_ok=True)
    for table in TABLES:
        rows = store.fetch_all(f"SELECT * FROM {table}")
        headers = list(rows[0].keys()) if rows else _columns(store, table)
        csv_path = out_dir / f"{table}.csv"
        with csv_path.open("w", newline="", encoding="utf-8") as handle:
            writer = csv.writer(handle)
            writer.writerow(headers)
            for row in rows:
                writer.writerow([row[h] for h in headers])


def _columns(store: SqliteStore, table: str) -> list[str]:
    return [row["name"] for row in store.fetch_all(f"PRAGMA table_info({table})")]


def _write_sheet(ws, rows: Iterable) -> None:
    rows = list(rows)
    if not rows:
        return
    headers = list(rows[0].keys())
    ws.append(headers)
    for row in rows:
        ws.append([row[h] for h in headers])
