from __future__ import annotations

import json
from collections.abc import Sequence
from datetime import UTC, date, datetime


def utc_now() -> datetime:
    return datetime.now(UTC).replace(microsecond=0)


def utc_now_iso() -> str:
    return utc_now().isoformat()


def today_iso() -> str:
    return date.today().isoformat()


def iso_or_none(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def json_list(values: Sequence[str] | None) -> str | None:
    if not values:
        return None
    return json.dumps([value.strip() for value in values if value.strip()])
