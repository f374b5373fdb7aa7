from __future__ import annotations

import json
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path


@dataclass
class EventLogger:
    path: Path
    workspace: str
    enabled: bool = True

    def log(
        self,
        *,
        event_type: str,
        entity_type: str,
        entity_id: str,
        person_id: str | None = None,
        changed_fields: Iterable[str] | None = None,
    ) -> None:
        if not self.enabled:
            return
        payload = {
            "ts": datetime.now(UTC).replace(microsecond=0).isoformat(),
            "workspace": self.workspace,
            "entity_type": entity_type,
            "entity_id": entity_id,
            "person_id": person_id,
            "event_type": event_type,
            "changed_fields": sorted(changed_fields or []),
        }
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("a", encoding="utf-8") as handle:
            handle.write(json.dumps(payload) + "\n")


def log_event(
    logger: EventLogger | None,
    event_type: str,
    entity_type: str,
    entity_id: str,
    person_id: str | None = None,
    changed_fields: Iterable[str] | None = None,
) -> None:
    if logger is None:
        return
    logger.log(
        event_type=event_type,
        entity_type=entity_type,
        entity_id=entity_id,
        person_id=person_id,
        changed_fields=changed_fields,
    )
