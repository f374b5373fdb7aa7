from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime
from typing import Protocol
from uuid import uuid4

import structlog

from fundrazor.domain import rules
from fundrazor.domain.models import Task
from fundrazor.domain.stages import PRIORITY_RANK, NextActionRule, TaskPriority
from fundrazor.services.events import EventLogger, log_event
from fundrazor.services.utils import iso_or_none, utc_now_iso
from fundrazor.store.sqlite import SqliteSession, SqliteStore

logger = structlog.get_logger(__name__)


def priority_order(column: str = "priority") -> str:
    whens = " ".join(f"WHEN '{name}' THEN {rank}" for name, rank in PRIORITY_RANK.items())
    return f"CASE {column} {whens} END"


class _Reader(Protocol):
    def fetch_one(self, query: str, params: Iterable[object] | None = None): ...

    def fetch_all(self, query: str, params: Iterable[object] | None = None): ...


def add_task(
    store: SqliteStore,
    owner_id: str,
    title: str,
    person_id: str | None = None,
    description: str | None = None,
    reason: str | None = None,
    priority: str = TaskPriority.MEDIUM.value,
    due_date: datetime | None = None,
    events: EventLogger | None = None,
) -> Task:
    rules.require(title, "task title")
    rules.require(owner_id, "owner id")
    rules.validate_enum(priority, [p.value for p in TaskPriority], "priority")

    with store.session() as session:
        task_id = insert_task(
            session,
            owner_id=owner_id,
            title=title.strip(),
            person_id=person_id,
            description=description,
            reason=reason,
            priority=priority,
            due_date=due_date,
        )
    log_event(events, "created", "task", task_id, person_id=person_id)
    return get_task(store, task_id)


def insert_task(
    session: SqliteSession,
    *,
    owner_id: str,
    title: str,
    person_id: str | None,
    description: str | None,
    reason: str | None,
    priority: str,
    due_date: datetime | None,
    rule_id: str | None = None,
) -> str:
    task_id = str(uuid4())
    session.insert(
        "tasks",
        {
            "task_id": task_id,
            "person_id": person_id,
            "owner_id": owner_id,
            "title": title,
            "description": description,
            "reason": reason,
            "priority": priority,
            "due_date": iso_or_none(rules.as_utc(due_date) if due_date else None),
            "completed": 0,
            "completed_at": None,
            "rule_id": rule_id,
            "created_at": utc_now_iso(),
        },
    )
    logger.info("task_created", task_id=task_id, title=title, rule_id=rule_id)
    return task_id


def get_task(db: _Reader, task_id: str) -> Task:
    row = db.fetch_one("SELECT * FROM tasks WHERE task_id = ?", (task_id,))
    if row is None:
        raise rules.NotFoundError("Task", task_id)
    return Task.from_row(row)


def list_tasks(
    db: _Reader,
    owner_id: str | None = None,
    person_id: str | None = None,
    completed: bool | None = None,
    title_contains: str | None = None,
    limit: int | None = None,
) -> list[Task]:
    clauses: list[str] = []
    params: list[object] = []
    if owner_id:
        clauses.append("owner_id = ?")
        params.append(owner_id)
    if person_id:
        clauses.append("person_id = ?")
        params.append(person_id)
    if completed is not None:
        clauses.append("completed = ?")
        params.append(1 if completed else 0)
    if title_contains:
        clauses.append("LOWER(title) LIKE ? ESCAPE '\\'")
        params.append(f"%{_escape_like(title_contains.lower())}%")
    where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
    query = f"SELECT * FROM tasks {where} ORDER BY {priority_order()}, due_date IS NULL, due_date"
    if limit is not None:
        query += " LIMIT ?"
        params.append(limit)
    return [Task.from_row(row) for row in db.fetch_all(query, params)]


def find_open_task(db: _Reader, person_id: str, rule: NextActionRule) -> Task | None:
    """Open task already covering ``rule`` for this person.

    Generated tasks match on their rule tag. Manual tasks carry no tag, so they
    match when the title contains the rule keyword.
    """
    row = db.fetch_one(
        "SELECT * FROM tasks WHERE person_id = ? AND completed = 0 "
        "AND (rule_id = ? OR (rule_id IS NULL AND LOWER(title) LIKE ? ESCAPE '\\')) "
        "LIMIT 1",
        (person_id, rule.value, f"%{_escape_like(rule.keyword.lower())}%"),
    )
    return Task.from_row(row) if row else None


def complete_task(
    store: SqliteStore,
    task_id: str,
    completed_at: datetime | None = None,
    events: EventLogger | None = None,
) -> Task:
    existing = get_task(store, task_id)
    if existing.completed:
        return existing
    stamp = rules.as_utc(completed_at).isoformat() if completed_at else utc_now_iso()
    with store.session() as session:
        session.update("tasks", "task_id", task_id, {"completed": 1, "completed_at": stamp})
    logger.info("task_completed", task_id=task_id)
    log_event(events, "completed", "task", task_id, person_id=existing.person_id)
    return get_task(store, task_id)


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
