from datetime import UTC, datetime
from pathlib import Path

import pytest

from fundrazor.domain.rules import NotFoundError, ValidationError
from fundrazor.domain.stages import NextActionRule
from fundrazor.services import persons, tasks, users
from fundrazor.store.migrations import SCHEMA_PATH
from fundrazor.store.sqlite import SqliteStore


def _store(tmp_path: Path) -> SqliteStore:
    store = SqliteStore(tmp_path / "test.sqlite")
    store.apply_schema(SCHEMA_PATH)
    return store


def _owner(store: SqliteStore) -> str:
    return users.add_user(store, "mgo@example.org", "Maria", "Gomez").user_id


def test_tasks_sorted_by_priority_then_due(tmp_path: Path) -> None:
    store = _store(tmp_path)
    owner = _owner(store)
    tasks.add_task(store, owner, "Low", priority="low", due_date=datetime(2026, 1, 1, tzinfo=UTC))
    tasks.add_task(store, owner, "Urgent", priority="urgent")
    tasks.add_task(store, owner, "High late", priority="high", due_date=datetime(2026, 5, 1))
    tasks.add_task(store, owner, "High soon", priority="high", due_date=datetime(2026, 2, 1))

    titles = [t.title for t in tasks.list_tasks(store, owner_id=owner)]
    assert titles == ["Urgent", "High soon", "High late", "Low"]


def test_title_filter_is_case_insensitive(tmp_path: Path) -> None:
    store = _store(tmp_path)
    owner = _owner(store)
    tasks.add_task(store, owner, "LYBUNT: Re-engage Ada")
    tasks.add_task(store, owner, "Thank you note")

    found = tasks.list_tasks(store, title_contains="lybunt")
    assert [t.title for t in found] == ["LYBUNT: Re-engage Ada"]


def test_complete_task_is_idempotent(tmp_path: Path) -> None:
    store = _store(tmp_path)
    owner = _owner(store)
    task = tasks.add_task(store, owner, "Call donor")

    done = tasks.complete_task(store, task.task_id, completed_at=datetime(2026, 3, 2, tzinfo=UTC))
    again = tasks.complete_task(store, task.task_id)

    assert done.completed is True
    assert again.completed_at == datetime(2026, 3, 2, tzinfo=UTC)
    assert tasks.list_tasks(store, completed=False) == []


def test_find_open_task_matches_rule_tag_or_keyword(tmp_path: Path) -> None:
    store = _store(tmp_path)
    owner = _owner(store)
    person = persons.add_person(store, "Ada", "Lovelace")
    tasks.add_task(store, owner, "Follow up with Ada after gala", person_id=person.person_id)

    with store.session() as session:
        tasks.insert_task(
            session,
            owner_id=owner,
            title="Anything",
            person_id=person.person_id,
            description=None,
            reason=None,
            priority="high",
            due_date=None,
            rule_id=NextActionRule.LYBUNT.value,
        )

    assert tasks.find_open_task(store, person.person_id, NextActionRule.LYBUNT) is not None
    assert tasks.find_open_task(store, person.person_id, NextActionRule.EVENT_FOLLOW_UP) is not None
    assert tasks.find_open_task(store, person.person_id, NextActionRule.CULTIVATION_CALL) is None


def test_invalid_priority_rejected(tmp_path: Path) -> None:
    store = _store(tmp_path)
    owner = _owner(store)
    with pytest.raises(ValidationError):
        tasks.add_task(store, owner, "Call", priority="whenever")


def test_missing_task(tmp_path: Path) -> None:
    store = _store(tmp_path)
    with pytest.raises(NotFoundError):
        tasks.complete_task(store, "missing")
