from pathlib import Path

import pytest

from fundrazor.domain.rules import NotFoundError, ValidationError
from fundrazor.services import persons, users
from fundrazor.store.migrations import SCHEMA_PATH
from fundrazor.store.sqlite import SqliteStore


def _store(tmp_path: Path) -> SqliteStore:
    store = SqliteStore(tmp_path / "test.sqlite")
    store.apply_schema(SCHEMA_PATH)
    return store


def test_new_person_starts_unscored(tmp_path: Path) -> None:
    store = _store(tmp_path)
    person = persons.add_person(store, "Ada", "Lovelace", email="ada@example.org")

    assert person.full_name == "Ada Lovelace"
    assert person.engagement_score == 0
    assert person.capacity_score == 0
    assert person.affinity_score == 0
    assert person.last_gift_date is None


def test_person_validation(tmp_path: Path) -> None:
    store = _store(tmp_path)
    with pytest.raises(ValidationError):
        persons.add_person(store, "", "Lovelace")
    with pytest.raises(ValidationError):
        persons.add_person(store, "Ada", "Lovelace", email="not-an-email")
    with pytest.raises(ValidationError):
        persons.add_person(store, "Ada", "Lovelace", phone="12345")


def test_relationship_scores_are_bounded(tmp_path: Path) -> None:
    store = _store(tmp_path)
    person = persons.add_person(store, "Ada", "Lovelace")

    updated = persons.set_relationship_energy(store, person.person_id, 80)
    assert updated.relationship_energy == 80
    updated = persons.set_relationship_structure(store, person.person_id, 35)
    assert updated.relationship_structure == 35

    with pytest.raises(ValidationError):
        persons.set_relationship_energy(store, person.person_id, 101)


def test_derived_fields_not_directly_editable(tmp_path: Path) -> None:
    store = _store(tmp_path)
    person = persons.add_person(store, "Ada", "Lovelace")
    with pytest.raises(ValidationError):
        persons.update_person(store, person.person_id, {"capacity_score": 100})


def test_search_and_missing_person(tmp_path: Path) -> None:
    store = _store(tmp_path)
    persons.add_person(store, "Ada", "Lovelace")
    persons.add_person(store, "Grace", "Hopper")

    assert [p.first_name for p in persons.list_persons(store, search="hop")] == ["Grace"]
    with pytest.raises(NotFoundError):
        persons.get_person(store, "missing")


def test_duplicate_user_email_rejected(tmp_path: Path) -> None:
    store = _store(tmp_path)
    users.add_user(store, "mgo@example.org", "Maria", "Gomez")
    with pytest.raises(ValidationError):
        users.add_user(store, "mgo@example.org", "Other", "Person")
    with pytest.raises(ValidationError):
        users.add_user(store, "x@example.org", "Bad", "Role", role="INTERN")
    assert [u.role for u in users.list_users(store, role="MGO")] == ["MGO"]
