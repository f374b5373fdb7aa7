from __future__ import annotations

import sqlite3
from datetime import datetime

import structlog

from fundrazor.domain import rules
from fundrazor.domain.actions import ActionDraft, DonorProfile, evaluate_donor
from fundrazor.domain.models import Gift, Interaction, Person, Task
from fundrazor.domain.stages import UserRole
from fundrazor.services.events import EventLogger, log_event
from fundrazor.services.opportunities import list_opportunities
from fundrazor.services.persons import list_persons
from fundrazor.services.tasks import find_open_task, get_task, insert_task
from fundrazor.services.users import get_user, list_users
from fundrazor.services.utils import utc_now
from fundrazor.store.sqlite import SqliteSession, SqliteStore

logger = structlog.get_logger(__name__)


def resolve_default_owner(
    store: SqliteStore,
    owner_id: str | None = None,
    owner_role: str = UserRole.MGO.value,
) -> str | None:
    """Pick the owner for generated tasks.

    An explicit owner must exist. Without one, the earliest user holding
    ``owner_role`` is used; None when there is no such user.
    """
    if owner_id:
        return get_user(store, owner_id).user_id
    candidates = list_users(store, role=owner_role)
    return candidates[0].user_id if candidates else None


def generate_next_best_actions(
    store: SqliteStore,
    owner_id: str | None = None,
    owner_role: str = UserRole.MGO.value,
    now: datetime | None = None,
    events: EventLogger | None = None,
) -> list[Task]:
    now = rules.as_utc(now) if now else utc_now()
    default_owner = resolve_default_owner(store, owner_id, owner_role)
    if default_owner is None:
        logger.warning("next_best_actions_skipped", reason="no_default_owner", role=owner_role)
        return []

    created: list[str] = []
    failed = 0
    for person in list_persons(store):
        try:
            with store.session() as session:
                created.extend(_recommend_for(session, person, default_owner, now))
        except Exception:
            # One bad record must not stop the batch; this person's inserts roll back.
            failed += 1
            logger.exception("next_best_actions_person_failed", person_id=person.person_id)

    tasks = [get_task(store, task_id) for task_id in created]
    for task in tasks:
        log_event(events, "created", "task", task.task_id, person_id=task.person_id)
    logger.info("next_best_actions_generated", created=len(tasks), failed_persons=failed)
    return tasks


def _recommend_for(
    session: SqliteSession, person: Person, default_owner: str, now: datetime
) -> list[str]:
    profile = _load_profile(session, person)
    task_ids: list[str] = []
    for draft in evaluate_donor(profile, now):
        if find_open_task(session, person.person_id, draft.rule) is not None:
            logger.debug(
                "next_best_action_exists", person_id=person.person_id, rule=draft.rule.value
            )
            continue
        task_id = _insert_draft(session, draft, default_owner)
        if task_id is not None:
            task_ids.append(task_id)
    return task_ids


def _insert_draft(session: SqliteSession, draft: ActionDraft, default_owner: str) -> str | None:
    try:
        return insert_task(
            session,
            owner_id=draft.owner_id or default_owner,
            title=draft.title,
            person_id=draft.person_id,
            description=draft.description,
            reason=draft.reason,
            priority=draft.priority,
            due_date=draft.due_date,
            rule_id=draft.rule.value,
        )
    except sqlite3.IntegrityError as exc:
        # Another run created the same open task between our check and insert.
        if "UNIQUE" not in str(exc):
            raise
        logger.info(
            "next_best_action_race_lost", person_id=draft.person_id, rule=draft.rule.value
        )
        return None


def _load_profile(session: SqliteSession, person: Person) -> DonorProfile:
    gifts = [
        Gift.from_row(row)
        for row in session.fetch_all(
            "SELECT * FROM gifts WHERE person_id = ? ORDER BY received_at DESC",
            (person.person_id,),
        )
    ]
    interactions = [
        Interaction.from_row(row)
        for row in session.fetch_all(
            "SELECT * FROM interactions WHERE person_id = ? ORDER BY occurred_at DESC",
            (person.person_id,),
        )
    ]
    opportunities = list_opportunities(session, person_id=person.person_id)
    return DonorProfile(
        person=person, gifts=gifts, interactions=interactions, opportunities=opportunities
    )
