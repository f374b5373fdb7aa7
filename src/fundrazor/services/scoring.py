from __future__ import annotations

from datetime import datetime

import structlog

from fundrazor.domain import rules
from fundrazor.domain.models import Gift, Interaction
from fundrazor.domain.scoring import DonorScores, score_donor
from fundrazor.services.persons import find_person, list_persons, write_person_fields
from fundrazor.services.utils import utc_now
from fundrazor.store.sqlite import SqliteSession, SqliteStore

logger = structlog.get_logger(__name__)


def recompute_donor_scores(
    session: SqliteSession, person_id: str, now: datetime | None = None
) -> DonorScores | None:
    """Recompute and persist a person's derived scores and giving summary.

    Runs inside the caller's session so the read and the write share one
    transaction with the gift or interaction change that triggered it.
    A missing person is a no-op.
    """
    now = rules.as_utc(now) if now else utc_now()
    if find_person(session, person_id) is None:
        logger.warning("score_recompute_skipped", person_id=person_id, reason="person_not_found")
        return None

    gifts = [
        Gift.from_row(row)
        for row in session.fetch_all(
            "SELECT * FROM gifts WHERE person_id = ? ORDER BY received_at DESC", (person_id,)
        )
    ]
    interactions = [
        Interaction.from_row(row)
        for row in session.fetch_all(
            "SELECT * FROM interactions WHERE person_id = ?", (person_id,)
        )
    ]
    scores = score_donor(gifts, interactions, now)
    write_person_fields(session, person_id, scores.as_person_fields())
    logger.info(
        "donor_scores_updated",
        person_id=person_id,
        engagement=scores.engagement_score,
        capacity=scores.capacity_score,
        affinity=scores.affinity_score,
    )
    return scores


def recompute_all(store: SqliteStore, now: datetime | None = None) -> int:
    now = rules.as_utc(now) if now else utc_now()
    count = 0
    with store.session() as session:
        for person in list_persons(session):
            if recompute_donor_scores(session, person.person_id, now) is not None:
                count += 1
    return count
