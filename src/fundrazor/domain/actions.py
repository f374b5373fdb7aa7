"""Next-best-action rules.

``evaluate_donor`` looks at one donor's history and returns the follow-up
tasks the rules recommend. It never touches the store: checking for an
existing open task and inserting new ones is the caller's job.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from fundrazor.domain.models import Gift, Interaction, Opportunity, Person
from fundrazor.domain.rules import format_amount
from fundrazor.domain.scoring import days_between, newest_first
from fundrazor.domain.stages import InteractionType, NextActionRule, TaskPriority

CULTIVATION_MIN_ENGAGEMENT = 70
CULTIVATION_MIN_DAYS_SINCE_GIFT = 180
EVENT_FOLLOW_UP_WINDOW_DAYS = 7
HIGH_CAPACITY_MIN = 60
STALLED_STAGE_DAYS = 90
EMAIL_ENGAGEMENT_WINDOW_DAYS = 30
EMAIL_ENGAGEMENT_MIN_COUNT = 3

EMAIL_TYPES = {InteractionType.EMAIL_OPEN.value, InteractionType.EMAIL_CLICK.value}


@dataclass(frozen=True)
class DonorProfile:
    person: Person
    gifts: Sequence[Gift] = field(default_factory=tuple)
    interactions: Sequence[Interaction] = field(default_factory=tuple)
    opportunities: Sequence[Opportunity] = field(default_factory=tuple)


@dataclass(frozen=True)
class ActionDraft:
    rule: NextActionRule
    person_id: str
    title: str
    description: str
    reason: str
    priority: str
    due_date: datetime
    # None means "use the run's default owner".
    owner_id: str | None = None


def evaluate_donor(profile: DonorProfile, now: datetime) -> list[ActionDraft]:
    drafts: list[ActionDraft] = []
    for rule in (
        _lybunt,
        _cultivation_call,
        _event_follow_up,
        _stalled_opportunity,
        _create_opportunity,
    ):
        draft = rule(profile, now)
        if draft is not None:
            drafts.append(draft)
    return drafts


def _lybunt(profile: DonorProfile, now: datetime) -> ActionDraft | None:
    person = profile.person
    last_year = now.year - 1
    gifts = newest_first(profile.gifts)
    prior_year_gift = next((g for g in gifts if g.received_at.year == last_year), None)
    gave_this_year = any(g.received_at.year == now.year for g in gifts)
    if prior_year_gift is None or gave_this_year:
        return None
    return ActionDraft(
        rule=NextActionRule.LYBUNT,
        person_id=person.person_id,
        title=f"LYBUNT: Re-engage {person.full_name}",
        description=(
            f"Personal renewal outreach needed. {person.first_name} gave "
            f"${format_amount(prior_year_gift.amount)} in {last_year} but hasn't renewed yet."
        ),
        reason="Gave last year but not this year - high priority for retention",
        priority=TaskPriority.HIGH.value,
        due_date=now + timedelta(days=7),
    )


def _cultivation_call(profile: DonorProfile, now: datetime) -> ActionDraft | None:
    person = profile.person
    if (person.engagement_score or 0) < CULTIVATION_MIN_ENGAGEMENT:
        return None
    if person.last_gift_date is None:
        return None
    days_since = days_between(person.last_gift_date, now)
    if days_since <= CULTIVATION_MIN_DAYS_SINCE_GIFT:
        return None
    return ActionDraft(
        rule=NextActionRule.CULTIVATION_CALL,
        person_id=person.person_id,
        title=f"Schedule cultivation call with {person.full_name}",
        description=(
            f"High engagement ({person.engagement_score}%) but last gift was "
            f"{round(days_since)} days ago. Time for a personal touch."
        ),
        reason="High engagement score with no recent giving - ready for cultivation",
        priority=TaskPriority.HIGH.value,
        due_date=now + timedelta(days=3),
    )


def _event_follow_up(profile: DonorProfile, now: datetime) -> ActionDraft | None:
    person = profile.person
    attended = any(
        i.type == InteractionType.EVENT.value
        and days_between(i.occurred_at, now) <= EVENT_FOLLOW_UP_WINDOW_DAYS
        for i in profile.interactions
    )
    if not attended or (person.capacity_score or 0) < HIGH_CAPACITY_MIN:
        return None
    return ActionDraft(
        rule=NextActionRule.EVENT_FOLLOW_UP,
        person_id=person.person_id,
        title=f"Follow up with {person.full_name} after event",
        description=(
            f"{person.first_name} attended an event recently and has capacity score of "
            f"{person.capacity_score}%. Send personalized follow-up with soft ask."
        ),
        reason="Recent event attendance with high capacity - strike while iron is hot",
        priority=TaskPriority.URGENT.value,
        due_date=now + timedelta(days=2),
    )


def _stalled_opportunity(profile: DonorProfile, now: datetime) -> ActionDraft | None:
    person = profile.person
    stalled = next(
        (o for o in profile.opportunities if (o.days_in_stage or 0) > STALLED_STAGE_DAYS),
        None,
    )
    if stalled is None:
        return None
    return ActionDraft(
        rule=NextActionRule.STALLED_OPPORTUNITY,
        person_id=person.person_id,
        title=f"Advance opportunity for {person.full_name}",
        description=(
            f'Opportunity has been in "{stalled.stage}" stage for {stalled.days_in_stage} days. '
            "Schedule meeting to advance or close."
        ),
        reason="Opportunity stalled - needs action to prevent pipeline decay",
        priority=TaskPriority.MEDIUM.value,
        due_date=now + timedelta(days=5),
        owner_id=stalled.owner_id,
    )


def _create_opportunity(profile: DonorProfile, now: datetime) -> ActionDraft | None:
    person = profile.person
    recent_emails = [
        i
        for i in profile.interactions
        if i.type in EMAIL_TYPES
        and days_between(i.occurred_at, now) <= EMAIL_ENGAGEMENT_WINDOW_DAYS
    ]
    if len(recent_emails) < EMAIL_ENGAGEMENT_MIN_COUNT:
        return None
    if (person.capacity_score or 0) < HIGH_CAPACITY_MIN or profile.opportunities:
        return None
    return ActionDraft(
        rule=NextActionRule.CREATE_OPPORTUNITY,
        person_id=person.person_id,
        title=f"Create opportunity for {person.full_name}",
        description=(
            f"{person.first_name} has opened/clicked {len(recent_emails)} emails in the last "
            f"30 days and has capacity score of {person.capacity_score}%. "
            "Consider adding to pipeline."
        ),
        reason=(
            "High email engagement with no active opportunity - prospect ready for cultivation"
        ),
        priority=TaskPriority.MEDIUM.value,
        due_date=now + timedelta(days=7),
    )
