"""Donor scoring: engagement, capacity and affinity scores plus giving summary.

All functions are pure. ``now`` is passed in so the same history always
scores the same way for a given instant.
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from fundrazor.domain.models import Gift, Interaction
from fundrazor.domain.rules import format_amount

ENGAGEMENT_WINDOW_DAYS = 90
ENGAGEMENT_SATURATION_COUNT = 5
DAYS_PER_YEAR = 365
RECENCY_DECAY_PER_YEAR = 20

# (minimum average gift, score), checked top-down.
CAPACITY_BANDS: tuple[tuple[Decimal, int], ...] = (
    (Decimal("10000"), 100),
    (Decimal("5000"), 85),
    (Decimal("1000"), 70),
    (Decimal("500"), 55),
    (Decimal("100"), 40),
)
CAPACITY_FLOOR = 25


@dataclass(frozen=True)
class DonorScores:
    engagement_score: int
    capacity_score: int
    affinity_score: int
    last_gift_date: datetime | None
    last_gift_amount: Decimal | None
    total_lifetime_giving: Decimal

    def as_person_fields(self) -> dict[str, object]:
        return {
            "engagement_score": self.engagement_score,
            "capacity_score": self.capacity_score,
            "affinity_score": self.affinity_score,
            "last_gift_date": self.last_gift_date.isoformat() if self.last_gift_date else None,
            "last_gift_amount": (
                format_amount(self.last_gift_amount) if self.last_gift_amount is not None else None
            ),
            "total_lifetime_giving": format_amount(self.total_lifetime_giving),
        }


def round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def days_between(earlier: datetime, later: datetime) -> float:
    return (later - earlier).total_seconds() / 86400


def newest_first(gifts: Sequence[Gift]) -> list[Gift]:
    return sorted(gifts, key=lambda gift: gift.received_at, reverse=True)


def total_giving(gifts: Sequence[Gift]) -> Decimal:
    return sum((gift.amount for gift in gifts), Decimal("0"))


def engagement_score(interactions: Sequence[Interaction], now: datetime) -> int:
    if not interactions:
        return 0
    recent = [
        i for i in interactions if days_between(i.occurred_at, now) <= ENGAGEMENT_WINDOW_DAYS
    ]
    score = min(100.0, len(recent) / ENGAGEMENT_SATURATION_COUNT * 100)
    return round_half_up(score)


def capacity_score(gifts: Sequence[Gift]) -> int:
    if not gifts:
        return 0
    avg_gift = total_giving(gifts) / len(gifts)
    for threshold, score in CAPACITY_BANDS:
        if avg_gift >= threshold:
            return score
    return CAPACITY_FLOOR


def affinity_score(
    gifts: Sequence[Gift], interactions: Sequence[Interaction], now: datetime
) -> int:
    """Blend of engagement, capacity and how recently the donor last gave.

    Recency starts at 100 for a gift today and loses 20 points per year.
    """
    if not gifts:
        return 0
    avg_score = (engagement_score(interactions, now) + capacity_score(gifts)) / 2
    latest = newest_first(gifts)[0]
    years_since = days_between(latest.received_at, now) / DAYS_PER_YEAR
    recency = max(0.0, 100 - years_since * RECENCY_DECAY_PER_YEAR)
    return round_half_up((avg_score + recency) / 2)


def score_donor(
    gifts: Sequence[Gift], interactions: Sequence[Interaction], now: datetime
) -> DonorScores:
    ordered = newest_first(gifts)
    last_gift = ordered[0] if ordered else None
    return DonorScores(
        engagement_score=engagement_score(interactions, now),
        capacity_score=capacity_score(ordered),
        affinity_score=affinity_score(ordered, interactions, now),
        last_gift_date=last_gift.received_at if last_gift else None,
        last_gift_amount=last_gift.amount if last_gift else None,
        total_lifetime_giving=total_giving(ordered),
    )
