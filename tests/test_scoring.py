from datetime import UTC, datetime, timedelta
from decimal import Decimal

from fundrazor.domain.models import Gift, Interaction
from fundrazor.domain.scoring import (
    affinity_score,
    capacity_score,
    engagement_score,
    round_half_up,
    score_donor,
)

NOW = datetime(2026, 1, 15, tzinfo=UTC)


def _gift(amount: str, received_at: datetime) -> Gift:
    return Gift(
        gift_id=f"gift-{amount}-{received_at.date()}",
        person_id="person-1",
        amount=Decimal(amount),
        currency="USD",
        received_at=received_at,
        gift_type="one_time",
        designation=None,
        payment_method=None,
        created_at=received_at,
    )


def _touch(days_ago: float, kind: str = "meeting") -> Interaction:
    occurred_at = NOW - timedelta(days=days_ago)
    return Interaction(
        interaction_id=f"i-{days_ago}",
        person_id="person-1",
        type=kind,
        occurred_at=occurred_at,
        owner_id=None,
        notes=None,
        source=None,
        created_at=occurred_at,
    )


def test_empty_history_scores_zero() -> None:
    scores = score_donor([], [], NOW)
    assert scores.engagement_score == 0
    assert scores.capacity_score == 0
    assert scores.affinity_score == 0
    assert scores.last_gift_date is None
    assert scores.last_gift_amount is None
    assert scores.total_lifetime_giving == Decimal("0")


def test_engagement_counts_ninety_day_window() -> None:
    interactions = [_touch(1), _touch(45), _touch(90), _touch(91), _touch(400)]
    assert engagement_score(interactions, NOW) == 60


def test_engagement_saturates_at_five() -> None:
    counts = [engagement_score([_touch(d) for d in range(n)], NOW) for n in range(8)]
    assert counts == [0, 20, 40, 60, 80, 100, 100, 100]
    assert counts == sorted(counts)


def test_capacity_band_boundaries() -> None:
    then = NOW - timedelta(days=10)
    assert capacity_score([_gift("10000", then)]) == 100
    assert capacity_score([_gift("9999.99", then)]) == 85
    assert capacity_score([_gift("5000", then)]) == 85
    assert capacity_score([_gift("1000", then)]) == 70
    assert capacity_score([_gift("999.99", then)]) == 55
    assert capacity_score([_gift("100", then)]) == 40
    assert capacity_score([_gift("99.99", then)]) == 25
    assert capacity_score([_gift("0.01", then)]) == 25


def test_capacity_uses_average_gift() -> None:
    then = NOW - timedelta(days=10)
    assert capacity_score([_gift("1500", then), _gift("500", then)]) == 70


def test_affinity_zero_without_gifts() -> None:
    assert affinity_score([], [_touch(1)], NOW) == 0


def test_affinity_recency_floors_at_zero() -> None:
    old = _gift("50", NOW - timedelta(days=365 * 6))
    # engagement 0, capacity 25, recency 0
    assert affinity_score([old], [], NOW) == round_half_up(12.5 / 2)


def test_round_half_up_rounds_halves_up() -> None:
    assert round_half_up(0.5) == 1
    assert round_half_up(2.5) == 3
    assert round_half_up(2.4999) == 2


def test_total_giving_is_exact_regardless_of_order() -> None:
    gifts = [
        _gift("0.10", NOW - timedelta(days=3)),
        _gift("0.20", NOW - timedelta(days=1)),
        _gift("1234.56", NOW - timedelta(days=2)),
    ]
    forward = score_donor(gifts, [], NOW)
    backward = score_donor(list(reversed(gifts)), [], NOW)
    assert forward.total_lifetime_giving == Decimal("1234.86")
    assert backward.total_lifetime_giving == Decimal("1234.86")
    assert forward.last_gift_amount == Decimal("0.20")
    assert backward.last_gift_date == NOW - timedelta(days=1)


def test_major_donor_scenario() -> None:
    gifts = [
        _gift("12000", datetime(2025, 1, 1, tzinfo=UTC)),
        _gift("8000", datetime(2025, 7, 1, tzinfo=UTC)),
    ]
    interactions = [_touch(d) for d in (1, 5, 10, 20, 40, 80)]

    scores = score_donor(gifts, interactions, NOW)

    assert scores.capacity_score == 100
    assert scores.engagement_score == 100
    recency = 100 - (198 / 365) * 20
    assert scores.affinity_score == round_half_up((100 + recency) / 2)
    assert scores.affinity_score == 95
    assert scores.last_gift_date == datetime(2025, 7, 1, tzinfo=UTC)
    assert scores.total_lifetime_giving == Decimal("20000")
    assert scores.as_person_fields()["total_lifetime_giving"] == "20000.00"
