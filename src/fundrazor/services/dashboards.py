from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal

import structlog

from fundrazor.domain import rules
from fundrazor.domain.stages import OpportunityStage
from fundrazor.services.tasks import priority_order
from fundrazor.services.utils import utc_now
from fundrazor.store.sqlite import SqliteStore

logger = structlog.get_logger(__name__)

DEFAULT_ANNUAL_GOAL = Decimal("15000000")
TOP_LIMIT = 10

STAGE_NEXT_STEPS = {
    OpportunityStage.PROSPECT.value: "Hold a discovery meeting to assess interest and capacity.",
    OpportunityStage.CULTIVATION.value: "Arrange a facility tour and a tailored case statement.",
    OpportunityStage.ASK.value: "Schedule the ask meeting and prepare the gift agreement.",
    OpportunityStage.STEWARD.value: "Send a personal thank you and start the stewardship plan.",
    OpportunityStage.RENEWAL.value: "Meet to discuss a renewed or multi-year commitment.",
}


@dataclass(frozen=True)
class DashboardMetrics:
    ytd_raised: Decimal
    annual_goal: Decimal
    pipeline_value: Decimal
    pipeline_weighted_value: Decimal
    active_donors: int
    avg_gift_size: Decimal
    forecast_90_days: Decimal


@dataclass(frozen=True)
class HomeDashboard:
    metrics: DashboardMetrics
    top_opportunities: list[dict] = field(default_factory=list)
    recent_gifts: list[dict] = field(default_factory=list)
    next_best_actions: list[dict] = field(default_factory=list)


def home_dashboard(
    store: SqliteStore,
    now: datetime | None = None,
    annual_goal: Decimal = DEFAULT_ANNUAL_GOAL,
) -> HomeDashboard:
    now = rules.as_utc(now) if now else utc_now()
    year_start = now.replace(month=1, day=1, hour=0, minute=0, second=0, microsecond=0)

    ytd_amounts = [
        Decimal(row["amount"])
        for row in store.fetch_all(
            "SELECT amount FROM gifts WHERE received_at >= ?", (year_start.isoformat(),)
        )
    ]
    ytd_raised = sum(ytd_amounts, Decimal("0"))
    avg_gift = ytd_raised / len(ytd_amounts) if ytd_amounts else Decimal("0")

    active = store.fetch_one(
        "SELECT COUNT(DISTINCT person_id) AS n FROM gifts WHERE received_at >= ?",
        ((now - timedelta(days=30)).isoformat(),),
    )

    opportunities = store.fetch_all(
        "SELECT o.*, p.first_name, p.last_name FROM opportunities o "
        "LEFT JOIN persons p ON o.person_id = p.person_id "
        "ORDER BY CAST(o.ask_amount AS REAL) DESC"
    )
    pipeline = Decimal("0")
    weighted = Decimal("0")
    forecast = Decimal("0")
    horizon = (now + timedelta(days=90)).isoformat()
    for row in opportunities:
        ask = Decimal(row["ask_amount"] or "0")
        expected = ask * Decimal(row["probability"] or 0) / 100
        pipeline += ask
        weighted += expected
        if row["close_date"] and row["close_date"] <= horizon:
            forecast += expected

    metrics = DashboardMetrics(
        ytd_raised=ytd_raised,
        annual_goal=annual_goal,
        pipeline_value=pipeline,
        pipeline_weighted_value=weighted,
        active_donors=active["n"] if active else 0,
        avg_gift_size=avg_gift,
        forecast_90_days=forecast,
    )
    logger.info(
        "home_dashboard_built", ytd_raised=str(ytd_raised), opportunities=len(opportunities)
    )
    return HomeDashboard(
        metrics=metrics,
        top_opportunities=[_opportunity_card(row) for row in opportunities[:TOP_LIMIT]],
        recent_gifts=_recent_gifts(store),
        next_best_actions=_open_actions(store),
    )


def _opportunity_card(row) -> dict:
    return {
        "opportunity_id": row["opportunity_id"],
        "person": _name(row["first_name"], row["last_name"]),
        "stage": row["stage"],
        "ask_amount": row["ask_amount"],
        "probability": row["probability"],
        "days_in_stage": row["days_in_stage"],
        "next_step": STAGE_NEXT_STEPS.get(row["stage"], "Review status and decide next steps."),
    }


def _recent_gifts(store: SqliteStore) -> list[dict]:
    rows = store.fetch_all(
        "SELECT g.gift_id, g.amount, g.received_at, p.first_name, p.last_name FROM gifts g "
        "LEFT JOIN persons p ON g.person_id = p.person_id "
        "ORDER BY g.received_at DESC LIMIT ?",
        (TOP_LIMIT,),
    )
    return [
        {
            "gift_id": row["gift_id"],
            "amount": row["amount"],
            "received_at": row["received_at"],
            "person": _name(row["first_name"], row["last_name"]),
        }
        for row in rows
    ]


def _open_actions(store: SqliteStore) -> list[dict]:
    rows = store.fetch_all(
        "SELECT t.task_id, t.title, t.description, t.reason, t.priority, t.due_date, "
        "p.first_name, p.last_name FROM tasks t "
        "LEFT JOIN persons p ON t.person_id = p.person_id "
        f"WHERE t.completed = 0 ORDER BY {priority_order('t.priority')}, "
        "t.due_date IS NULL, t.due_date LIMIT ?",
        (TOP_LIMIT,),
    )
    return [
        {
            "task_id": row["task_id"],
            "title": row["title"],
            "description": row["description"] or row["reason"],
            "priority": row["priority"],
            "due_date": row["due_date"],
            "person": _name(row["first_name"], row["last_name"]),
        }
        for row in rows
    ]


def _name(first: str | None, last: str | None) -> str | None:
    if not first and not last:
        return None
    return " ".join(part for part in (first, last) if part)
