from __future__ import annotations

from enum import Enum


class UserRole(str, Enum):
    ADMIN = "ADMIN"
    CEO = "CEO"
    DEV_DIRECTOR = "DEV_DIRECTOR"
    MGO = "MGO"
    DATA_OPS = "DATA_OPS"


class GiftType(str, Enum):
    ONE_TIME = "one_time"
    MAJOR = "major"
    RECURRING = "recurring"
    PLANNED = "planned"
    PLEDGE = "pledge"
    IN_KIND = "in_kind"


class Currency(str, Enum):
    USD = "USD"
    EUR = "EUR"
    GBP = "GBP"
    CAD = "CAD"


class InteractionType(str, Enum):
    EMAIL_OPEN = "email_open"
    EMAIL_CLICK = "email_click"
    MEETING = "meeting"
    CALL = "call"
    EVENT = "event"
    NOTE = "note"


class OpportunityStage(str, Enum):
    PROSPECT = "Prospect"
    CULTIVATION = "Cultivation"
    ASK = "Ask"
    STEWARD = "Steward"
    RENEWAL = "Renewal"


class GrantStage(str, Enum):
    RESEARCH = "Research"
    LOI = "LOI"
    SUBMITTED = "Submitted"
    AWARDED = "Awarded"
    DECLINED = "Declined"
    REPORT_DUE = "ReportDue"


class TaskPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


# Sort rank used by task listings and dashboards.
PRIORITY_RANK = {
    TaskPriority.URGENT.value: 1,
    TaskPriority.HIGH.value: 2,
    TaskPriority.MEDIUM.value: 3,
    TaskPriority.LOW.value: 4,
}


class NextActionRule(str, Enum):
    LYBUNT = "lybunt"
    CULTIVATION_CALL = "cultivation_call"
    EVENT_FOLLOW_UP = "event_follow_up"
    STALLED_OPPORTUNITY = "stalled_opportunity"
    CREATE_OPPORTUNITY = "create_opportunity"

    @property
    def keyword(self) -> str:
        return RULE_KEYWORDS[self]


RULE_KEYWORDS = {
    NextActionRule.LYBUNT: "LYBUNT",
    NextActionRule.CULTIVATION_CALL: "cultivation call",
    NextActionRule.EVENT_FOLLOW_UP: "Follow up",
    NextActionRule.STALLED_OPPORTUNITY: "Advance opportunity",
    NextActionRule.CREATE_OPPORTUNITY: "Create opportunity",
}
