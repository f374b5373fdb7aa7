from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any

from fundrazor.domain.rules import as_utc


def _dt(value: str | None) -> datetime | None:
    if value is None:
        return None
    return as_utc(datetime.fromisoformat(value))


def _dec(value: str | None) -> Decimal | None:
    if value is None:
        return None
    return Decimal(value)


def _json_list(value: str | None) -> list[str]:
    if not value:
        return []
    return list(json.loads(value))


@dataclass(frozen=True)
class User:
    user_id: str
    email: str | None
    first_name: str | None
    last_name: str | None
    role: str
    created_at: datetime
    updated_at: datetime

    @property
    def full_name(self) -> str:
        return " ".join(part for part in (self.first_name, self.last_name) if part)

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> User:
        return cls(
            user_id=row["user_id"],
            email=row["email"],
            first_name=row["first_name"],
            last_name=row["last_name"],
            role=row["role"],
            created_at=_dt(row["created_at"]),
            updated_at=_dt(row["updated_at"]),
        )


@dataclass(frozen=True)
class Person:
    person_id: str
    first_name: str
    last_name: str
    preferred_name: str | None
    primary_email: str | None
    primary_phone: str | None
    organization_name: str | None
    wealth_band: str | None
    relationship_energy: int | None
    relationship_structure: int | None
    engagement_score: int | None
    capacity_score: int | None
    affinity_score: int | None
    last_gift_date: datetime | None
    last_gift_amount: Decimal | None
    total_lifetime_giving: Decimal | None
    created_at: datetime
    updated_at: datetime

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> Person:
        return cls(
            person_id=row["person_id"],
            first_name=row["first_name"],
            last_name=row["last_name"],
            preferred_name=row["preferred_name"],
            primary_email=row["primary_email"],
            primary_phone=row["primary_phone"],
            organization_name=row["organization_name"],
            wealth_band=row["wealth_band"],
            relationship_energy=row["relationship_energy"],
            relationship_structure=row["relationship_structure"],
            engagement_score=row["engagement_score"],
            capacity_score=row["capacity_score"],
            affinity_score=row["affinity_score"],
            last_gift_date=_dt(row["last_gift_date"]),
            last_gift_amount=_dec(row["last_gift_amount"]),
            total_lifetime_giving=_dec(row["total_lifetime_giving"]),
            created_at=_dt(row["created_at"]),
            updated_at=_dt(row["updated_at"]),
        )


@dataclass(frozen=True)
class Gift:
    gift_id: str
    person_id: str
    amount: Decimal
    currency: str
    received_at: datetime
    gift_type: str
    designation: str | None
    payment_method: str | None
    created_at: datetime

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> Gift:
        return cls(
            gift_id=row["gift_id"],
            person_id=row["person_id"],
            amount=Decimal(row["amount"]),
            currency=row["currency"],
            received_at=_dt(row["received_at"]),
            gift_type=row["gift_type"],
            designation=row["designation"],
            payment_method=row["payment_method"],
            created_at=_dt(row["created_at"]),
        )


@dataclass(frozen=True)
class Interaction:
    interaction_id: str
    person_id: str
    type: str
    occurred_at: datetime
    owner_id: str | None
    notes: str | None
    source: str | None
    created_at: datetime

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> Interaction:
        return cls(
            interaction_id=row["interaction_id"],
            person_id=row["person_id"],
            type=row["type"],
            occurred_at=_dt(row["occurred_at"]),
            owner_id=row["owner_id"],
            notes=row["notes"],
            source=row["source"],
            created_at=_dt(row["created_at"]),
        )


@dataclass(frozen=True)
class Opportunity:
    opportunity_id: str
    person_id: str
    owner_id: str | None
    stage: str
    ask_amount: Decimal | None
    probability: int | None
    close_date: datetime | None
    days_in_stage: int | None
    notes: str | None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> Opportunity:
        return cls(
            opportunity_id=row["opportunity_id"],
            person_id=row["person_id"],
            owner_id=row["owner_id"],
            stage=row["stage"],
            ask_amount=_dec(row["ask_amount"]),
            probability=row["probability"],
            close_date=_dt(row["close_date"]),
            days_in_stage=row["days_in_stage"],
            notes=row["notes"],
            created_at=_dt(row["created_at"]),
            updated_at=_dt(row["updated_at"]),
        )


@dataclass(frozen=True)
class Grant:
    grant_id: str
    funder_name: str
    funder_contact_id: str | None
    stage: str
    purpose: str | None
    ask_amount: Decimal | None
    awarded_amount: Decimal | None
    owner_id: str | None
    loi_due_date: datetime | None
    application_due_date: datetime | None
    decision_date: datetime | None
    report_due_date: datetime | None
    notes: str | None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> Grant:
        return cls(
            grant_id=row["grant_id"],
            funder_name=row["funder_name"],
            funder_contact_id=row["funder_contact_id"],
            stage=row["stage"],
            purpose=row["purpose"],
            ask_amount=_dec(row["ask_amount"]),
            awarded_amount=_dec(row["awarded_amount"]),
            owner_id=row["owner_id"],
            loi_due_date=_dt(row["loi_due_date"]),
            application_due_date=_dt(row["application_due_date"]),
            decision_date=_dt(row["decision_date"]),
            report_due_date=_dt(row["report_due_date"]),
            notes=row["notes"],
            created_at=_dt(row["created_at"]),
            updated_at=_dt(row["updated_at"]),
        )


@dataclass(frozen=True)
class Task:
    task_id: str
    person_id: str | None
    owner_id: str
    title: str
    description: str | None
    reason: str | None
    priority: str
    due_date: datetime | None
    completed: bool
    completed_at: datetime | None
    rule_id: str | None
    created_at: datetime

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> Task:
        return cls(
            task_id=row["task_id"],
            person_id=row["person_id"],
            owner_id=row["owner_id"],
            title=row["title"],
            description=row["description"],
            reason=row["reason"],
            priority=row["priority"],
            due_date=_dt(row["due_date"]),
            completed=bool(row["completed"]),
            completed_at=_dt(row["completed_at"]),
            rule_id=row["rule_id"],
            created_at=_dt(row["created_at"]),
        )


@dataclass(frozen=True)
class MeetingNote:
    note_id: str
    person_id: str | None
    title: str
    recorded_at: datetime
    transcription: str
    purpose: str | None
    donor_name: str | None
    status: str
    created_at: datetime
    topics: list[str] = field(default_factory=list)
    key_learnings: list[str] = field(default_factory=list)
    action_items: list[str] = field(default_factory=list)

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> MeetingNote:
        return cls(
            note_id=row["note_id"],
            person_id=row["person_id"],
            title=row["title"],
            recorded_at=_dt(row["recorded_at"]),
            transcription=row["transcription"],
            purpose=row["purpose"],
            donor_name=row["donor_name"],
            status=row["status"],
            created_at=_dt(row["created_at"]),
            topics=_json_list(row["topics"]),
            key_learnings=_json_list(row["key_learnings"]),
            action_items=_json_list(row["action_items"]),
        )
