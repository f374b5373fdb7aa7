from __future__ import annotations

import re
from collections.abc import Iterable
from datetime import UTC, datetime
from decimal import Decimal, InvalidOperation

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


class ValidationError(ValueError):
    pass


class NotFoundError(LookupError):
    def __init__(self, entity: str, record_id: str | None = None) -> None:
        self.entity = entity
        self.record_id = record_id
        message = f"{entity} not found"
        if record_id:
            message += f": {record_id}"
        super().__init__(message)


def require(value: str | None, field: str) -> None:
    if value is None or str(value).strip() == "":
        raise ValidationError(f"{field} is required.")


def validate_enum(value: str | None, allowed: Iterable[str], field: str) -> None:
    if value is None:
        return
    allowed = list(allowed)
    if value not in allowed:
        raise ValidationError(f"{field} must be one of: {', '.join(sorted(allowed))}")


def validate_range(value: int | None, field: str, low: int = 0, high: int = 100) -> None:
    if value is None:
        return
    if value < low or value > high:
        raise ValidationError(f"{field} must be between {low} and {high}.")


def validate_email(value: str | None, field: str = "email") -> None:
    if value is None:
        return
    if not EMAIL_RE.match(value):
        raise ValidationError(f"{field} is not a valid email address.")


def validate_phone(value: str | None, field: str = "phone") -> None:
    if value is None:
        return
    digits = re.sub(r"\D", "", value)
    if len(digits) < 10:
        raise ValidationError(f"{field} must have at least 10 digits.")


def parse_amount(value: str | int | float | Decimal | None, field: str) -> Decimal | None:
    """Parse a money value into a positive Decimal.

    Floats go through ``str`` first so ``0.1`` stays ``Decimal("0.1")``.
    """
    if value is None:
        return None
    try:
        amount = Decimal(str(value).strip())
    except InvalidOperation as exc:
        raise ValidationError(f"{field} must be a decimal number.") from exc
    if not amount.is_finite():
        raise ValidationError(f"{field} must be a decimal number.")
    if amount <= 0:
        raise ValidationError(f"{field} must be greater than zero.")
    return amount


def format_amount(amount: Decimal) -> str:
    return str(amount.quantize(Decimal("0.01")))


def parse_datetime(value: str | None, field: str) -> datetime | None:
    """Parse an ISO 8601 date or datetime; naive values are taken as UTC."""
    if value is None:
        return None
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError as exc:
        raise ValidationError(f"{field} must be ISO 8601.") from exc
    return as_utc(parsed)


def as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)
