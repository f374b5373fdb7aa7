from fundrazor.domain.models import (
    Gift,
    Grant,
    Interaction,
    MeetingNote,
    Opportunity,
    Person,
    Task,
    User,
)
from fundrazor.domain.rules import NotFoundError, ValidationError

__all__ = [
    "Gift",
    "Grant",
    "Interaction",
    "MeetingNote",
    "NotFoundError",
    "Opportunity",
    "Person",
    "Task",
    "User",
    "ValidationError",
]
