"""Reminder data model."""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Union


@dataclass(frozen=True)
class OneShot:
    """Fire once at a fixed, timezone-aware instant."""
    due_at: datetime


@dataclass(frozen=True)
class Recurring:
    """Fire on every occurrence of a calendar expression."""
    expression: str


Schedule = Union[OneShot, Recurring]


@dataclass(frozen=True)
class Reminder:
    """A persisted reminder."""
    id: int
    destination: str  # Discord channel ID
    owner: str  # Discord user ID of the requester
    message: str
    schedule: Schedule

    @property
    def is_recurring(self) -> bool:
        return isinstance(self.schedule, Recurring)

    @property
    def due_at(self) -> Optional[datetime]:
        return self.schedule.due_at if isinstance(self.schedule, OneShot) else None

    @property
    def expression(self) -> Optional[str]:
        return self.schedule.expression if isinstance(self.schedule, Recurring) else None

    def to_dict(self) -> dict:
        """Export form: due_time / schedule_expression only when set."""
        data = {
            "id": self.id,
            "destination": self.destination,
            "owner": self.owner,
            "message": self.message,
        }
        if self.due_at is not None:
            data["due_time"] = self.due_at.isoformat(timespec="seconds")
        if self.expression is not None:
            data["schedule_expression"] = self.expression
        return data


@dataclass(frozen=True)
class SnoozeHold:
    """A just-fired one-shot that can still be snoozed until expires_at."""
    reminder: Reminder
    opened_at: datetime
    expires_at: datetime

    def expired(self, now: datetime) -> bool:
        return now >= self.expires_at


@dataclass(frozen=True)
class ReminderControls:
    """Interactive options attached to a delivered reminder.

    kind is "snooze" (select menu built from snooze_options) or
    "recurring" (Stop and Pause buttons).
    """
    kind: str
    reminder_id: int
    snooze_options: tuple[tuple[str, str], ...] = ()


@dataclass(frozen=True)
class ReminderStatus:
    """A reminder as shown by !list."""
    reminder: Reminder
    paused: bool = False
    next_fire_at: Optional[datetime] = None


@dataclass(frozen=True)
class Registrations:
    """Ids currently held by each scheduler."""
    one_shot: frozenset[int]
    recurring: frozenset[int]
