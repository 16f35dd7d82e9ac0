"""Restore scheduler state from the store on startup."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from logger import logger
from .coordinator import ReminderCoordinator
from .errors import InvalidExpression, ReminderNotFound, StoreFailure
from .store import ReminderStore


@dataclass
class RecoveryReport:
    """Outcome of one recovery pass, by reminder id."""
    armed: list[int] = field(default_factory=list)
    scheduled: list[int] = field(default_factory=list)
    dropped: list[int] = field(default_factory=list)
    skipped: list[int] = field(default_factory=list)

    @property
    def loaded(self) -> int:
        return len(self.armed) + len(self.scheduled)


def recover_reminders(
    store: ReminderStore,
    coordinator: ReminderCoordinator,
    now: Optional[datetime] = None
) -> RecoveryReport:
    """Reload all persisted reminders into the schedulers.

    Call this once on startup, before commands are handled.

    - recurring reminders are always rescheduled
    - one-shots still in the future are re-armed
    - one-shots due at or before now were missed while the bot was down;
      they are deleted without being delivered

    A record that cannot be scheduled is logged and skipped. Running this
    twice over the same rows gives the same registrations.

    Args:
        store: Reminder store to read from
        coordinator: Coordinator whose schedulers receive the reminders
        now: Current time (defaults to the coordinator's clock)

    Returns:
        RecoveryReport with the ids in each outcome
    """
    now = now or coordinator.now()
    report = RecoveryReport()

    for reminder in store.list_all():
        if not reminder.is_recurring and reminder.due_at <= now:
            logger.warning(f"Dropping missed reminder {reminder.id}: was due {reminder.due_at.isoformat()}")
            try:
                store.delete(reminder.id)
            except ReminderNotFound:
                pass
            except StoreFailure as e:
                logger.error(f"Failed to delete missed reminder {reminder.id}: {e}")
            report.dropped.append(reminder.id)
            continue

        try:
            coordinator.register(reminder)
        except InvalidExpression as e:
            logger.error(f"Skipping reminder {reminder.id} with unschedulable expression {e.expression!r}: {e.reason}")
            report.skipped.append(reminder.id)
            continue
        except Exception as e:
            logger.error(f"Failed to reload reminder {reminder.id}: {e}")
            report.skipped.append(reminder.id)
            continue

        if reminder.is_recurring:
            report.scheduled.append(reminder.id)
        else:
            report.armed.append(reminder.id)

    logger.info(
        f"Reloaded {report.loaded} reminders "
        f"(dropped {len(report.dropped)} missed, skipped {len(report.skipped)} invalid)"
    )
    return report
