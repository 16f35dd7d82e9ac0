"""Reminders domain: one-shot and recurring Discord reminders.

Uses APScheduler date and cron triggers with SQLite persistence.
"""

from .errors import (
    ReminderError,
    InvalidInput,
    InvalidExpression,
    InThePast,
    ReminderNotFound,
    NotOwner,
    NotRecurring,
    AlreadyPaused,
    NotPaused,
    SnoozeExpired,
    StoreFailure,
    DeliveryError,
)
from .models import OneShot, Recurring, Reminder, ReminderControls, ReminderStatus, Registrations
from .store import ReminderStore
from .cron import CompiledSchedule, parse_schedule
from .oneshot import OneShotScheduler
from .recurring import RecurringScheduler
from .coordinator import ReminderCoordinator
from .recovery import RecoveryReport, recover_reminders
from .executor import DiscordDelivery
from .handler import handle_reminder_command, handle_reminder_interaction, send_export

__all__ = [
    "ReminderError",
    "InvalidInput",
    "InvalidExpression",
    "InThePast",
    "ReminderNotFound",
    "NotOwner",
    "NotRecurring",
    "AlreadyPaused",
    "NotPaused",
    "SnoozeExpired",
    "StoreFailure",
    "DeliveryError",
    "OneShot",
    "Recurring",
    "Reminder",
    "ReminderControls",
    "ReminderStatus",
    "Registrations",
    "ReminderStore",
    "CompiledSchedule",
    "parse_schedule",
    "OneShotScheduler",
    "RecurringScheduler",
    "ReminderCoordinator",
    "RecoveryReport",
    "recover_reminders",
    "DiscordDelivery",
    "handle_reminder_command",
    "handle_reminder_interaction",
    "send_export",
]
