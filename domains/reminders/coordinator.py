"""Reminder lifecycle: submit, fire, snooze, pause, resume, cancel.

The coordinator keeps three pieces of state in step: rows in the store, the
one-shot timer table and the recurring entry table. Every mutation persists
first and registers second, so a store failure never leaves a registration
behind. Pause flags and snooze holds are in-memory only and are forgotten on
restart.
"""

import json
import threading
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional, Protocol

from logger import logger
from . import config
from .cron import parse_schedule
from .errors import (
    AlreadyPaused,
    DeliveryError,
    InThePast,
    InvalidInput,
    NotOwner,
    NotPaused,
    NotRecurring,
    ReminderError,
    ReminderNotFound,
    SnoozeExpired,
    StoreFailure,
)
from .models import (
    OneShot,
    Recurring,
    Registrations,
    Reminder,
    ReminderControls,
    ReminderStatus,
    SnoozeHold,
)
from .oneshot import OneShotScheduler
from .recurring import RecurringScheduler
from .store import ReminderStore


class ReminderDelivery(Protocol):
    """Posts rendered reminder text to a destination."""

    async def deliver(self, destination: str, text: str, controls: Optional[ReminderControls] = None) -> None:
        """Raises DeliveryError if the message could not be posted."""


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ReminderCoordinator:
    """Orchestrates the store and both schedulers."""

    def __init__(
        self,
        store: ReminderStore,
        one_shot: OneShotScheduler,
        recurring: RecurringScheduler,
        delivery: ReminderDelivery,
        *,
        snooze_window: Optional[timedelta] = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.store = store
        self.one_shot = one_shot
        self.recurring = recurring
        self.delivery = delivery
        self.snooze_window = snooze_window or timedelta(seconds=config.SNOOZE_WINDOW_SECONDS)
        self._clock = clock

        self._paused: set[int] = set()
        self._paused_lock = threading.Lock()
        self._holds: dict[int, SnoozeHold] = {}
        self._holds_lock = threading.Lock()

    def now(self) -> datetime:
        return self._clock()

    # --- submission -------------------------------------------------------

    def submit_one_shot(self, destination: str, owner: str, message: str, due_at: datetime) -> int:
        """Persist and arm a one-shot reminder.

        Raises:
            InThePast: If due_at is not strictly in the future
            StoreFailure: If the reminder could not be saved
        """
        if due_at.tzinfo is None:
            due_at = due_at.replace(tzinfo=config.TIMEZONE)
        if due_at <= self.now():
            raise InThePast()

        reminder_id = self.store.create(destination, owner, message, OneShot(due_at))
        reminder = Reminder(reminder_id, str(destination), str(owner), message, OneShot(due_at))
        try:
            self.register(reminder)
        except Exception:
            self._discard_row(reminder_id)
            raise
        logger.info(f"Added reminder {reminder_id}: '{message[:30]}' at {due_at.isoformat()}")
        return reminder_id

    def submit_recurring(self, destination: str, owner: str, message: str, expression: str) -> int:
        """Validate, persist and schedule a recurring reminder.

        Raises:
            InvalidExpression: If the expression cannot be scheduled
            StoreFailure: If the reminder could not be saved
        """
        compiled = parse_schedule(expression)

        reminder_id = self.store.create(destination, owner, message, Recurring(expression))
        try:
            self.recurring.schedule(reminder_id, compiled, self.on_recurring_fire)
        except Exception:
            self._discard_row(reminder_id)
            raise
        logger.info(f"Added recurring reminder {reminder_id}: '{message[:30]}' ({expression})")
        return reminder_id

    def register(self, reminder: Reminder) -> None:
        """Register an already persisted reminder with its scheduler.

        Shared by submission and recovery. Re-registering replaces the
        previous entry, never adds a second one.

        Raises:
            InvalidExpression: If a recurring expression no longer compiles
        """
        if reminder.is_recurring:
            compiled = parse_schedule(reminder.expression)
            self.recurring.schedule(reminder.id, compiled, self.on_recurring_fire)
        else:
            self.one_shot.arm(reminder.id, reminder.due_at, self.on_one_shot_fire)

    # --- mutations by id --------------------------------------------------

    def cancel(self, reminder_id: int, requester: str) -> Reminder:
        """Delete a reminder and drop whatever registration it has.

        Raises:
            ReminderNotFound: If the id is unknown (including a second cancel)
            NotOwner: If requester did not create the reminder
        """
        reminder = self._owned(reminder_id, requester)
        self.store.delete(reminder_id)

        if reminder.is_recurring:
            handle = self.recurring.handle_for(reminder_id)
            if handle is not None:
                self.recurring.remove(handle)
        else:
            self.one_shot.disarm(reminder_id)

        with self._paused_lock:
            self._paused.discard(reminder_id)

        logger.info(f"Cancelled reminder {reminder_id}")
        return reminder

    def pause(self, reminder_id: int, requester: str) -> None:
        """Suppress deliveries of a recurring reminder. Its schedule keeps advancing."""
        reminder = self._owned(reminder_id, requester)
        if not reminder.is_recurring:
            raise NotRecurring()

        with self._paused_lock:
            if reminder_id in self._paused:
                raise AlreadyPaused()
            self._paused.add(reminder_id)
        logger.info(f"Paused recurring reminder {reminder_id}")

    def resume(self, reminder_id: int, requester: str) -> None:
        """Deliver again from the next natural occurrence."""
        reminder = self._owned(reminder_id, requester)
        if not reminder.is_recurring:
            raise NotRecurring()

        with self._paused_lock:
            if reminder_id not in self._paused:
                raise NotPaused()
            self._paused.discard(reminder_id)
        logger.info(f"Resumed recurring reminder {reminder_id}")

    def is_paused(self, reminder_id: int) -> bool:
        with self._paused_lock:
            return reminder_id in self._paused

    def snooze(self, reminder_id: int, delay: timedelta, requester: Optional[str] = None) -> int:
        """Re-submit a just-fired one-shot `delay` from now under a new id.

        Raises:
            SnoozeExpired: If no hold exists or the hold window lapsed
            NotOwner: If requester is given and did not create the reminder
            InvalidInput: If delay is not positive
        """
        if delay <= timedelta(0):
            raise InvalidInput("Snooze duration must be positive")

        now = self.now()
        try:
            due_at = now + delay
        except OverflowError as e:
            raise InvalidInput("Snooze duration out of range") from e

        with self._holds_lock:
            self._purge_expired_holds(now)
            hold = self._holds.get(reminder_id)
            if hold is None:
                raise SnoozeExpired()
            if requester is not None and str(requester) != hold.reminder.owner:
                raise NotOwner()
            del self._holds[reminder_id]

        held = hold.reminder
        try:
            new_id = self.submit_one_shot(held.destination, held.owner, held.message, due_at)
        except StoreFailure:
            # Nothing was scheduled, so the hold is still usable
            with self._holds_lock:
                self._holds.setdefault(reminder_id, hold)
            raise
        logger.info(f"Snoozed reminder {reminder_id} as {new_id} for {delay}")
        return new_id

    def has_snooze_hold(self, reminder_id: int) -> bool:
        with self._holds_lock:
            self._purge_expired_holds(self.now())
            return reminder_id in self._holds

    # --- fire callbacks ---------------------------------------------------

    async def on_one_shot_fire(self, reminder_id: int) -> None:
        """Deliver a due one-shot, delete its row, then open a snooze hold."""
        try:
            reminder = self.store.get(reminder_id)
        except ReminderNotFound:
            logger.warning(f"Reminder {reminder_id} disappeared before firing")
            return
        except StoreFailure as e:
            logger.error(f"Failed to load reminder {reminder_id} for firing: {e}")
            return

        text = f"<@{reminder.owner}> Reminder: {reminder.message}"
        controls = ReminderControls("snooze", reminder_id, tuple(config.SNOOZE_OPTIONS))
        await self._deliver(reminder, text, controls)

        self.one_shot.disarm(reminder_id)
        try:
            self.store.delete(reminder_id)
        except ReminderNotFound:
            # Cancelled while the message was being delivered: no snooze
            logger.debug(f"Reminder {reminder_id} was cancelled during delivery")
            return
        except StoreFailure as e:
            logger.error(f"Failed to delete fired reminder {reminder_id}: {e}")

        self._open_snooze_hold(reminder)

    async def on_recurring_fire(self, reminder_id: int) -> None:
        """Deliver one occurrence of a recurring reminder unless it is paused."""
        try:
            reminder = self.store.get(reminder_id)
        except ReminderNotFound:
            logger.warning(f"Recurring reminder {reminder_id} fired after deletion")
            return
        except StoreFailure as e:
            logger.error(f"Failed to load recurring reminder {reminder_id}: {e}")
            return

        # Paused entries keep ticking; the occurrence is consumed silently
        if self.is_paused(reminder_id):
            logger.debug(f"Recurring reminder {reminder_id} is paused, skipping occurrence")
            return

        text = f"<@{reminder.owner}> Recurring Reminder (ID: {reminder_id}): {reminder.message}"
        await self._deliver(reminder, text, ReminderControls("recurring", reminder_id))

    async def _deliver(self, reminder: Reminder, text: str, controls: ReminderControls) -> None:
        try:
            await self.delivery.deliver(reminder.destination, text, controls)
            logger.info(f"Fired reminder {reminder.id}: {reminder.message[:30]}")
        except DeliveryError as e:
            # Already-fired semantics win: nothing is re-armed
            logger.error(f"Failed to deliver reminder {reminder.id}: {e}")

    def _discard_row(self, reminder_id: int) -> None:
        """Remove a row whose registration failed."""
        try:
            self.store.delete(reminder_id)
        except ReminderError as e:
            logger.error(f"Failed to remove unregistered reminder {reminder_id}: {e}")

    def _open_snooze_hold(self, reminder: Reminder) -> None:
        now = self.now()
        hold = SnoozeHold(reminder=reminder, opened_at=now, expires_at=now + self.snooze_window)
        with self._holds_lock:
            self._purge_expired_holds(now)
            self._holds[reminder.id] = hold

    def _purge_expired_holds(self, now: datetime) -> None:
        """Drop lapsed holds. Caller holds _holds_lock."""
        for reminder_id in [rid for rid, hold in self._holds.items() if hold.expired(now)]:
            del self._holds[reminder_id]

    # --- queries ----------------------------------------------------------

    def list_reminders(self, owner: str) -> list[ReminderStatus]:
        """The owner's reminders with pause state and next fire instant."""
        now = self.now()
        statuses = []
        for reminder in self.store.list_by_owner(owner):
            if reminder.is_recurring:
                paused = self.is_paused(reminder.id)
                next_fire = None if paused else self.recurring.next_fire_time(reminder.id, now)
                statuses.append(ReminderStatus(reminder, paused=paused, next_fire_at=next_fire))
            else:
                statuses.append(ReminderStatus(reminder, next_fire_at=reminder.due_at))
        return statuses

    def export_active(self, owner: str) -> str:
        """JSON list of the owner's future one-shots and all recurring reminders."""
        now = self.now()
        active = [
            reminder.to_dict()
            for reminder in self.store.list_by_owner(owner)
            if reminder.is_recurring or reminder.due_at > now
        ]
        return json.dumps(active, indent=2)

    def registrations(self) -> Registrations:
        return Registrations(
            one_shot=self.one_shot.armed_ids(),
            recurring=self.recurring.scheduled_ids(),
        )

    def _owned(self, reminder_id: int, requester: str) -> Reminder:
        reminder = self.store.get(reminder_id)
        if reminder.owner != str(requester):
            raise NotOwner()
        return reminder
