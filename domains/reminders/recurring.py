"""Recurring reminder entries on APScheduler cron triggers.

The shared AsyncIOScheduler keeps every entry in a job store ordered by next
run time, wakes at the earliest one, fires what is due and asks each trigger
for its following instant. Entries are coalesced with max_instances=1, so an
entry fires at most once per due instant even if a previous delivery is slow.
"""

import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Awaitable, Callable, Optional

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.base import BaseScheduler

from logger import logger
from . import config
from .cron import CompiledSchedule

OnFire = Callable[[int], Awaitable[None]]


@dataclass(eq=False)
class RecurringHandle:
    """Handle for one schedule() call. Compared by identity."""
    reminder_id: int
    job_id: str
    schedule: CompiledSchedule


class RecurringScheduler:
    """Maps reminder id -> a repeating APScheduler job."""

    def __init__(self, scheduler: BaseScheduler, misfire_grace_time: Optional[int] = None):
        self.scheduler = scheduler
        if misfire_grace_time is None:
            misfire_grace_time = config.RECURRING_MISFIRE_GRACE_SECONDS
        if misfire_grace_time <= 0:
            raise ValueError(f"misfire_grace_time must be a positive number of seconds, got {misfire_grace_time}")
        self.misfire_grace_time = misfire_grace_time
        self._entries: dict[int, RecurringHandle] = {}
        self._lock = threading.Lock()

    @staticmethod
    def job_id(reminder_id: int) -> str:
        return f"reminder:recurring:{reminder_id}"

    def schedule(self, reminder_id: int, schedule: CompiledSchedule, on_fire: OnFire) -> RecurringHandle:
        """Register on_fire(reminder_id) for every occurrence of schedule.

        Scheduling an id that already has an entry replaces it.
        """
        handle = RecurringHandle(reminder_id, self.job_id(reminder_id), schedule)
        with self._lock:
            previous = self._entries.pop(reminder_id, None)
            if previous is not None:
                self._remove_job(previous.job_id)

            self.scheduler.add_job(
                self._tick,
                trigger=schedule.trigger,
                args=[handle, on_fire],
                id=handle.job_id,
                name=f"recurring:{reminder_id}",
                replace_existing=True,
                coalesce=True,
                max_instances=1,
                misfire_grace_time=self.misfire_grace_time,
            )
            self._entries[reminder_id] = handle

        logger.debug(f"Scheduled recurring reminder {reminder_id}: {schedule.expression}")
        return handle

    def remove(self, handle: RecurringHandle) -> bool:
        """Stop an entry. Returns False if the handle is no longer current."""
        with self._lock:
            if self._entries.get(handle.reminder_id) is not handle:
                return False
            del self._entries[handle.reminder_id]
            self._remove_job(handle.job_id)

        logger.debug(f"Removed recurring reminder {handle.reminder_id}")
        return True

    def handle_for(self, reminder_id: int) -> Optional[RecurringHandle]:
        with self._lock:
            return self._entries.get(reminder_id)

    def scheduled_ids(self) -> frozenset[int]:
        with self._lock:
            return frozenset(self._entries)

    def next_fire_time(self, reminder_id: int, now: Optional[datetime] = None) -> Optional[datetime]:
        """Next instant the entry will tick, None if it is not scheduled."""
        handle = self.handle_for(reminder_id)
        if handle is None:
            return None

        job = self.scheduler.get_job(handle.job_id)
        # Jobs added before the scheduler starts have no next_run_time yet
        next_run = getattr(job, "next_run_time", None) if job else None
        if next_run is not None:
            return next_run
        return handle.schedule.next_after(now or datetime.now(timezone.utc))

    async def _tick(self, handle: RecurringHandle, on_fire: OnFire) -> None:
        with self._lock:
            if self._entries.get(handle.reminder_id) is not handle:
                return

        await on_fire(handle.reminder_id)

    def _remove_job(self, job_id: str) -> None:
        try:
            self.scheduler.remove_job(job_id)
        except JobLookupError:
            pass  # Never reached the job store
