"""One-shot reminder timers on APScheduler date triggers."""

import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Awaitable, Callable

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.base import BaseScheduler
from apscheduler.triggers.date import DateTrigger

from logger import logger

OnFire = Callable[[int], Awaitable[None]]


@dataclass(eq=False)
class ArmedTimer:
    """Handle for one arm() call. Compared by identity."""
    reminder_id: int
    job_id: str
    due_at: datetime


class OneShotScheduler:
    """Maps reminder id -> a single-fire APScheduler job.

    Each firing runs in its own asyncio task. The firing job removes its
    own entry under the lock before calling on_fire, so a disarm racing with
    a fire ends with exactly one of them taking effect.
    """

    def __init__(self, scheduler: BaseScheduler):
        self.scheduler = scheduler
        self._armed: dict[int, ArmedTimer] = {}
        self._lock = threading.Lock()

    @staticmethod
    def job_id(reminder_id: int) -> str:
        return f"reminder:oneshot:{reminder_id}"

    def arm(self, reminder_id: int, due_at: datetime, on_fire: OnFire) -> ArmedTimer:
        """Fire on_fire(reminder_id) once, at or after due_at.

        Re-arming an id replaces the previous timer. A due_at in the past
        fires as soon as the scheduler runs.
        """
        timer = ArmedTimer(reminder_id, self.job_id(reminder_id), due_at)
        with self._lock:
            previous = self._armed.pop(reminder_id, None)
            if previous is not None:
                self._remove_job(previous.job_id)

            self.scheduler.add_job(
                self._fire,
                trigger=DateTrigger(run_date=due_at),
                args=[timer, on_fire],
                id=timer.job_id,
                name=f"reminder:{reminder_id}",
                replace_existing=True,
                misfire_grace_time=None,  # late is better than never
            )
            self._armed[reminder_id] = timer

        logger.debug(f"Armed reminder {reminder_id} for {due_at.isoformat()}")
        return timer

    def disarm(self, reminder_id: int) -> bool:
        """Cancel a pending timer. Returns False if nothing was armed."""
        with self._lock:
            timer = self._armed.pop(reminder_id, None)
            if timer is None:
                return False
            self._remove_job(timer.job_id)

        logger.debug(f"Disarmed reminder {reminder_id}")
        return True

    def is_armed(self, reminder_id: int) -> bool:
        with self._lock:
            return reminder_id in self._armed

    def armed_ids(self) -> frozenset[int]:
        with self._lock:
            return frozenset(self._armed)

    async def _fire(self, timer: ArmedTimer, on_fire: OnFire) -> None:
        """Job body: claim the entry, then run the callback outside the lock."""
        with self._lock:
            if self._armed.get(timer.reminder_id) is not timer:
                logger.debug(f"Timer for reminder {timer.reminder_id} was disarmed before firing")
                return
            del self._armed[timer.reminder_id]

        await on_fire(timer.reminder_id)

    def _remove_job(self, job_id: str) -> None:
        try:
            self.scheduler.remove_job(job_id)
        except JobLookupError:
            pass  # Already fired or never reached the job store
