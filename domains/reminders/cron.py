"""Calendar expressions for recurring reminders.

Compiles six-field cron expressions ("second minute hour day month weekday")
and @descriptors into APScheduler triggers. Validation happens here, at
submission time, so nothing unschedulable is ever persisted.

Weekdays follow cron numbering (0 = Sunday). APScheduler counts from Monday,
so numeric weekdays are rewritten to names before the trigger is built.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, tzinfo
from typing import Optional

from apscheduler.triggers.base import BaseTrigger
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from . import config
from .errors import InvalidExpression, InvalidInput
from .parser import parse_duration

FIELDS = ("second", "minute", "hour", "day", "month", "day_of_week")

DESCRIPTORS = {
    "@yearly": "0 0 0 1 1 *",
    "@annually": "0 0 0 1 1 *",
    "@monthly": "0 0 0 1 * *",
    "@weekly": "0 0 0 * * 0",
    "@daily": "0 0 0 * * *",
    "@midnight": "0 0 0 * * *",
    "@hourly": "0 0 * * * *",
}

WEEKDAY_NAMES = ("sun", "mon", "tue", "wed", "thu", "fri", "sat")


@dataclass(frozen=True)
class CompiledSchedule:
    """A validated calendar expression and the trigger that evaluates it."""
    expression: str
    trigger: BaseTrigger

    def next_after(self, after: datetime) -> Optional[datetime]:
        """Next due instant strictly after `after`."""
        # Passing `after` as the previous fire time makes the bound exclusive
        return self.trigger.get_next_fire_time(after, after)


def parse_schedule(expression: str, timezone: Optional[tzinfo] = None) -> CompiledSchedule:
    """Compile a calendar expression.

    Accepts:
    - "*/10 * * * * *" (six fields, seconds first)
    - "0 30 9 * * mon-fri", "0 0 9 * * 1-5"
    - "@daily", "@hourly", "@weekly", "@monthly", "@yearly"
    - "@every 1h30m"

    Raises:
        InvalidExpression: If the expression cannot be scheduled
    """
    tz = timezone or config.TIMEZONE
    text = (expression or "").strip()
    if not text:
        raise InvalidExpression(expression, "empty expression")

    if text.startswith("@"):
        lowered = text.lower()
        if lowered.startswith("@every"):
            return CompiledSchedule(expression, _every_trigger(expression, text[len("@every"):], tz))
        if lowered not in DESCRIPTORS:
            raise InvalidExpression(expression, f"unknown descriptor {text}")
        text = DESCRIPTORS[lowered]

    parts = text.split()
    if len(parts) != len(FIELDS):
        raise InvalidExpression(expression, f"expected {len(FIELDS)} fields, got {len(parts)}")

    values = dict(zip(FIELDS, parts))
    for name in ("day", "day_of_week"):
        if values[name] == "?":
            values[name] = "*"

    try:
        values["day_of_week"] = _translate_weekdays(values["day_of_week"])
        trigger = CronTrigger(timezone=tz, **values)
    except ValueError as e:
        raise InvalidExpression(expression, str(e)) from e

    return CompiledSchedule(expression, trigger)


def _every_trigger(expression: str, duration_text: str, tz: tzinfo) -> IntervalTrigger:
    try:
        interval = parse_duration(duration_text)
    except InvalidInput as e:
        raise InvalidExpression(expression, e.message) from e
    # Sub-second intervals run once a second
    interval = max(interval, timedelta(seconds=1))
    try:
        return IntervalTrigger(seconds=int(interval.total_seconds()), timezone=tz)
    except OverflowError as e:
        raise InvalidExpression(expression, f"interval out of range: {duration_text.strip()}") from e


def _translate_weekdays(field: str) -> str:
    """Rewrite cron weekday numbers (0 = Sunday) as weekday names.

    Every list item is expanded to explicit days so ranges that wrap in
    APScheduler's Monday-based numbering ("0-6") stay valid.
    """
    if field == "*":
        return field

    days: set[int] = set()
    for item in field.split(","):
        days.update(_expand_weekday_item(item))
    return ",".join(WEEKDAY_NAMES[day] for day in sorted(days))


def _expand_weekday_item(item: str) -> range:
    step = 1
    has_step = "/" in item
    if has_step:
        item, step_text = item.split("/", 1)
        if not step_text.isdigit() or int(step_text) < 1:
            raise ValueError(f"invalid weekday step: {step_text}")
        step = int(step_text)

    if item == "*":
        first, last = 0, 6
    elif "-" in item:
        start, end = item.split("-", 1)
        first, last = _weekday_number(start), _weekday_number(end)
    else:
        first = _weekday_number(item)
        # "1/2" means from Monday to the end of the week in steps of 2
        last = 6 if has_step else first

    if first > last:
        raise ValueError(f"invalid weekday range: {item}")
    return range(first, last + 1, step)


def _weekday_number(token: str) -> int:
    token = token.strip().lower()
    if token.isdigit():
        number = int(token)
        if number > 6:
            raise ValueError(f"weekday out of range: {token}")
        return number
    if token in WEEKDAY_NAMES:
        return WEEKDAY_NAMES.index(token)
    raise ValueError(f"invalid weekday: {token}")
