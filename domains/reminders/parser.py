"""Parse durations, clock times and command arguments for reminders."""

import re
from datetime import datetime, timedelta
from typing import Optional

from dateutil.parser import isoparse

from . import config
from .errors import InvalidInput

# Go-style compound durations: "90s", "1h30m", "1.5h"
_GO_DURATION_PART = r'(?:\d+(?:\.\d*)?|\.\d+)(?:ns|us|µs|ms|s|m|h)'
_GO_DURATION_RE = re.compile(rf'^(?:{_GO_DURATION_PART})+$')
_GO_DURATION_PART_RE = re.compile(r'(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)')
_GO_UNITS = {
    'ns': timedelta(microseconds=0.001),
    'us': timedelta(microseconds=1),
    'µs': timedelta(microseconds=1),
    'ms': timedelta(milliseconds=1),
    's': timedelta(seconds=1),
    'm': timedelta(minutes=1),
    'h': timedelta(hours=1),
}

# "<n><unit>" shorthand: "10min", "2 hours", "1d", "3wks"
_SHORTHAND_RE = re.compile(r'^(\d+)\s*([a-z]+)$')
_SHORTHAND_UNITS = {
    timedelta(minutes=1): ('m', 'min', 'mins', 'minute', 'minutes'),
    timedelta(hours=1): ('h', 'hr', 'hrs', 'hour', 'hours'),
    timedelta(days=1): ('d', 'day', 'days'),
    timedelta(weeks=1): ('w', 'wk', 'wks', 'week', 'weeks'),
}

_AMPM_RE = re.compile(r'^(\d{1,2})(?::(\d{2}))?(?::(\d{2}))?\s*(am|pm)$')
_RFC3339_RE = re.compile(r'^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}(?:\.\d+)?(?:Z|[+-]\d{2}:\d{2})$', re.I)

_DATETIME_FORMATS = [
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%dT%H:%M",
    "%Y-%m-%d %H:%M",
    "%Y-%m-%d",
]
_TIME_FORMATS = ["%H:%M:%S", "%H:%M"]


def parse_duration(text: str) -> timedelta:
    """Parse a duration string.

    Examples:
    - "90s", "1h30m", "1.5h" (Go duration syntax)
    - "5m", "10min", "2hours", "1d", "3wks"

    Raises:
        InvalidInput: If the text is not a duration
    """
    value = text.strip()

    try:
        if _GO_DURATION_RE.match(value):
            total = timedelta()
            for amount, unit in _GO_DURATION_PART_RE.findall(value):
                total += _GO_UNITS[unit] * float(amount)
            return total

        match = _SHORTHAND_RE.match(value.lower())
        if match:
            amount, unit = int(match.group(1)), match.group(2)
            for step, names in _SHORTHAND_UNITS.items():
                if unit in names:
                    return step * amount
            raise InvalidInput(f"Unknown time unit: {unit}")
    except OverflowError as e:
        raise InvalidInput(f"Duration out of range: {text}") from e

    raise InvalidInput(f"Invalid duration: {text}")


def parse_flexible_time(text: str, now: Optional[datetime] = None) -> datetime:
    """Parse an absolute time in the configured timezone.

    Examples:
    - "3pm", "9:30am", "12:15:30 am"
    - "2026-05-20T15:04:05+07:00" (RFC 3339)
    - "2026-05-20 15:04", "2026-05-20"
    - "15:04" -> today, or tomorrow if that time already passed

    Args:
        text: Time string
        now: Current time (defaults to now in the configured timezone)

    Raises:
        InvalidInput: If no format matches
    """
    now = now or datetime.now(config.TIMEZONE)
    tz = now.tzinfo or config.TIMEZONE
    value = text.strip()

    ampm = _parse_ampm(value.lower(), now)
    if ampm is not None:
        return ampm

    if _RFC3339_RE.match(value):
        try:
            return isoparse(value)
        except ValueError as e:
            raise InvalidInput(f"Unable to parse time: {text}") from e

    for fmt in _DATETIME_FORMATS:
        try:
            return datetime.strptime(value, fmt).replace(tzinfo=tz)
        except ValueError:
            continue

    for fmt in _TIME_FORMATS:
        try:
            parsed = datetime.strptime(value, fmt)
        except ValueError:
            continue
        return _next_occurrence(now, parsed.hour, parsed.minute, parsed.second)

    raise InvalidInput(f"Unable to parse time: {text}")


def _parse_ampm(value: str, now: datetime) -> Optional[datetime]:
    """Parse "9am" / "9:30pm" style times, None if not that format."""
    match = _AMPM_RE.match(value)
    if not match:
        return None

    hour = int(match.group(1))
    minute = int(match.group(2) or 0)
    second = int(match.group(3) or 0)
    if not 1 <= hour <= 12 or minute > 59 or second > 59:
        raise InvalidInput(f"Invalid time: {value}")

    # Convert 12-hour to 24-hour
    if match.group(4) == 'pm' and hour < 12:
        hour += 12
    elif match.group(4) == 'am' and hour == 12:
        hour = 0

    return _next_occurrence(now, hour, minute, second)


def _next_occurrence(now: datetime, hour: int, minute: int, second: int) -> datetime:
    """Today at the given clock time, or tomorrow if it has already passed."""
    target = now.replace(hour=hour, minute=minute, second=second, microsecond=0)
    if target < now:
        target += timedelta(days=1)
    return target


def parse_backtick_args(text: str) -> list[str]:
    """Split on whitespace, keeping `backtick quoted` runs as one argument.

    "`0 0 9 * * 1` stand up" -> ["0 0 9 * * 1", "stand", "up"]
    """
    args = []
    current = []
    in_backticks = False

    for char in text:
        if char == '`':
            if in_backticks:
                args.append(''.join(current))
                current = []
            in_backticks = not in_backticks
        elif not in_backticks and char.isspace():
            if current:
                args.append(''.join(current))
                current = []
        else:
            current.append(char)

    if current:
        args.append(''.join(current))

    return args
