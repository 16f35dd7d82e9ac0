"""Reminders domain configuration."""

import os
from zoneinfo import ZoneInfo

# SQLite database holding persisted reminders
REMINDER_DB = os.environ.get("REMINDER_DB", "data/reminders.db")

# Timezone used to interpret naive user times and calendar expressions
TIMEZONE = ZoneInfo(os.environ.get("REMINDER_TIMEZONE", "UTC"))

# Command prefix for text commands (!remind, !list, ...)
COMMAND_PREFIX = os.environ.get("REMINDER_COMMAND_PREFIX", "!")

# How long a fired one-shot can still be snoozed
SNOOZE_WINDOW_SECONDS = int(os.environ.get("REMINDER_SNOOZE_WINDOW_SECONDS", 300))

# (label, value) pairs offered in the snooze menu; values go through parse_duration
SNOOZE_OPTIONS = [
    ("5 minutes", "5m"),
    ("10 minutes", "10m"),
    ("15 minutes", "15m"),
    ("30 minutes", "30m"),
    ("60 minutes", "60m"),
]

# Late recurring ticks inside this window still fire; older ones are coalesced away
RECURRING_MISFIRE_GRACE_SECONDS = int(os.environ.get("REMINDER_MISFIRE_GRACE_SECONDS", 30))

# Component custom_id prefixes (custom_id = "<prefix>:<reminder id>")
CUSTOM_ID_STOP_RECURRING = "stopRecurring"
CUSTOM_ID_PAUSE_RECURRING = "pauseRecurring"
CUSTOM_ID_SNOOZE_REMINDER = "snoozeReminder"
