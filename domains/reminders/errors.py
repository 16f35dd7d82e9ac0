"""Reminder error taxonomy.

Every error carries a short user-facing message. Validation errors are shown
to the requester verbatim; StoreFailure is shown as a generic failure and
DeliveryError never leaves a fire callback.
"""


class ReminderError(Exception):
    """Base class for reminder errors."""

    default_message = "Reminder operation failed"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.default_message)

    @property
    def message(self) -> str:
        return self.args[0]


class InvalidInput(ReminderError):
    """Malformed duration, time or calendar expression."""
    default_message = "Invalid input"


class InvalidExpression(InvalidInput):
    """Calendar expression the cron adapter cannot compile."""
    default_message = "Invalid cron expression. Please check your syntax."

    def __init__(self, expression: str, reason: str | None = None):
        self.expression = expression
        self.reason = reason
        super().__init__(None)


class InThePast(ReminderError):
    default_message = "Reminder time must be in the future."


class ReminderNotFound(ReminderError):
    default_message = "Reminder not found"

    def __init__(self, reminder_id: int):
        self.reminder_id = reminder_id
        super().__init__(None)


class NotOwner(ReminderError):
    default_message = "You can only change your own reminders"


class NotRecurring(ReminderError):
    default_message = "Only recurring reminders can be paused or resumed"


class AlreadyPaused(ReminderError):
    default_message = "Reminder is already paused"


class NotPaused(ReminderError):
    default_message = "Reminder is not paused"


class SnoozeExpired(ReminderError):
    default_message = "Snooze expired. Please create a new reminder"


class StoreFailure(ReminderError):
    """The SQLite store could not complete an operation."""
    default_message = "Something went wrong saving your reminder. Please try again."


class DeliveryError(ReminderError):
    """The message could not be posted to its destination."""
    default_message = "Failed to deliver reminder"
