"""Reminder commands and component interactions.

Text commands:
    !remind <duration|time> <message>
    !remind `<time>` <message>
    !recurring `<sec min hour dom month dow>` <message>
    !list
    !delete <id> / !pause <id> / !resume <id>
    !export

Handlers return the response text; the bot posts it.
"""

import io
from datetime import datetime
from typing import Optional

import discord

from logger import logger
from . import config
from .coordinator import ReminderCoordinator
from .errors import (
    InThePast,
    InvalidExpression,
    InvalidInput,
    NotOwner,
    ReminderError,
    ReminderNotFound,
    StoreFailure,
)
from .models import ReminderStatus
from .parser import parse_backtick_args, parse_duration, parse_flexible_time

REMIND_USAGE = "Usage: !remind <duration/time> <message> or !remind `<time>` <message>"
RECURRING_USAGE = "Usage: !recurring `seconds minutes hours day_of_month month day_of_week` <message>"
INVALID_TIME = (
    "Invalid time format. Use a duration (e.g., 5m, 2h, 1d) "
    "or a specific time (e.g., 2023-05-20T15:04:05)."
)


def _timestamp(moment: datetime) -> str:
    """Discord timestamp markup: absolute plus relative."""
    unix = int(moment.timestamp())
    return f"<t:{unix}:F>, <t:{unix}:R>"


def _error_response(error: ReminderError, verb: str) -> str:
    """Map a domain error to the text shown to the requester."""
    if isinstance(error, ReminderNotFound):
        return "Reminder not found"
    if isinstance(error, NotOwner):
        return f"You can only {verb} your own reminders"
    if isinstance(error, StoreFailure):
        return f"Failed to {verb} reminder. Please try again."
    return error.message


async def handle_reminder_command(
    content: str,
    author,
    channel_id: int,
    coordinator: ReminderCoordinator
) -> Optional[str]:
    """Handle a reminder text command.

    Args:
        content: Message content
        author: Discord user who sent the message
        channel_id: Discord channel ID the reminder should post to
        coordinator: Reminder coordinator

    Returns:
        Response string if handled, None if not a reminder command
    """
    parts = content.split()
    if not parts or not parts[0].startswith(config.COMMAND_PREFIX):
        return None

    command = parts[0][len(config.COMMAND_PREFIX):].lower()
    user_id = str(author.id)

    if command == "remind":
        return _remind(parts, user_id, channel_id, coordinator)
    if command == "recurring":
        return _recurring(parts, user_id, channel_id, coordinator)
    if command == "list":
        return _list(user_id, coordinator)
    if command == "delete":
        return _by_id(parts, "delete", lambda rid: coordinator.cancel(rid, user_id), "Reminder {id} deleted")
    if command == "pause":
        return _by_id(parts, "pause", lambda rid: coordinator.pause(rid, user_id), "Recurring reminder {id} paused")
    if command == "resume":
        return _by_id(parts, "resume", lambda rid: coordinator.resume(rid, user_id), "Recurring reminder {id} resumed")
    if command == "export":
        return await send_export(author, coordinator)

    return None


def _remind(parts: list[str], user_id: str, channel_id: int, coordinator: ReminderCoordinator) -> str:
    if len(parts) < 3:
        return REMIND_USAGE

    # Time may be wrapped in backticks when it contains spaces
    if parts[1].startswith("`"):
        args = parse_backtick_args(" ".join(parts[1:]))
        if len(args) < 2:
            return "Invalid command format. Please provide both time and message."
        time_str, message = args[0], " ".join(args[1:])
    else:
        time_str, message = parts[1], " ".join(parts[2:])

    now = coordinator.now().astimezone(config.TIMEZONE)
    try:
        due_at = now + parse_duration(time_str)
    except OverflowError:
        return INVALID_TIME
    except InvalidInput:
        try:
            due_at = parse_flexible_time(time_str, now)
        except InvalidInput:
            return INVALID_TIME

    try:
        reminder_id = coordinator.submit_one_shot(str(channel_id), user_id, message, due_at)
    except InThePast:
        return "Error: Reminder time must be in the future."
    except StoreFailure:
        return "Error setting reminder. Please try again."

    return f"Reminder set for {_timestamp(due_at)} (ID: {reminder_id})"


def _recurring(parts: list[str], user_id: str, channel_id: int, coordinator: ReminderCoordinator) -> str:
    args = parse_backtick_args(" ".join(parts[1:]))
    if len(args) < 2:
        return RECURRING_USAGE

    expression, message = args[0], " ".join(args[1:])
    try:
        reminder_id = coordinator.submit_recurring(str(channel_id), user_id, message, expression)
    except InvalidExpression as e:
        logger.debug(f"Rejected cron expression {expression!r}: {e.reason}")
        return e.message
    except StoreFailure:
        return "Error setting recurring reminder. Please try again."

    return f"Recurring reminder set with ID: {reminder_id}"


def _list(user_id: str, coordinator: ReminderCoordinator) -> str:
    try:
        statuses = coordinator.list_reminders(user_id)
    except StoreFailure:
        return "Error fetching reminders. Please try again."

    if not statuses:
        return "You have no reminders set"

    lines = ["Your reminders:"]
    lines.extend(_format_status(status) for status in statuses)
    return "\n".join(lines)


def _format_status(status: ReminderStatus) -> str:
    reminder = status.reminder
    if reminder.is_recurring:
        if status.paused:
            return f"{reminder.id}: {reminder.message} (recurring: {reminder.expression}, paused)"
        if status.next_fire_at is None:
            return f"{reminder.id}: {reminder.message} (recurring: {reminder.expression})"
        return (
            f"{reminder.id}: {reminder.message} "
            f"(recurring: {reminder.expression}, next: {_timestamp(status.next_fire_at)})"
        )
    return f"{reminder.id}: {reminder.message} (due {_timestamp(reminder.due_at)})"


def _by_id(parts: list[str], verb: str, action, success: str) -> str:
    """Run a mutate-by-id command (!delete, !pause, !resume)."""
    if len(parts) != 2:
        return f"Usage: !{verb} <id>"
    try:
        reminder_id = int(parts[1])
    except ValueError:
        return "Invalid reminder ID"

    try:
        action(reminder_id)
    except ReminderError as e:
        return _error_response(e, verb)

    return success.format(id=reminder_id)


async def send_export(user, coordinator: ReminderCoordinator) -> str:
    """DM the user a reminders.json file with their active reminders."""
    try:
        data = coordinator.export_active(str(user.id))
    except StoreFailure:
        return "Error exporting reminders. Please try again."

    try:
        dm = await user.create_dm()
        await dm.send(file=discord.File(io.BytesIO(data.encode("utf-8")), filename="reminders.json"))
    except discord.DiscordException as e:
        logger.error(f"Failed to DM export to {user.id}: {e}")
        return f"Error sending file via DM: {e}"

    return "I've sent your reminders via DM."


async def handle_reminder_interaction(
    custom_id: str,
    values: list[str],
    user_id: int,
    coordinator: ReminderCoordinator
) -> Optional[str]:
    """Handle a click on a reminder component.

    Args:
        custom_id: "<action>:<reminder id>"
        values: Selected values (snooze menu)
        user_id: Discord user who clicked
        coordinator: Reminder coordinator

    Returns:
        Ephemeral response text, None if the component is not ours
    """
    action, _, raw_id = custom_id.partition(":")
    try:
        reminder_id = int(raw_id)
    except ValueError:
        return None

    requester = str(user_id)

    if action == config.CUSTOM_ID_STOP_RECURRING:
        try:
            coordinator.cancel(reminder_id, requester)
        except NotOwner:
            return "You can only stop your own recurring reminders"
        except ReminderError as e:
            return _error_response(e, "stop")
        return f"Recurring reminder {reminder_id} stopped"

    if action == config.CUSTOM_ID_PAUSE_RECURRING:
        try:
            coordinator.pause(reminder_id, requester)
        except NotOwner:
            return "You can only pause your own recurring reminders"
        except ReminderError as e:
            return _error_response(e, "pause")
        return f"Recurring reminder {reminder_id} paused"

    if action == config.CUSTOM_ID_SNOOZE_REMINDER:
        if not values:
            return None
        try:
            new_id = coordinator.snooze(reminder_id, parse_duration(values[0]), requester=requester)
        except StoreFailure:
            return "Error scheduling snoozed reminder. Please try again."
        except ReminderError as e:
            return _error_response(e, "snooze")
        return f"Snoozed for {values[0]} (ID: {new_id})"

    return None
