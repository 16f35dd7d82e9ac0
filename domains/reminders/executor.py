"""Deliver fired reminders to Discord channels."""

from typing import Optional

import discord

from logger import logger
from . import config
from .errors import DeliveryError
from .models import ReminderControls


def build_view(controls: Optional[ReminderControls]) -> Optional[discord.ui.View]:
    """Render reminder controls as message components.

    Component clicks are routed by custom_id in the bot's on_interaction
    handler, so the view only carries layout.
    """
    if controls is None:
        return None

    view = discord.ui.View(timeout=config.SNOOZE_WINDOW_SECONDS)

    if controls.kind == "snooze":
        view.add_item(discord.ui.Select(
            custom_id=f"{config.CUSTOM_ID_SNOOZE_REMINDER}:{controls.reminder_id}",
            placeholder="Snooze for...",
            options=[
                discord.SelectOption(label=label, value=value)
                for label, value in controls.snooze_options
            ],
        ))
    elif controls.kind == "recurring":
        view.add_item(discord.ui.Button(
            label="Stop",
            style=discord.ButtonStyle.danger,
            custom_id=f"{config.CUSTOM_ID_STOP_RECURRING}:{controls.reminder_id}",
        ))
        view.add_item(discord.ui.Button(
            label="Pause",
            style=discord.ButtonStyle.primary,
            custom_id=f"{config.CUSTOM_ID_PAUSE_RECURRING}:{controls.reminder_id}",
        ))

    return view


class DiscordDelivery:
    """Delivery collaborator backed by a discord.py client."""

    def __init__(self, bot: discord.Client):
        self.bot = bot

    async def deliver(self, destination: str, text: str, controls: Optional[ReminderControls] = None) -> None:
        """Post text (and controls) to the channel with ID destination.

        Raises:
            DeliveryError: If the channel cannot be resolved or the send fails
        """
        try:
            channel_id = int(destination)
        except (TypeError, ValueError) as e:
            raise DeliveryError(f"Invalid channel id: {destination}") from e

        try:
            channel = self.bot.get_channel(channel_id)
            if not channel:
                channel = await self.bot.fetch_channel(channel_id)

            view = build_view(controls)
            if view is not None:
                await channel.send(text, view=view)
            else:
                await channel.send(text)
        except discord.DiscordException as e:
            raise DeliveryError(f"Failed to send to channel {channel_id}: {e}") from e

        logger.debug(f"Delivered reminder message to channel {channel_id}")
