"""Discord Reminder Bot - Main Bot.

Text commands (!remind, !recurring, !list, !delete, !pause, !resume, !export)
and reminder component clicks are routed to the reminders domain.
"""

import discord
from discord.ext import commands
from apscheduler.schedulers.asyncio import AsyncIOScheduler

from logger import logger
from config import DISCORD_TOKEN

from domains.reminders import (
    DiscordDelivery,
    OneShotScheduler,
    RecurringScheduler,
    ReminderCoordinator,
    ReminderStore,
    handle_reminder_command,
    handle_reminder_interaction,
    recover_reminders,
)
from domains.reminders.config import COMMAND_PREFIX


class ReminderBot(commands.Bot):
    """Bot that owns the scheduler lifecycle."""

    async def setup_hook(self):
        """Start the scheduler and reload reminders before any event is handled."""
        scheduler.start()

        try:
            report = recover_reminders(store, coordinator)
            logger.info(f"Recovered {report.loaded} reminders on startup")
        except Exception as e:
            logger.error(f"Failed to reload reminders: {e}")

        logger.info(f"Scheduler started with {len(scheduler.get_jobs())} jobs")

    async def close(self):
        if scheduler.running:
            scheduler.shutdown(wait=False)
        store.close()
        await super().close()


# Bot setup
intents = discord.Intents.default()
intents.message_content = True
bot = ReminderBot(command_prefix=COMMAND_PREFIX, intents=intents)

# Initialize scheduler (started in setup_hook)
scheduler = AsyncIOScheduler()

# Reminders domain
store = ReminderStore()
coordinator = ReminderCoordinator(
    store,
    OneShotScheduler(scheduler),
    RecurringScheduler(scheduler),
    DiscordDelivery(bot),
)


@bot.event
async def on_ready():
    """Called when bot is connected and ready."""
    logger.info(f"Logged in as {bot.user}")


@bot.event
async def on_message(message):
    """Handle incoming messages."""
    # Ignore bot messages
    if message.author.bot:
        return

    if not message.content.startswith(COMMAND_PREFIX):
        return

    try:
        response = await handle_reminder_command(
            message.content,
            message.author,
            message.channel.id,
            coordinator
        )
    except Exception as e:
        logger.error(f"Reminder command failed: {e}")
        response = "Something went wrong. Please try again."

    if response:
        await message.channel.send(response)


@bot.event
async def on_interaction(interaction: discord.Interaction):
    """Handle Stop / Pause buttons and the snooze menu on delivered reminders."""
    if interaction.type != discord.InteractionType.component:
        return

    data = interaction.data or {}
    custom_id = data.get("custom_id", "")
    values = data.get("values", [])

    try:
        response = await handle_reminder_interaction(custom_id, values, interaction.user.id, coordinator)
    except Exception as e:
        logger.error(f"Reminder interaction {custom_id} failed: {e}")
        response = "Something went wrong. Please try again."

    if response:
        await interaction.response.send_message(response, ephemeral=True)


@bot.event
async def on_error(event, *args, **kwargs):
    """Handle errors."""
    logger.error(f"Bot error in {event}: {args}")


def main():
    """Entry point."""
    if not DISCORD_TOKEN:
        logger.error("DISCORD_TOKEN not set")
        return

    logger.info("Starting Discord Reminder Bot...")
    # Library logging is already routed through logger.py
    bot.run(DISCORD_TOKEN, log_handler=None)


if __name__ == "__main__":
    main()
