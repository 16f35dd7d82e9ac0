"""Global configuration for the reminder bot."""

import os
from pathlib import Path
from dotenv import load_dotenv

load_dotenv()

# Discord
DISCORD_TOKEN = os.getenv("DISCORD_TOKEN")

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_DIR = Path(os.getenv("REMINDER_BOT_LOG_DIR", Path(os.getenv("LOCALAPPDATA", ".")) / "reminder-bot" / "logs"))
LOG_DIR.mkdir(parents=True, exist_ok=True)
