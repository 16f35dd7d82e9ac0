"""Logging configuration for the reminder bot."""

import logging
import sys
from datetime import datetime

from config import LOG_DIR, LOG_LEVEL

# Library loggers that share the bot's handlers (missed jobs, gateway errors)
LIBRARY_LOGGERS = ("apscheduler", "discord")


def _build_handlers(level: int) -> list[logging.Handler]:
    """Dated log file, plus the console when attached to a terminal."""
    log_file = LOG_DIR / f"{datetime.now().strftime('%Y-%m-%d')}.log"
    file_handler = logging.FileHandler(log_file, encoding="utf-8")
    file_handler.setLevel(level)
    file_handler.setFormatter(logging.Formatter(
        "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    ))
    handlers = [file_handler]

    # Console handler (only if not running as background)
    if sys.stdout is not None and sys.stdout.isatty():
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(level)
        console_handler.setFormatter(logging.Formatter(
            "%(asctime)s | %(levelname)-8s | %(message)s",
            datefmt="%H:%M:%S"
        ))
        handlers.append(console_handler)

    return handlers


def setup_logging() -> logging.Logger:
    """Configure the bot logger and attach library warnings to the same output."""
    level = getattr(logging, LOG_LEVEL, logging.INFO)
    handlers = _build_handlers(level)

    logger = logging.getLogger("reminder_bot")
    logger.setLevel(level)
    logger.handlers.clear()
    for handler in handlers:
        logger.addHandler(handler)

    for name in LIBRARY_LOGGERS:
        library_logger = logging.getLogger(name)
        library_logger.setLevel(max(level, logging.WARNING))
        library_logger.handlers.clear()
        for handler in handlers:
            library_logger.addHandler(handler)

    return logger


# Global logger instance
logger = setup_logging()
