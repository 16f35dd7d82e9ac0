"""Pytest configuration and fixtures."""

import os
import sys
from datetime import datetime, timedelta, timezone
from unittest.mock import Mock, AsyncMock

import pytest

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from domains.reminders.coordinator import ReminderCoordinator
from domains.reminders.errors import DeliveryError
from domains.reminders.oneshot import OneShotScheduler
from domains.reminders.recurring import RecurringScheduler
from domains.reminders.store import ReminderStore


class RecordingDelivery:
    """Delivery double that records every message it is asked to post."""

    def __init__(self):
        self.sent = []
        self.fail = False

    async def deliver(self, destination, text, controls=None):
        if self.fail:
            raise DeliveryError("channel unavailable")
        self.sent.append((destination, text, controls))


class FakeClock:
    """Manually advanced UTC clock."""

    def __init__(self, start: datetime):
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> None:
        self.current += timedelta(**kwargs)


@pytest.fixture
def store(tmp_path):
    """Fresh SQLite store per test."""
    reminder_store = ReminderStore(str(tmp_path / "reminders.db"))
    yield reminder_store
    reminder_store.close()


@pytest.fixture
def delivery():
    return RecordingDelivery()


@pytest.fixture
def clock():
    return FakeClock(datetime(2030, 1, 1, 12, 0, 0, tzinfo=timezone.utc))


@pytest.fixture
def scheduler():
    """Scheduler that is never started; jobs stay pending."""
    return AsyncIOScheduler()


@pytest.fixture
def coordinator(store, scheduler, delivery, clock):
    return ReminderCoordinator(
        store,
        OneShotScheduler(scheduler),
        RecurringScheduler(scheduler),
        delivery,
        clock=clock,
    )


@pytest.fixture
def mock_discord_bot():
    """Create a mock Discord bot."""
    bot = Mock()
    bot.get_channel = Mock(return_value=Mock(send=AsyncMock()))
    bot.fetch_channel = AsyncMock()
    bot.user = Mock(name="TestBot#1234")
    return bot
