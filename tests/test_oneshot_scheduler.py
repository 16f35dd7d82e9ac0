"""Tests for one-shot timers on the APScheduler job store."""

import asyncio
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

import pytest
from apscheduler.schedulers.asyncio import AsyncIOScheduler

from domains.reminders.oneshot import OneShotScheduler


DUE = datetime(2030, 1, 1, 12, 0, tzinfo=timezone.utc)


class TestArmDisarm:
    """Registration bookkeeping on a stopped scheduler."""

    def test_arm_adds_job(self, scheduler):
        one_shot = OneShotScheduler(scheduler)
        one_shot.arm(7, DUE, AsyncMock())

        assert one_shot.is_armed(7)
        assert one_shot.armed_ids() == frozenset({7})
        assert [job.id for job in scheduler.get_jobs()] == ["reminder:oneshot:7"]

    def test_rearm_replaces_timer(self, scheduler):
        one_shot = OneShotScheduler(scheduler)
        first = one_shot.arm(7, DUE, AsyncMock())
        second = one_shot.arm(7, DUE + timedelta(hours=1), AsyncMock())

        assert first is not second
        assert len(scheduler.get_jobs()) == 1
        assert scheduler.get_job("reminder:oneshot:7").trigger.run_date == DUE + timedelta(hours=1)

    def test_disarm(self, scheduler):
        one_shot = OneShotScheduler(scheduler)
        one_shot.arm(7, DUE, AsyncMock())

        assert one_shot.disarm(7) is True
        assert not one_shot.is_armed(7)
        assert scheduler.get_jobs() == []

    def test_disarm_unknown_returns_false(self, scheduler):
        assert OneShotScheduler(scheduler).disarm(99) is False


class TestFire:
    """The job body claims its entry before calling back."""

    @pytest.mark.asyncio
    async def test_fire_calls_back_once_and_clears_entry(self, scheduler):
        one_shot = OneShotScheduler(scheduler)
        on_fire = AsyncMock()
        timer = one_shot.arm(7, DUE, on_fire)

        await one_shot._fire(timer, on_fire)
        await one_shot._fire(timer, on_fire)

        on_fire.assert_awaited_once_with(7)
        assert not one_shot.is_armed(7)

    @pytest.mark.asyncio
    async def test_disarmed_timer_does_not_fire(self, scheduler):
        one_shot = OneShotScheduler(scheduler)
        on_fire = AsyncMock()
        timer = one_shot.arm(7, DUE, on_fire)
        one_shot.disarm(7)

        await one_shot._fire(timer, on_fire)

        on_fire.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_replaced_timer_does_not_fire(self, scheduler):
        one_shot = OneShotScheduler(scheduler)
        on_fire = AsyncMock()
        stale = one_shot.arm(7, DUE, on_fire)
        one_shot.arm(7, DUE + timedelta(hours=1), on_fire)

        await one_shot._fire(stale, on_fire)

        on_fire.assert_not_awaited()
        assert one_shot.is_armed(7)


class TestRunningScheduler:
    """Timers driven by a started AsyncIOScheduler."""

    @pytest.mark.asyncio
    async def test_timers_fire_in_due_order(self):
        scheduler = AsyncIOScheduler()
        scheduler.start()
        try:
            one_shot = OneShotScheduler(scheduler)
            fired = []

            async def on_fire(reminder_id):
                fired.append(reminder_id)

            now = datetime.now(timezone.utc)
            one_shot.arm(2, now + timedelta(milliseconds=600), on_fire)
            one_shot.arm(1, now + timedelta(milliseconds=200), on_fire)

            await asyncio.sleep(1.5)

            assert fired == [1, 2]
            assert one_shot.armed_ids() == frozenset()
        finally:
            scheduler.shutdown(wait=False)

    @pytest.mark.asyncio
    async def test_past_due_timer_fires_immediately(self):
        scheduler = AsyncIOScheduler()
        scheduler.start()
        try:
            one_shot = OneShotScheduler(scheduler)
            on_fire = AsyncMock()

            one_shot.arm(3, datetime.now(timezone.utc) - timedelta(minutes=5), on_fire)
            await asyncio.sleep(0.5)

            on_fire.assert_awaited_once_with(3)
        finally:
            scheduler.shutdown(wait=False)

    @pytest.mark.asyncio
    async def test_disarm_before_due_prevents_fire(self):
        scheduler = AsyncIOScheduler()
        scheduler.start()
        try:
            one_shot = OneShotScheduler(scheduler)
            on_fire = AsyncMock()

            one_shot.arm(4, datetime.now(timezone.utc) + timedelta(milliseconds=300), on_fire)
            one_shot.disarm(4)
            await asyncio.sleep(0.8)

            on_fire.assert_not_awaited()
        finally:
            scheduler.shutdown(wait=False)
