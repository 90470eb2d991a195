"""Tests for the asyncio interval timer."""

import asyncio

import pytest

from core.interval_timer import IntervalTimer


class TestIntervalTimer:

    @pytest.mark.asyncio
    async def test_ticks_repeatedly_until_stopped(self):
        ticks = []

        async def on_tick():
            ticks.append(len(ticks))

        timer = IntervalTimer(0.01, on_tick)
        timer.start()
        assert timer.is_active

        await asyncio.sleep(0.1)
        timer.stop()
        count = len(ticks)
        await asyncio.sleep(0.05)

        assert count >= 2
        assert len(ticks) == count
        assert not timer.is_active

    @pytest.mark.asyncio
    async def test_does_not_tick_before_first_interval(self):
        ticks = []

        async def on_tick():
            ticks.append(1)

        timer = IntervalTimer(10, on_tick)
        timer.start()
        await asyncio.sleep(0.02)
        timer.stop()

        assert ticks == []

    @pytest.mark.asyncio
    async def test_failing_tick_does_not_stop_timer(self):
        ticks = []

        async def on_tick():
            ticks.append(1)
            raise RuntimeError("check failed")

        timer = IntervalTimer(0.01, on_tick)
        timer.start()
        await asyncio.sleep(0.08)
        timer.stop()

        assert len(ticks) >= 2

    @pytest.mark.asyncio
    async def test_changing_interval_restarts_active_timer(self):
        ticks = []

        async def on_tick():
            ticks.append(1)

        timer = IntervalTimer(10, on_tick)
        timer.start()
        timer.interval_seconds = 0.01
        await asyncio.sleep(0.08)
        timer.stop()

        assert timer.interval_seconds == 0.01
        assert ticks

    def test_changing_interval_on_idle_timer_does_not_start_it(self):
        async def on_tick():
            return None

        timer = IntervalTimer(10, on_tick)
        timer.interval_seconds = 5

        assert timer.interval_seconds == 5
        assert not timer.is_active
        timer.stop()
