"""asyncio session driver tests. A short tick interval keeps them fast."""

import asyncio
from decimal import Decimal
from types import SimpleNamespace

import pytest

from watchearn.session import EngagementMonitor, SessionState, start_session

TICK = 0.01


def _ad(duration: int = 100, reward: str = "1.00") -> SimpleNamespace:
    return SimpleNamespace(id="ad-1", duration=duration, reward_amount=Decimal(reward))


class TestSessionHandle:
    @pytest.mark.asyncio
    async def test_runs_to_completion(self):
        completed: list[int] = []
        handle = start_session(_ad(duration=3), interval=TICK, on_complete=lambda h: completed.append(h.elapsed_seconds))
        await asyncio.wait_for(handle.wait_completed(), timeout=2)

        assert handle.state is SessionState.COMPLETED
        assert completed == [3]
        summary = handle.collect()
        assert summary.completed is True
        assert summary.displayed_earned_amount == Decimal("1.00")

    @pytest.mark.asyncio
    async def test_background_pauses_ticking(self):
        monitor = EngagementMonitor()
        handle = start_session(_ad(), monitor, interval=TICK)
        await asyncio.sleep(TICK * 5)

        monitor.set_visibility(False)
        assert handle.state is SessionState.PAUSED
        frozen = handle.elapsed_seconds
        await asyncio.sleep(TICK * 5)
        assert handle.elapsed_seconds == frozen

        handle.close()

    @pytest.mark.asyncio
    async def test_resume_needs_foreground(self):
        monitor = EngagementMonitor()
        handle = start_session(_ad(), monitor, interval=TICK)
        await asyncio.sleep(TICK * 3)
        monitor.set_focus(False)

        assert handle.resume() is False
        monitor.set_focus(True)
        assert handle.resume() is True
        assert handle.state is SessionState.RUNNING

        frozen = handle.elapsed_seconds
        await asyncio.sleep(TICK * 5)
        summary = handle.collect()
        assert summary.watch_time_seconds > frozen
        assert summary.completed is False

    @pytest.mark.asyncio
    async def test_hidden_page_starts_idle(self):
        monitor = EngagementMonitor(visible=False)
        handle = start_session(_ad(), monitor, interval=TICK)
        assert handle.state is SessionState.IDLE

        await asyncio.sleep(TICK * 3)
        assert handle.elapsed_seconds == 0
        assert handle.collect() is None

        assert handle.resume() is False
        monitor.set_visibility(True)
        assert handle.start() is False
        assert handle.resume() is True
        assert handle.state is SessionState.RUNNING

        await asyncio.sleep(TICK * 5)
        summary = handle.collect()
        assert summary.watch_time_seconds > 0

    @pytest.mark.asyncio
    async def test_finished_sessions_leave_the_monitor(self):
        monitor = EngagementMonitor()
        first = start_session(_ad(), monitor, interval=TICK)
        await asyncio.sleep(TICK * 5)
        first.collect()

        second = start_session(_ad(), monitor, interval=TICK)
        second.close()
        assert monitor.listener_count == 0

        third = start_session(_ad(), monitor, interval=TICK)
        monitor.set_visibility(False)
        assert third.state is SessionState.PAUSED
        assert first.state is SessionState.COLLECTED
        third.close()

    @pytest.mark.asyncio
    async def test_close_reports_nothing_and_stops_ticking(self):
        handle = start_session(_ad(), interval=TICK)
        await asyncio.sleep(TICK * 3)
        handle.close()
        frozen = handle.elapsed_seconds
        await asyncio.sleep(TICK * 5)
        assert handle.elapsed_seconds == frozen

    @pytest.mark.asyncio
    async def test_collect_before_first_tick_is_none(self):
        handle = start_session(_ad(), interval=10)
        assert handle.collect() is None
