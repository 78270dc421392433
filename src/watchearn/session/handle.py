"""asyncio driver that ticks a SessionTimer once per second.

Usage:
    handle = start_session(ad)
    ...                         # monitor.set_visibility(False) pauses it
    handle.resume()             # explicit user gesture
    summary = handle.collect()  # None if nothing was watched
    await client.submit_session(summary)

Closing the handle without collecting (tab closed) submits nothing.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from decimal import Decimal
from typing import Protocol

from watchearn.session.engagement import EngagementMonitor
from watchearn.session.timer import SessionState, SessionSummary, SessionTimer

logger = logging.getLogger(__name__)


class SessionAd(Protocol):
    """Any ad-shaped object: ORM row, API schema or client dataclass."""

    id: str
    duration: int
    reward_amount: Decimal


class SessionHandle:
    def __init__(
        self,
        ad: SessionAd,
        monitor: EngagementMonitor | None = None,
        *,
        interval: float = 1.0,
        on_complete: Callable[[SessionHandle], object] | None = None,
        forfeit_partial_on_pause: bool = False,
    ) -> None:
        self.monitor = monitor or EngagementMonitor()
        self.timer = SessionTimer(
            str(ad.id),
            ad.duration,
            ad.reward_amount,
            is_foreground=lambda: self.monitor.foreground_active,
            on_complete=self._handle_complete,
            forfeit_partial_on_pause=forfeit_partial_on_pause,
        )
        self.monitor.on_background(self.pause)
        self._interval = interval
        self._on_complete = on_complete
        self._ticker: asyncio.Task[None] | None = None
        self._completed = asyncio.Event()

    @property
    def state(self) -> SessionState:
        return self.timer.state

    @property
    def elapsed_seconds(self) -> int:
        return self.timer.elapsed_seconds

    @property
    def displayed_earned_amount(self) -> Decimal:
        return self.timer.earned_amount

    def start(self) -> bool:
        started = self.timer.start()
        if started:
            self._ensure_ticker()
        return started

    def pause(self) -> bool:
        paused = self.timer.pause()
        self._cancel_ticker()
        return paused

    def resume(self) -> bool:
        """User gesture: re-arm the monitor, then start from idle or continue from the paused position."""
        if self.timer.state not in (SessionState.IDLE, SessionState.PAUSED):
            return False
        if not self.monitor.request_resume():
            return False
        return self.start()

    def collect(self) -> SessionSummary | None:
        self._cancel_ticker()
        summary = self.timer.collect()
        if self.timer.state is SessionState.COLLECTED:
            self.monitor.off_background(self.pause)
        return summary

    def close(self) -> None:
        """Abandon the session without reporting anything."""
        self._detach()

    async def wait_completed(self) -> None:
        await self._completed.wait()

    def _detach(self) -> None:
        self._cancel_ticker()
        self.monitor.off_background(self.pause)

    def _ensure_ticker(self) -> None:
        if self._ticker is None or self._ticker.done():
            self._ticker = asyncio.get_running_loop().create_task(self._run())

    def _cancel_ticker(self) -> None:
        if self._ticker is not None and not self._ticker.done():
            self._ticker.cancel()
        self._ticker = None

    async def _run(self) -> None:
        try:
            while self.timer.state is SessionState.RUNNING:
                await asyncio.sleep(self._interval)
                self.timer.tick()
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            self.timer.fail(exc)

    def _handle_complete(self, _timer: SessionTimer) -> None:
        self._completed.set()
        if self._on_complete is not None:
            self._on_complete(self)


def start_session(
    ad: SessionAd,
    monitor: EngagementMonitor | None = None,
    *,
    interval: float = 1.0,
    on_complete: Callable[[SessionHandle], object] | None = None,
    forfeit_partial_on_pause: bool = False,
) -> SessionHandle:
    """Create a handle for `ad` and start it if the page is in the foreground.

    Must be called with a running event loop.
    """
    handle = SessionHandle(
        ad,
        monitor,
        interval=interval,
        on_complete=on_complete,
        forfeit_partial_on_pause=forfeit_partial_on_pause,
    )
    if not handle.start():
        logger.info("session for ad %s created paused-idle: page not in foreground", ad.id)
    return handle
