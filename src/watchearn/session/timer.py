"""Per-ad countdown that measures foreground engagement one tick at a time.

State progression: idle -> running <-> paused, running -> completed, and any
of running/paused/completed -> collected once the summary is handed off.
The timer owns no clock; a driver calls tick() once per wall-clock second.
"""

from __future__ import annotations

import enum
import logging
from collections.abc import Callable
from dataclasses import dataclass
from decimal import Decimal

from watchearn.earnings import is_complete, reward
from watchearn.errors import ValidationError

logger = logging.getLogger(__name__)


class SessionState(str, enum.Enum):
    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"
    COMPLETED = "completed"
    COLLECTED = "collected"


@dataclass(frozen=True)
class SessionSummary:
    """What the player hands to the ledger. The amount is for display only."""

    ad_id: str
    watch_time_seconds: int
    displayed_earned_amount: Decimal
    completed: bool

    def as_watch_event(self) -> dict[str, object]:
        return {
            "ad_id": self.ad_id,
            "watch_time_seconds": self.watch_time_seconds,
            "completed": self.completed,
        }


class SessionTimer:
    """Single-threaded pause/resume countdown bound to one ad."""

    def __init__(
        self,
        ad_id: str,
        duration_seconds: int,
        max_reward: Decimal | int | float | str,
        *,
        is_foreground: Callable[[], bool] | None = None,
        on_tick: Callable[[SessionTimer], None] | None = None,
        on_complete: Callable[[SessionTimer], None] | None = None,
        forfeit_partial_on_pause: bool = False,
    ) -> None:
        if duration_seconds <= 0:
            raise ValidationError("Ad duration must be greater than 0 seconds", duration=duration_seconds)
        self.ad_id = ad_id
        self.duration_seconds = duration_seconds
        self.max_reward = Decimal(str(max_reward))
        self.state = SessionState.IDLE
        self.elapsed_seconds = 0
        self.earned_amount = Decimal("0")
        self.was_paused = False
        self.last_error: Exception | None = None
        self._is_foreground = is_foreground or (lambda: True)
        self._on_tick = on_tick
        self._on_complete = on_complete
        self._forfeit_partial_on_pause = forfeit_partial_on_pause
        self._completion_fired = False

    # -- transitions --

    def start(self) -> bool:
        """Start fresh from idle or resume from paused. No-op unless foreground active."""
        if self.state not in (SessionState.IDLE, SessionState.PAUSED):
            return False
        if not self._is_foreground():
            logger.debug("start ignored for ad %s: not in foreground", self.ad_id)
            return False
        if self.state is SessionState.IDLE:
            self.elapsed_seconds = 0
            self.earned_amount = Decimal("0")
        self.state = SessionState.RUNNING
        return True

    def pause(self) -> bool:
        """Stop accruing. Idempotent: pausing a paused timer changes nothing."""
        if self.state is not SessionState.RUNNING:
            return False
        self.state = SessionState.PAUSED
        self.was_paused = True
        return True

    def tick(self) -> None:
        """Advance one second. Only meaningful while running."""
        if self.state is not SessionState.RUNNING:
            return

        self.elapsed_seconds += 1
        self.earned_amount = reward(self.elapsed_seconds, self.duration_seconds, self.max_reward)
        completed_now = is_complete(self.elapsed_seconds, self.duration_seconds)
        if completed_now:
            self.state = SessionState.COMPLETED

        if self._on_tick is not None:
            try:
                self._on_tick(self)
            except Exception as exc:
                # A broken display callback must not cost the user accrued time.
                self.fail(exc)

        if completed_now:
            self._fire_completion()

    def fail(self, exc: Exception) -> None:
        """Absorb a driver/callback failure: pause and keep what was accrued."""
        logger.warning("session for ad %s paused after error: %s", self.ad_id, exc)
        self.last_error = exc
        self.pause()

    def collect(self) -> SessionSummary | None:
        """Finish the session and return its summary, or None when there is nothing to report."""
        if self.state not in (SessionState.RUNNING, SessionState.PAUSED, SessionState.COMPLETED):
            return None
        if self.elapsed_seconds <= 0:
            return None

        completed = self.state is SessionState.COMPLETED
        self.state = SessionState.COLLECTED
        if self._forfeit_partial_on_pause and self.was_paused and not completed:
            logger.info("partial session for ad %s forfeited after pause", self.ad_id)
            return None
        return SessionSummary(
            ad_id=self.ad_id,
            watch_time_seconds=self.elapsed_seconds,
            displayed_earned_amount=self.earned_amount,
            completed=completed,
        )

    stop = collect

    # -- helpers --

    @property
    def progress(self) -> float:
        return min(self.elapsed_seconds / self.duration_seconds, 1.0)

    @property
    def remaining_seconds(self) -> int:
        return max(self.duration_seconds - self.elapsed_seconds, 0)

    def _fire_completion(self) -> None:
        if self._completion_fired:
            return
        self._completion_fired = True
        if self._on_complete is not None:
            try:
                self._on_complete(self)
            except Exception as exc:
                logger.warning("completion callback for ad %s failed: %s", self.ad_id, exc)
                self.last_error = exc
