"""Reduces page visibility and window focus to a single "foreground active" flag.

Losing either signal drops foreground immediately and pauses any bound
timer. Regaining both signals is not enough on its own: the user has to
resume explicitly, so a backgrounded player never accrues passively.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

logger = logging.getLogger(__name__)


class EngagementMonitor:
    def __init__(self, *, visible: bool = True, focused: bool = True) -> None:
        self._visible = visible
        self._focused = focused
        # Set when foreground is lost; cleared only by an explicit user resume.
        self._awaiting_gesture = not (visible and focused)
        self._listeners: list[Callable[[], object]] = []

    @property
    def visible(self) -> bool:
        return self._visible

    @property
    def focused(self) -> bool:
        return self._focused

    @property
    def foreground_active(self) -> bool:
        return self._visible and self._focused and not self._awaiting_gesture

    def on_background(self, callback: Callable[[], object]) -> None:
        """Register a callback run synchronously when foreground is lost (e.g. timer.pause)."""
        self._listeners.append(callback)

    def off_background(self, callback: Callable[[], object]) -> None:
        """Drop a callback registered with on_background; unknown callbacks are ignored."""
        if callback in self._listeners:
            self._listeners.remove(callback)

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def set_visibility(self, visible: bool) -> None:
        self._update(visible=visible, focused=self._focused)

    def set_focus(self, focused: bool) -> None:
        self._update(visible=self._visible, focused=focused)

    def request_resume(self) -> bool:
        """User gesture. Re-arms foreground only if the page is visible and focused."""
        if not (self._visible and self._focused):
            return False
        self._awaiting_gesture = False
        return True

    def _update(self, *, visible: bool, focused: bool) -> None:
        was_active = self.foreground_active
        self._visible = visible
        self._focused = focused
        if visible and focused:
            return

        self._awaiting_gesture = True
        if was_active:
            logger.debug("foreground lost (visible=%s, focused=%s)", visible, focused)
            for callback in list(self._listeners):
                callback()
