"""
OCGP Lobby Client - Timer Reconciler

Derives the turn countdown and the total-elapsed clock from a room
snapshot. The countdown is display-only: reaching zero stops the
ticking but never decides a timeout, which the server reports later.
"""

from __future__ import annotations

import logging
import math
from typing import Callable

from lobby_client.api.models import RoomSnapshot, RoomStatus
from lobby_client.realtime.timers import Scheduler, TimerHandle

logger = logging.getLogger(__name__)

BLANK = "--"


def format_countdown(remaining: float) -> str:
    return f"{max(0.0, remaining):.1f}"


def format_elapsed(seconds: float) -> str:
    total = max(0, math.floor(seconds))
    return f"{total // 60}:{total % 60:02d}"


class TimerReconciler:
    """Keeps the two countdown displays in step with the snapshot."""

    def __init__(
        self,
        scheduler: Scheduler,
        *,
        on_countdown: Callable[[str], None],
        on_elapsed: Callable[[str], None],
        turn_tick: float = 0.2,
        elapsed_tick: float = 1.0,
        estimated_turn_seconds: float = 15.0,
    ) -> None:
        self._scheduler = scheduler
        self._on_countdown = on_countdown
        self._on_elapsed = on_elapsed
        self._turn_tick = turn_tick
        self._elapsed_tick = elapsed_tick
        self._estimate = estimated_turn_seconds

        self.countdown = BLANK
        self.elapsed = BLANK
        self.deadline: float | None = None
        self.elapsed_origin: float | None = None
        self._turn_timer: TimerHandle | None = None
        self._elapsed_timer: TimerHandle | None = None

    @property
    def turn_timer_active(self) -> bool:
        return self._turn_timer is not None and self._turn_timer.active

    @property
    def elapsed_timer_active(self) -> bool:
        return self._elapsed_timer is not None and self._elapsed_timer.active

    def reconcile(self, room: RoomSnapshot, *, player_changed: bool) -> None:
        self._reconcile_turn(room, player_changed)
        self._reconcile_elapsed(room)

    def stop(self) -> None:
        """Cancel both timers and blank both displays."""
        self._stop_turn()
        self._stop_elapsed()

    # -- Turn countdown --------------------------------------------------

    def _reconcile_turn(self, room: RoomSnapshot, player_changed: bool) -> None:
        if not (room.started and room.effective_status == RoomStatus.IN_PROGRESS):
            self._stop_turn()
            return

        if room.turn_deadline is not None:
            self.deadline = room.turn_deadline.timestamp()
        elif player_changed or self.deadline is None:
            self.deadline = self._scheduler.now() + self._estimate

        if self._render_countdown() > 0 and not self.turn_timer_active:
            self._turn_timer = self._scheduler.call_every(self._turn_tick, self._tick_turn)

    def _tick_turn(self) -> None:
        if self._render_countdown() <= 0 and self._turn_timer is not None:
            self._turn_timer.cancel()
            self._turn_timer = None

    def _render_countdown(self) -> float:
        remaining = max(0.0, self.deadline - self._scheduler.now())
        text = format_countdown(remaining)
        if text != self.countdown:
            self.countdown = text
            self._on_countdown(text)
        return remaining

    def _stop_turn(self) -> None:
        if self._turn_timer is not None:
            self._turn_timer.cancel()
            self._turn_timer = None
        self.deadline = None
        if self.countdown != BLANK:
            self.countdown = BLANK
            self._on_countdown(BLANK)

    # -- Total elapsed ---------------------------------------------------

    def _reconcile_elapsed(self, room: RoomSnapshot) -> None:
        if room.started_at is None:
            self._stop_elapsed()
            return

        origin = room.started_at.timestamp()
        if origin == self.elapsed_origin and self.elapsed_timer_active:
            return

        if self._elapsed_timer is not None:
            self._elapsed_timer.cancel()
        self.elapsed_origin = origin
        logger.debug("Elapsed clock armed from %s", room.started_at.isoformat())
        self._render_elapsed()
        self._elapsed_timer = self._scheduler.call_every(
            self._elapsed_tick, self._render_elapsed
        )

    def _render_elapsed(self) -> None:
        text = format_elapsed(self._scheduler.now() - self.elapsed_origin)
        if text != self.elapsed:
            self.elapsed = text
            self._on_elapsed(text)

    def _stop_elapsed(self) -> None:
        if self._elapsed_timer is not None:
            self._elapsed_timer.cancel()
            self._elapsed_timer = None
        self.elapsed_origin = None
        if self.elapsed != BLANK:
            self.elapsed = BLANK
            self._on_elapsed(BLANK)
