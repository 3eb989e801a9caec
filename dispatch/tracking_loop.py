"""
Purpose: The periodic driver that moves the vehicle along its route.
What it does:
Every tick_interval_ms it reads route[progress_index] (before the machine
increments it), moves the vehicle marker there, then asks the state machine
to tick. When the machine signals stop, the loop cancels its own future ticks.

Instead of a blocking sleep loop, each tick is a one-shot deferred callback
that schedules the next one. Stopping cancels the pending callback and marks
the loop stopped, so a callback that was already queued finds the loop
stopped and does nothing.
"""

from __future__ import annotations

import logging
from typing import Optional

from dispatch.collaborators import MapSurface, MarkerRole
from dispatch.scheduling import ScheduledHandle, Scheduler
from dispatch.state_machines.booking_state import BookingStateMachine

logger = logging.getLogger(__name__)


class TrackingLoop:
    """
    Drives one active unit. Create a fresh loop per booking.

    Args:
        machine:     State machine that owns the TrackingState.
        scheduler:   Timeline the ticks are scheduled on.
        surface:     Map surface the vehicle position is reported to.
        interval_ms: Tick period.
    """

    def __init__(
        self,
        machine: BookingStateMachine,
        scheduler: Scheduler,
        surface: MapSurface,
        interval_ms: int = 600,
    ) -> None:
        if interval_ms <= 0:
            raise ValueError("interval_ms must be > 0")
        self.machine = machine
        self.scheduler = scheduler
        self.surface = surface
        self.interval_ms = interval_ms

        self._route = machine.route
        self._handle: Optional[ScheduledHandle] = None
        self._running = False
        self._ticks_fired = 0

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def ticks_fired(self) -> int:
        return self._ticks_fired

    def start(self) -> None:
        if self._running:
            return
        if not self._route:
            raise ValueError("Cannot start tracking: the state machine has no route loaded.")
        self._running = True
        self._schedule_next()
        logger.debug(f"Tracking loop started ({self.interval_ms} ms period).")

    def stop(self) -> None:
        """Cancel every future tick. Safe to call more than once."""
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        if self._running:
            self._running = False
            logger.debug(f"Tracking loop stopped after {self._ticks_fired} ticks.")

    def _schedule_next(self) -> None:
        self._handle = self.scheduler.call_later(self.interval_ms, self._on_tick)

    def _on_tick(self) -> None:
        self._handle = None
        # queued before stop() or a booking replacement
        if not self._running:
            return
        # the machine must still be tracking the route this loop was built for
        if self.machine.route is not self._route or not self.machine.is_active:
            self.stop()
            return

        self._ticks_fired += 1
        progress_index = self.machine.state.progress_index
        if progress_index < len(self._route):
            self.surface.move_marker(MarkerRole.VEHICLE, self._route[progress_index])

        should_stop = self.machine.tick()
        if should_stop:
            self.stop()
        else:
            self._schedule_next()
