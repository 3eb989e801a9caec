"""
Purpose: Orchestrator / decision pipeline (the "glue").
What it does:
Accepts a validated Booking, synthesises pickup and hospital coordinates,
builds the route, and wires a fresh TrackingLoop to the state machine.
Exposes cancel / complete for the UI buttons.

The Booking, its Route, the TrackingState and the TrackingLoop form one
"active unit". Only the DispatchService holds it, and a new booking replaces
it in one step: the old loop is stopped and the old markers removed before
the new ones exist.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

import numpy as np

from bookings.models import Booking
from dispatch.collaborators import MapSurface, MarkerRole, NotificationLog, StatusDisplay
from dispatch.errors import BookingInProgress
from dispatch.policy import DispatchPolicy, default_dispatch_policy
from dispatch.scheduling import Scheduler
from dispatch.state_machines.booking_state import BookingStateMachine, TrackingState
from dispatch.tracking_loop import TrackingLoop
from routing.route_service import Route, generate_route, jitter_point

logger = logging.getLogger(__name__)


@dataclass
class ActiveUnit:
    """One booking, its route and the loop driving it."""
    booking: Booking
    route: Route
    loop: TrackingLoop


class DispatchService:
    """
    Coordinates one booking at a time from submission to a terminal state.

    Usage:
        service = DispatchService(scheduler, surface, notifications, display)
        booking = service.book_and_dispatch({"name": "...", ...})
        recent.push_recent(booking)

        service.cancel_active(confirmed=True)
    """

    def __init__(
        self,
        scheduler: Scheduler,
        surface: MapSurface,
        notifications: NotificationLog,
        display: StatusDisplay,
        policy: Optional[DispatchPolicy] = None,
        rng: Optional[np.random.Generator] = None,
        machine: Optional[BookingStateMachine] = None,
    ) -> None:
        self.policy = policy or default_dispatch_policy()
        self.scheduler = scheduler
        self.surface = surface
        self.notifications = notifications
        self.display = display
        self.rng = rng if rng is not None else np.random.default_rng()
        self.machine = machine or BookingStateMachine(
            scheduler=scheduler,
            notifications=notifications,
            display=display,
            policy=self.policy,
        )
        self._unit: Optional[ActiveUnit] = None

    # ------------------------------------------------------------------
    # Read-only properties
    # ------------------------------------------------------------------

    @property
    def active_booking(self) -> Optional[Booking]:
        return self._unit.booking if self._unit else None

    @property
    def active_route(self) -> Optional[Route]:
        return self._unit.route if self._unit else None

    @property
    def active_loop(self) -> Optional[TrackingLoop]:
        return self._unit.loop if self._unit else None

    @property
    def state(self) -> TrackingState:
        return self.machine.state

    @property
    def can_cancel(self) -> bool:
        return self._unit is not None and self.machine.is_active

    @property
    def can_complete(self) -> bool:
        return self._unit is not None and self.machine.is_active

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    def book_and_dispatch(self, booking: Union[Booking, Dict[str, Any]]) -> Booking:
        """
        Validate, replace any previous unit, and start tracking the new booking.

        Args:
            booking: A Booking, or a raw form mapping {name, phone, pickup, hospital, type}.

        Returns:
            The committed Booking, for the caller to persist.

        Raises:
            InvalidBooking: a required field is empty. Nothing changes.
            BookingInProgress: a booking is still active and the policy forbids replacing it.
        """
        if not isinstance(booking, Booking):
            booking = Booking.from_form(booking)

        if self.can_cancel and not self.policy.replace_active_booking:
            raise BookingInProgress(
                f"Booking for {self.active_booking.name} is still active. Cancel or complete it first."
            )

        # 1. Tear down the previous unit before anything new is scheduled
        self._teardown()
        self.notifications.clear()

        # 2. Synthesise coordinates and the route
        start = jitter_point(self.policy.reference_point, self.policy.jitter_degrees, self.rng)
        end = jitter_point(self.policy.reference_point, self.policy.jitter_degrees, self.rng)
        route = generate_route(start, end, self.policy.route_steps)

        # 3. Markers and viewport
        self.surface.place_marker(MarkerRole.VEHICLE, start)
        self.surface.place_marker(MarkerRole.DESTINATION, end)
        self.surface.fit_view([start, end])

        # 4. State machine, then a fresh loop
        self.machine.start(booking, route)
        loop = TrackingLoop(
            machine=self.machine,
            scheduler=self.scheduler,
            surface=self.surface,
            interval_ms=self.policy.tick_interval_ms,
        )
        self._unit = ActiveUnit(booking=booking, route=route, loop=loop)
        loop.start()

        logger.info(
            f"Dispatched {booking.type.value} ambulance for {booking.name}: "
            f"{start[0]:.5f},{start[1]:.5f} -> {end[0]:.5f},{end[1]:.5f}"
        )
        return booking

    def cancel_active(self, confirmed: bool) -> bool:
        """
        Cancel the active booking once the user confirmed. Stops the loop and
        removes both markers.

        Returns:
            True if a booking was canceled.
        """
        if self._unit is None:
            return False
        if not self.machine.cancel(confirmed):
            return False
        self._unit.loop.stop()
        self.surface.remove_marker(MarkerRole.VEHICLE)
        self.surface.remove_marker(MarkerRole.DESTINATION)
        return True

    def complete_active(self) -> bool:
        """
        Mark the active booking completed. Stops the loop; markers stay on the map.

        Returns:
            True if a booking was completed.
        """
        if self._unit is None:
            return False
        if not self.machine.complete():
            return False
        self._unit.loop.stop()
        return True

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _teardown(self) -> None:
        if self._unit is None:
            self.machine.reset()
            return
        self._unit.loop.stop()
        self.machine.reset()
        self.surface.remove_marker(MarkerRole.VEHICLE)
        self.surface.remove_marker(MarkerRole.DESTINATION)
        logger.info(f"Previous booking for {self._unit.booking.name} discarded.")
        self._unit = None
