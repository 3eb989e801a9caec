"""
Purpose: Lifecycle state machine for the single active booking.
What it does:
IDLE -> DISPATCHED -> EN_ROUTE -> ARRIVED
                 \\          \\--> CANCELED | COMPLETED
                  \\-------------> CANCELED | COMPLETED

Owns the TrackingState (status, ETA, progress along the route) and every side
effect a transition triggers: notifications and status / ETA display text.
Display text is always derived from the state, never stored.

Rule: Operations invoked from a state that does not allow them are logged and
ignored. They never raise to the caller.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from functools import partial
from typing import Callable, Dict, Iterable, Optional

from bookings.models import Booking
from dispatch.collaborators import NotificationLog, StatusDisplay
from dispatch.errors import IllegalTransition, InvalidArgument
from dispatch.policy import DispatchPolicy, default_dispatch_policy
from dispatch.scheduling import ScheduledHandle, Scheduler
from routing.route_service import Route

logger = logging.getLogger(__name__)


class TrackingStatus(str, Enum):
    IDLE = "idle"
    DISPATCHED = "dispatched"
    EN_ROUTE = "en_route"
    ARRIVED = "arrived"
    CANCELED = "canceled"
    COMPLETED = "completed"


ACTIVE_STATUSES = frozenset({TrackingStatus.DISPATCHED, TrackingStatus.EN_ROUTE})

UNKNOWN_ETA_TEXT = "—"


@dataclass(frozen=True)
class TrackingState:
    """
    Snapshot of the active booking's progress.
    eta_minutes is None when the ETA is unknown (after a cancellation or before dispatch).
    milestone is the last progress percentage announced (25 / 50 / 75).
    """
    status: TrackingStatus = TrackingStatus.IDLE
    eta_minutes: Optional[int] = None
    progress_index: int = 0
    milestone: Optional[int] = None

    @property
    def status_text(self) -> str:
        if self.status == TrackingStatus.EN_ROUTE and self.milestone is not None:
            return f"En route ({self.milestone}%)"
        return _STATUS_TEXT[self.status]

    @property
    def eta_text(self) -> str:
        if self.eta_minutes is None:
            return UNKNOWN_ETA_TEXT
        return f"{self.eta_minutes} mins"


_STATUS_TEXT = {
    TrackingStatus.IDLE: "Awaiting booking",
    TrackingStatus.DISPATCHED: "Ambulance dispatched",
    TrackingStatus.EN_ROUTE: "Ambulance dispatched",
    TrackingStatus.ARRIVED: "Arrived at hospital",
    TrackingStatus.CANCELED: "Booking canceled",
    TrackingStatus.COMPLETED: "Completed",
}


def milestone_indices(route_length: int) -> Dict[int, int]:
    """
    Progress indices at which 25% / 50% / 75% are announced.
    On very short routes two thresholds can land on the same index; the
    earlier announcement wins.
    """
    milestones: Dict[int, int] = {}
    for index, percent in (
        (route_length // 3, 25),
        (route_length // 2, 50),
        ((route_length * 3) // 4, 75),
    ):
        milestones.setdefault(index, percent)
    return milestones


class BookingStateMachine:
    """
    Owns the lifecycle of exactly one booking at a time.

    Usage:
        machine = BookingStateMachine(scheduler, notifications, display)
        machine.start(booking, route)

        # Inside the tracking loop:
        should_stop = machine.tick()

        # Before the next booking:
        machine.reset()
    """

    def __init__(
        self,
        scheduler: Scheduler,
        notifications: NotificationLog,
        display: StatusDisplay,
        policy: Optional[DispatchPolicy] = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.scheduler = scheduler
        self.notifications = notifications
        self.display = display
        self.policy = policy or default_dispatch_policy()
        self.clock = clock

        self._state = TrackingState()
        self._booking: Optional[Booking] = None
        self._route: Route = ()
        self._milestones: Dict[int, int] = {}
        self._alert_handle: Optional[ScheduledHandle] = None

    # ------------------------------------------------------------------
    # Read-only properties
    # ------------------------------------------------------------------

    @property
    def state(self) -> TrackingState:
        return self._state

    @property
    def status(self) -> TrackingStatus:
        return self._state.status

    @property
    def booking(self) -> Optional[Booking]:
        return self._booking

    @property
    def route(self) -> Route:
        return self._route

    @property
    def is_active(self) -> bool:
        """True while the booking can still be ticked, canceled or completed."""
        return self._state.status in ACTIVE_STATUSES

    @property
    def status_text(self) -> str:
        return self._state.status_text

    @property
    def eta_text(self) -> str:
        return self._state.eta_text

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def start(self, booking: Booking, route: Route) -> bool:
        """
        IDLE -> DISPATCHED. Emits the dispatch notifications and schedules the
        one-shot hospital alert.

        Returns:
            True if the booking was started, False if the machine was not idle.
        """
        try:
            self._require({TrackingStatus.IDLE}, "start")
        except IllegalTransition as e:
            logger.warning(str(e))
            return False

        if not route:
            raise InvalidArgument("route must contain at least one coordinate")

        self._booking = booking
        self._route = tuple(route)
        self._milestones = milestone_indices(len(self._route))
        self._set_state(TrackingState(
            status=TrackingStatus.DISPATCHED,
            eta_minutes=self.policy.initial_eta_minutes,
            progress_index=0,
        ), force_display=True)

        self._notify(f"Ambulance booked for {booking.name}. Driver will contact at {booking.phone}.")
        self._notify("Dispatch center notified. Preparing ambulance and paramedic team.")

        self._alert_handle = self.scheduler.call_later(
            self.policy.hospital_alert_delay_ms,
            partial(self._on_hospital_alert, booking),
        )
        logger.info(f"Booking for {booking.name} dispatched ({len(self._route)} route points).")
        return True

    def tick(self) -> bool:
        """
        Advance one route point.

        Returns:
            True if the tracking loop should stop (arrived, or nothing to track).
        """
        try:
            self._require(ACTIVE_STATUSES, "tick")
        except IllegalTransition as e:
            logger.warning(str(e))
            return True

        state = self._state
        route_length = len(self._route)
        progress_index = state.progress_index + 1

        # 1. Arrival wins over every other update in this tick
        if progress_index >= route_length:
            self._set_state(replace(
                state,
                status=TrackingStatus.ARRIVED,
                eta_minutes=0,
                progress_index=route_length,
            ))
            self._notify("Ambulance has arrived at the destination.")
            logger.info(f"Booking for {self._booking.name} arrived.")
            return True

        # 2./3. En route, ETA drops every N ticks and never below 0
        eta_minutes = state.eta_minutes
        if progress_index % self.policy.eta_decrement_every == 0 and eta_minutes:
            eta_minutes -= 1

        # 4. One-shot progress announcements
        milestone = self._milestones.get(progress_index, state.milestone)

        self._set_state(replace(
            state,
            status=TrackingStatus.EN_ROUTE,
            eta_minutes=eta_minutes,
            progress_index=progress_index,
            milestone=milestone,
        ))
        logger.debug(f"Tick {progress_index}/{route_length} eta={eta_minutes}")
        return False

    def cancel(self, confirmed: bool) -> bool:
        """
        DISPATCHED | EN_ROUTE -> CANCELED, only once the user confirmed.

        Returns:
            True if the booking was canceled (the loop should stop).
        """
        if not confirmed:
            logger.info("Cancellation not confirmed, booking kept.")
            return False
        try:
            self._require(ACTIVE_STATUSES, "cancel")
        except IllegalTransition as e:
            logger.warning(str(e))
            return False

        self._cancel_alert()
        self._set_state(replace(self._state, status=TrackingStatus.CANCELED, eta_minutes=None))
        self._notify("Booking canceled by user.")
        logger.info(f"Booking for {self._booking.name} canceled.")
        return True

    def complete(self) -> bool:
        """
        DISPATCHED | EN_ROUTE -> COMPLETED.

        Returns:
            True if the booking was completed (the loop should stop).
        """
        try:
            self._require(ACTIVE_STATUSES, "complete")
        except IllegalTransition as e:
            logger.warning(str(e))
            return False

        self._set_state(replace(self._state, status=TrackingStatus.COMPLETED, eta_minutes=0))
        self._notify("Ride marked as completed. Wishing a speedy recovery.")
        logger.info(f"Booking for {self._booking.name} completed.")
        return True

    def reset(self) -> None:
        """Drop the current booking from any state and return to IDLE."""
        self._cancel_alert()
        self._booking = None
        self._route = ()
        self._milestones = {}
        self._state = TrackingState()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _require(self, allowed: Iterable[TrackingStatus], operation: str) -> None:
        if self._state.status not in allowed:
            raise IllegalTransition(f"Cannot {operation} booking from {self._state.status.value}")

    def _set_state(self, new_state: TrackingState, force_display: bool = False) -> None:
        previous = self._state
        self._state = new_state
        if force_display or new_state.status_text != previous.status_text:
            self.display.set_status_text(new_state.status_text)
        if force_display or new_state.eta_text != previous.eta_text:
            self.display.set_eta_text(new_state.eta_text)

    def _notify(self, message: str) -> None:
        timestamp = self.clock().strftime("%H:%M:%S")
        self.notifications.append(f"{timestamp} - {message}")

    def _on_hospital_alert(self, booking: Booking) -> None:
        self._alert_handle = None
        # stale: the booking was replaced, reset or canceled after scheduling
        if self._booking is not booking or self._state.status in (TrackingStatus.IDLE, TrackingStatus.CANCELED):
            logger.debug("Ignoring hospital alert for a booking that is no longer active.")
            return
        self._notify(f'Hospital "{booking.hospital}" has been alerted. Emergency bay prepared.')

    def _cancel_alert(self) -> None:
        if self._alert_handle is not None:
            self._alert_handle.cancel()
            self._alert_handle = None
