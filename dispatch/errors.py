"""
Purpose: Error taxonomy for the dispatch engine.
What it does:
Separates user-facing failures (bad booking input, a booking already running)
from programming errors (malformed route parameters, illegal state transitions).

Rule: Illegal transitions are never surfaced to the UI. The state machine
catches them and no-ops.
"""

from routing.route_service import InvalidArgument


class DispatchError(Exception):
    """Base class for every dispatch engine error."""
    pass


class IllegalTransition(DispatchError):
    """Raised internally when an operation is invoked from a state that does not permit it."""
    pass


class BookingInProgress(DispatchError):
    """Raised when a new booking is submitted while the active one must be finished first."""
    pass
