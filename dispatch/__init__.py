#Expose the high-level pipeline pieces:
#Booking lifecycle state machine
#Tracking loop (the periodic driver)
#Dispatch service orchestrator (the "one call" entry point)

from .state_machines.booking_state import BookingStateMachine, TrackingState, TrackingStatus
from .tracking_loop import TrackingLoop
from .dispatcher import DispatchService #the main class to call to dispatch a booking
from .policy import DispatchPolicy, default_dispatch_policy, policy_from_env
from .scheduling import SimulatedScheduler, AsyncioScheduler
from .errors import DispatchError, IllegalTransition, InvalidArgument, BookingInProgress

__all__ = [
    "BookingStateMachine",
    "TrackingState",
    "TrackingStatus",
    "TrackingLoop",
    "DispatchService",
    "DispatchPolicy",
    "default_dispatch_policy",
    "policy_from_env",
    "SimulatedScheduler",
    "AsyncioScheduler",
    "DispatchError",
    "IllegalTransition",
    "InvalidArgument",
    "BookingInProgress",
]
