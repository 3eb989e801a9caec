import pytest

from bookings.models import Booking
from dispatch.collaborators import (
    InMemoryNotificationLog,
    InMemoryStatusDisplay,
    MarkerRole,
    RecordingMapSurface,
)
from dispatch.scheduling import SimulatedScheduler
from dispatch.state_machines.booking_state import BookingStateMachine, TrackingStatus
from dispatch.tracking_loop import TrackingLoop
from routing.route_service import generate_route

TICK_MS = 600


@pytest.fixture
def scheduler():
    return SimulatedScheduler()


@pytest.fixture
def surface():
    return RecordingMapSurface()


@pytest.fixture
def route():
    return generate_route((29.95, 77.53), (29.99, 77.58), 40)


@pytest.fixture
def machine(scheduler, route):
    machine = BookingStateMachine(scheduler, InMemoryNotificationLog(), InMemoryStatusDisplay())
    booking = Booking.new("Asha Verma", "9876543210", "Clock Tower", "District Hospital", "basic")
    machine.start(booking, route)
    return machine


@pytest.fixture
def loop(machine, scheduler, surface, route):
    surface.place_marker(MarkerRole.VEHICLE, route[0])
    return TrackingLoop(machine, scheduler, surface, interval_ms=TICK_MS)


def test_nothing_happens_before_the_first_period(loop, machine, scheduler, surface):
    loop.start()
    scheduler.advance(TICK_MS - 1)

    assert machine.state.progress_index == 0
    assert surface.moves == []


def test_each_period_reports_the_current_point_then_ticks(loop, machine, scheduler, surface, route):
    loop.start()

    scheduler.advance(TICK_MS)
    assert surface.moves == [route[0]]
    assert machine.state.progress_index == 1

    scheduler.advance(TICK_MS)
    assert surface.moves == [route[0], route[1]]
    assert machine.state.progress_index == 2


def test_loop_walks_the_whole_route_and_stops_on_arrival(loop, machine, scheduler, surface, route):
    loop.start()

    scheduler.advance(TICK_MS * 160)

    assert machine.status == TrackingStatus.ARRIVED
    assert surface.moves == list(route)
    assert surface.marker(MarkerRole.VEHICLE) == route[-1]
    assert loop.ticks_fired == len(route)
    assert not loop.is_running


def test_no_tick_is_scheduled_after_arrival(loop, scheduler):
    loop.start()
    scheduler.run_until_idle()

    assert scheduler.pending == 0


def test_stop_is_idempotent_and_freezes_progress(loop, machine, scheduler, surface):
    loop.start()
    scheduler.advance(TICK_MS * 3)

    loop.stop()
    loop.stop()
    scheduler.advance(TICK_MS * 10)

    assert machine.state.progress_index == 3
    assert len(surface.moves) == 3
    assert not loop.is_running


def test_start_twice_does_not_double_the_cadence(loop, machine, scheduler):
    loop.start()
    loop.start()

    scheduler.advance(TICK_MS * 5)

    assert machine.state.progress_index == 5


def test_tick_already_queued_behind_a_cancel_has_no_effect(loop, machine, scheduler, surface):
    """
    Cancellation lands at the same instant as a scheduled tick, but first.
    The tick must find the booking canceled and leave everything alone.
    """
    scheduler.call_later(TICK_MS, lambda: machine.cancel(confirmed=True))
    loop.start()

    scheduler.advance(TICK_MS)

    assert machine.status == TrackingStatus.CANCELED
    assert machine.state.progress_index == 0
    assert surface.moves == []
    assert not loop.is_running


def test_callback_firing_after_stop_is_ignored(loop, machine, surface):
    loop.start()
    loop.stop()

    # simulate a timer that slipped through before cancellation
    loop._on_tick()

    assert machine.state.progress_index == 0
    assert surface.moves == []


def test_loop_stops_when_the_machine_was_reset(loop, machine, scheduler, surface):
    loop.start()
    scheduler.advance(TICK_MS)
    machine.reset()

    scheduler.advance(TICK_MS * 5)

    assert surface.moves and len(surface.moves) == 1
    assert not loop.is_running


def test_interval_must_be_positive(machine, scheduler, surface):
    with pytest.raises(ValueError):
        TrackingLoop(machine, scheduler, surface, interval_ms=0)


def test_loop_needs_a_started_machine(scheduler, surface):
    idle = BookingStateMachine(scheduler, InMemoryNotificationLog(), InMemoryStatusDisplay())
    loop = TrackingLoop(idle, scheduler, surface)

    with pytest.raises(ValueError):
        loop.start()
