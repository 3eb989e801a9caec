import asyncio
import logging
import os
import sys

import numpy as np

from bookings import Booking, RecentBookings
from dispatch import AsyncioScheduler, DispatchService, SimulatedScheduler, policy_from_env
from dispatch.collaborators import InMemoryNotificationLog, InMemoryStatusDisplay, RecordingMapSurface

SAMPLE_FORM = {
    "name": "Asha Verma",
    "phone": "+91 98765 43210",
    "pickup": "Clock Tower, Saharanpur",
    "hospital": "District Hospital Saharanpur",
    "type": "advanced",
}


def build_service(scheduler, seed=None):
    policy = policy_from_env()
    surface = RecordingMapSurface()
    notifications = InMemoryNotificationLog()
    display = InMemoryStatusDisplay()
    service = DispatchService(
        scheduler=scheduler,
        surface=surface,
        notifications=notifications,
        display=display,
        policy=policy,
        rng=np.random.default_rng(seed),
    )
    return service, surface, notifications, display


def print_report(service, surface, notifications, display, recent):
    print("\n--- Notifications ---")
    print(notifications)
    print("\n--- Final Status ---")
    print(f"Status: {display.status_text}")
    print(f"ETA: {display.eta_text}")
    print(f"Route points drawn: {len(surface.moves)} / {len(service.active_route)}")
    print("\n--- Recent Bookings ---")
    for booking in recent.list_recent():
        print(f"  {booking.name} • {booking.type.value.upper()} • {booking.pickup} -> {booking.hospital}")


def run_simulation(seed=7, output_file="tracking_trace.csv"):
    print("=== STARTING SIMULATED DISPATCH ===")

    scheduler = SimulatedScheduler()
    service, surface, notifications, display = build_service(scheduler, seed=seed)
    recent = RecentBookings(limit=service.policy.recent_limit, filepath=os.getenv("RECENT_BOOKINGS_FILE"))

    # 1. Submit the booking form
    booking = service.book_and_dispatch(SAMPLE_FORM)
    recent.push_recent(booking)
    print(booking.summary())

    # 2. Drive the virtual clock until the ambulance arrives
    scheduler.run_until_idle()
    print(f"\nVirtual time elapsed: {scheduler.now_ms / 1000:.1f}s")

    # 3. Export the vehicle trace
    df = surface.to_frame()
    df.to_csv(output_file, index=False)
    print(f"Trace of {len(df)} positions saved to '{output_file}'")

    print_report(service, surface, notifications, display, recent)
    print("\n=== SIMULATION COMPLETE ===")


async def run_live(seed=7):
    print("=== STARTING LIVE DISPATCH (wall clock) ===")

    service, surface, notifications, display = build_service(AsyncioScheduler(), seed=seed)
    recent = RecentBookings(limit=service.policy.recent_limit)

    booking = service.book_and_dispatch(Booking.from_form(SAMPLE_FORM))
    recent.push_recent(booking)
    print(booking.summary())

    last_status = None
    while service.active_loop.is_running:
        if display.status_text != last_status:
            last_status = display.status_text
            print(f"[{display.eta_text}] {last_status}")
        await asyncio.sleep(service.policy.tick_interval_ms / 1000)

    print_report(service, surface, notifications, display, recent)
    print("\n=== LIVE RUN COMPLETE ===")


if __name__ == "__main__":
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    if "--live" in sys.argv:
        asyncio.run(run_live())
    else:
        run_simulation()
