"""
Purpose: Central configuration for the dispatch simulation (single source of truth).
What it does:

Stores all tunable timings and thresholds:

TICK_INTERVAL_MS = 600
HOSPITAL_ALERT_DELAY_MS = 3000
ROUTE_STEPS = 40
INITIAL_ETA_MINUTES = 18
ETA_DECREMENT_EVERY = 4

Optionally reads overrides from the environment (.env) so a simulation run can
be sped up without touching code.

Rule: No logic here, just parameters so you can tune without rewriting code.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from typing import Tuple

from dotenv import find_dotenv, load_dotenv

LatLon = Tuple[float, float]


@dataclass(frozen=True)
class DispatchPolicy:
    """
    Central configuration for booking dispatch and live tracking.
    """

    # --- Tracking cadence ---
    # One tick moves the vehicle one route point.
    tick_interval_ms: int = 600

    # One-shot "hospital alerted" notification after dispatch.
    hospital_alert_delay_ms: int = 3000

    # --- Route synthesis ---
    # Route length is route_steps + 1 points.
    route_steps: int = 40

    # Synthetic coordinates are jittered around this point (Saharanpur, UP).
    reference_point: LatLon = (29.967, 77.551)

    # Full width of the jitter box in degrees (0.06 is roughly 6.5 km).
    jitter_degrees: float = 0.06

    # --- ETA display ---
    initial_eta_minutes: int = 18

    # ETA drops by one minute every N ticks, floored at 0.
    eta_decrement_every: int = 4

    # --- Booking rules ---
    # If True a new booking tears down the active one instead of being refused.
    replace_active_booking: bool = True

    # Recent bookings kept by the persistence collaborator.
    recent_limit: int = 8

    def validate(self) -> None:
        """
        Basic sanity checks.
        """
        if self.tick_interval_ms <= 0:
            raise ValueError("tick_interval_ms must be > 0")

        if self.hospital_alert_delay_ms < 0:
            raise ValueError("hospital_alert_delay_ms must be >= 0")

        if self.route_steps <= 0:
            raise ValueError("route_steps must be > 0")

        if self.initial_eta_minutes < 0:
            raise ValueError("initial_eta_minutes must be >= 0")

        if self.eta_decrement_every <= 0:
            raise ValueError("eta_decrement_every must be > 0")

        if self.jitter_degrees < 0:
            raise ValueError("jitter_degrees must be >= 0")

        if self.recent_limit <= 0:
            raise ValueError("recent_limit must be > 0")


def default_dispatch_policy() -> DispatchPolicy:
    """
    Convenience factory for the default policy.
    """
    p = DispatchPolicy()
    p.validate()
    return p


# Environment variable -> (policy field, parser)
_ENV_OVERRIDES = {
    "DISPATCH_TICK_INTERVAL_MS": ("tick_interval_ms", int),
    "DISPATCH_HOSPITAL_ALERT_DELAY_MS": ("hospital_alert_delay_ms", int),
    "DISPATCH_ROUTE_STEPS": ("route_steps", int),
    "DISPATCH_INITIAL_ETA_MINUTES": ("initial_eta_minutes", int),
    "DISPATCH_ETA_DECREMENT_EVERY": ("eta_decrement_every", int),
    "DISPATCH_JITTER_DEGREES": ("jitter_degrees", float),
    "DISPATCH_RECENT_LIMIT": ("recent_limit", int),
}


def policy_from_env(base: DispatchPolicy | None = None, dotenv_path: str | None = None) -> DispatchPolicy:
    """
    Build a policy from the default (or `base`) with overrides taken from the
    environment / .env file.

    Example in .env:
    DISPATCH_TICK_INTERVAL_MS=100
    DISPATCH_REFERENCE_POINT=29.967,77.551
    """
    load_dotenv(dotenv_path or find_dotenv(usecwd=True))
    base = base or DispatchPolicy()

    overrides = {}
    for env_name, (field_name, parse) in _ENV_OVERRIDES.items():
        raw = os.getenv(env_name)
        if raw is None or raw.strip() == "":
            continue
        try:
            overrides[field_name] = parse(raw)
        except ValueError:
            raise ValueError(f"{env_name} must be a number, got {raw!r}")

    raw_point = os.getenv("DISPATCH_REFERENCE_POINT")
    if raw_point:
        try:
            lat, lon = (float(part) for part in raw_point.split(","))
        except ValueError:
            raise ValueError(f"DISPATCH_REFERENCE_POINT must be 'lat,lon', got {raw_point!r}")
        overrides["reference_point"] = (lat, lon)

    raw_replace = os.getenv("DISPATCH_REPLACE_ACTIVE_BOOKING")
    if raw_replace:
        overrides["replace_active_booking"] = raw_replace.strip().lower() in ("1", "true", "yes")

    p = replace(base, **overrides)
    p.validate()
    return p
