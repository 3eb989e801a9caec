#Purpose: Route computation for downstream use.
#Returns the synthetic "best route" the tracking loop walks along and the map
#draws as a polyline.
#No road network: the route is a straight line between two points, sampled
#at evenly spaced parameters t = i / steps.
#Also produces the synthetic pickup / hospital coordinates (jitter around a
#reference point) since there is no real geolocation.

import math
from typing import Tuple

import numpy as np

#internal coordinate type :(lat,lon)
LatLon = Tuple[float, float]
Route = Tuple[LatLon, ...]


class InvalidArgument(ValueError):
    """Raised when route parameters are malformed (steps <= 0, non-finite coordinates)."""
    pass


def _check_coordinate(name: str, coord: LatLon) -> None:
    if len(coord) != 2:
        raise InvalidArgument(f"{name} must be a (lat, lon) pair, got {coord!r}")
    if not all(isinstance(value, (int, float)) and math.isfinite(value) for value in coord):
        raise InvalidArgument(f"{name} has non-finite components: {coord!r}")


def generate_route(start: LatLon, end: LatLon, steps: int) -> Route:
    """
    Straight-line route from start to end.

    Args:
        start: (lat, lon) of the vehicle
        end:   (lat, lon) of the destination
        steps: number of segments, must be > 0

    Returns:
        Tuple of steps + 1 coordinates. The first equals start and the last
        equals end exactly; point i sits at parameter i / steps.

    Raises:
        InvalidArgument: steps <= 0 or a non-finite coordinate component.
    """
    if isinstance(steps, bool) or not isinstance(steps, (int, np.integer)) or steps <= 0:
        raise InvalidArgument(f"steps must be a positive integer, got {steps!r}")
    _check_coordinate("start", start)
    _check_coordinate("end", end)

    t = np.arange(steps + 1) / steps
    lats = start[0] + (end[0] - start[0]) * t
    lons = start[1] + (end[1] - start[1]) * t

    points = [(float(lat), float(lon)) for lat, lon in zip(lats, lons)]

    # pin the endpoints, interpolation can be off by an ulp at t = 1
    points[0] = (float(start[0]), float(start[1]))
    points[-1] = (float(end[0]), float(end[1]))
    return tuple(points)


def jitter_point(base: LatLon, spread: float, rng: np.random.Generator) -> LatLon:
    """
    Random coordinate inside a spread x spread box centred on `base`.
    """
    half = spread / 2
    lat = base[0] + rng.uniform(-half, half)
    lon = base[1] + rng.uniform(-half, half)
    return (float(lat), float(lon))
