#Marks routing as a package.
#Re-exports the clean public API (generate_route, jitter_point) so other
#modules import from routing without knowing internal file names.
#No business logic.

from .route_service import generate_route, jitter_point, InvalidArgument, LatLon, Route

__all__ = [
           "generate_route",
           "jitter_point",
             "InvalidArgument",
             "LatLon",
             "Route",
             ]
