"""
Purpose: Contracts for everything outside the dispatch engine.
What it does:
The engine reports to three collaborators it does not own:
- MapSurface:      vehicle / destination markers and the viewport
- NotificationLog: timestamped text messages
- StatusDisplay:   status text and ETA text

Each contract is a Protocol plus an in-memory implementation used by the
simulation script and the tests.

Rule: No dispatch rules here. Collaborators only record what they are told.
"""

from __future__ import annotations

from enum import Enum
from typing import Dict, List, Optional, Protocol, Sequence, Tuple

import pandas as pd

LatLon = Tuple[float, float]


class MarkerRole(str, Enum):
    VEHICLE = "vehicle"
    DESTINATION = "destination"


class MapSurface(Protocol):
    def place_marker(self, role: MarkerRole, coordinate: LatLon) -> None: ...
    def move_marker(self, role: MarkerRole, coordinate: LatLon) -> None: ...
    def remove_marker(self, role: MarkerRole) -> None: ...
    def fit_view(self, coordinates: Sequence[LatLon]) -> None: ...


class NotificationLog(Protocol):
    def append(self, message: str) -> None: ...
    def clear(self) -> None: ...


class StatusDisplay(Protocol):
    def set_status_text(self, text: str) -> None: ...
    def set_eta_text(self, text: str) -> None: ...


class RecordingMapSurface:
    """
    In-memory map. Keeps the markers currently shown plus every vehicle
    position it was asked to draw, so a run can be replayed or exported.
    """

    def __init__(self) -> None:
        self.markers: Dict[MarkerRole, LatLon] = {}
        self.moves: List[LatLon] = []
        self.view: List[LatLon] = []

    def place_marker(self, role: MarkerRole, coordinate: LatLon) -> None:
        self.markers[role] = coordinate

    def move_marker(self, role: MarkerRole, coordinate: LatLon) -> None:
        if role not in self.markers:
            # moving a marker that was removed is a no-op on a real map too
            return
        self.markers[role] = coordinate
        if role == MarkerRole.VEHICLE:
            self.moves.append(coordinate)

    def remove_marker(self, role: MarkerRole) -> None:
        self.markers.pop(role, None)

    def fit_view(self, coordinates: Sequence[LatLon]) -> None:
        self.view = list(coordinates)

    def marker(self, role: MarkerRole) -> Optional[LatLon]:
        return self.markers.get(role)

    def to_frame(self) -> pd.DataFrame:
        """Vehicle trace as a DataFrame (one row per drawn position)."""
        return pd.DataFrame(
            [(index, lat, lon) for index, (lat, lon) in enumerate(self.moves)],
            columns=["tick", "lat", "lon"],
        )


class InMemoryNotificationLog:

    def __init__(self) -> None:
        self.messages: List[str] = []

    def append(self, message: str) -> None:
        self.messages.append(message)

    def clear(self) -> None:
        self.messages.clear()

    def __str__(self) -> str:
        return "\n".join(self.messages)


class InMemoryStatusDisplay:

    def __init__(self) -> None:
        self.status_text: str = ""
        self.eta_text: str = ""
        self.status_history: List[str] = []

    def set_status_text(self, text: str) -> None:
        self.status_text = text
        self.status_history.append(text)

    def set_eta_text(self, text: str) -> None:
        self.eta_text = text
