"""
Purpose: Recent bookings store (the persistence collaborator).
What it does:
Keeps a bounded, most-recent-first list of committed bookings and optionally
mirrors it to a JSON file so the list survives restarts.

Rule: The store never validates or dispatches. It only remembers.
"""

import json
import logging
import os
from typing import List, Optional

from .models import Booking

logger = logging.getLogger(__name__)

DEFAULT_RECENT_LIMIT = 8


class RecentBookings:
    """
    Bounded list of past bookings, most recent first.

    Args:
        limit:    How many bookings to keep.
        filepath: Optional JSON file to load from and save to.
    """

    def __init__(self, limit: int = DEFAULT_RECENT_LIMIT, filepath: Optional[str] = None) -> None:
        if limit <= 0:
            raise ValueError("limit must be > 0")
        self.limit = limit
        self.filepath = filepath
        self._bookings: List[Booking] = self._load() if filepath else []

    def push_recent(self, booking: Booking) -> None:
        """Insert at the front and drop anything beyond the limit."""
        self._bookings.insert(0, booking)
        del self._bookings[self.limit:]
        if self.filepath:
            self._save()

    def list_recent(self) -> List[Booking]:
        return list(self._bookings)

    def __len__(self) -> int:
        return len(self._bookings)

    # ------------------------------------------------------------------
    # File persistence
    # ------------------------------------------------------------------

    def _load(self) -> List[Booking]:
        if not os.path.exists(self.filepath):
            return []
        try:
            with open(self.filepath, "r", encoding="utf-8") as f:
                data = json.load(f)
            if not isinstance(data, list) or not all(isinstance(entry, dict) for entry in data):
                raise ValueError("expected a JSON list of booking objects")
            bookings = [Booking.from_dict(entry) for entry in data]
        except (IOError, KeyError, TypeError, ValueError) as e:
            # InvalidBooking is a ValueError: one bad entry discards the file.
            logger.error(f"Failed to load recent bookings from {self.filepath}: {e}")
            return []
        logger.info(f"Loaded {len(bookings)} recent bookings from {self.filepath}.")
        return bookings[:self.limit]

    def _save(self) -> None:
        try:
            with open(self.filepath, "w", encoding="utf-8") as f:
                json.dump([b.to_dict() for b in self._bookings], f, ensure_ascii=False, indent=2)
        except IOError as e:
            logger.error(f"Failed to save recent bookings to {self.filepath}: {e}")
