"""
In-memory record store for profiles, event types and bookings.
"""

import logging
import threading
from typing import Dict, Iterable, List, Optional

from pendulum import DateTime

from ..domain.exceptions import SlotConflict, StoreError
from ..domain.models import AvailabilityProfile, Booking, EventType, Interval

logger = logging.getLogger(__name__)


class InMemoryStore:
    """
    Store that keeps every record in process memory.

    ``persist_booking`` enforces the no-overlap rule per owner under a lock,
    playing the role of an exclusion constraint on (owner, interval): even a
    caller that skips the service's own serialization cannot commit two
    overlapping bookings.
    """

    def __init__(
        self,
        profiles: Iterable[AvailabilityProfile] = (),
        event_types: Iterable[EventType] = (),
        bookings: Iterable[Booking] = (),
        usernames: Optional[Dict[str, str]] = None,
    ):
        """
        Initialize the store.

        Args:
            profiles: Availability profiles, one per owner
            event_types: Event types of all owners
            bookings: Already committed bookings
            usernames: Mapping of public username to owner id
        """
        self._lock = threading.Lock()
        self._profiles: Dict[str, AvailabilityProfile] = {
            profile.owner_id: profile for profile in profiles
        }
        self._event_types: Dict[str, EventType] = {
            event_type.id: event_type for event_type in event_types
        }
        self._bookings: List[Booking] = list(bookings)
        self._usernames: Dict[str, str] = {
            name.lower(): owner_id for name, owner_id in (usernames or {}).items()
        }

    async def fetch_availability_profile(self, owner_id: str) -> Optional[AvailabilityProfile]:
        with self._lock:
            return self._profiles.get(owner_id)

    async def fetch_event_type(self, event_type_id: str) -> Optional[EventType]:
        with self._lock:
            return self._event_types.get(event_type_id)

    async def fetch_bookings(
        self,
        owner_id: str,
        start: DateTime,
        end: DateTime,
    ) -> List[Booking]:
        window = Interval(start=start, end=end)
        with self._lock:
            self._refresh()
            return [
                booking for booking in self._bookings
                if booking.owner_id == owner_id and booking.interval.overlaps(window)
            ]

    async def persist_booking(self, booking: Booking) -> Booking:
        with self._lock:
            self._refresh()
            if any(existing.id == booking.id for existing in self._bookings):
                raise StoreError(f"Booking id '{booking.id}' already exists")

            for existing in self._bookings:
                if existing.owner_id == booking.owner_id and existing.interval.overlaps(booking.interval):
                    logger.warning(
                        "Refused booking %s: overlaps committed booking %s",
                        booking.id,
                        existing.id,
                    )
                    raise SlotConflict(f"{booking.interval} conflicts with an existing booking")

            self._bookings.append(booking)
            self._on_commit()

        return booking

    async def save_availability_profile(self, profile: AvailabilityProfile) -> None:
        with self._lock:
            self._profiles[profile.owner_id] = profile

    async def fetch_owner_id(self, username: str) -> Optional[str]:
        with self._lock:
            return self._usernames.get(username.lower())

    async def fetch_event_types(self, owner_id: str) -> List[EventType]:
        """Event types of an owner, most recently added first."""
        with self._lock:
            return [
                event_type for event_type in reversed(list(self._event_types.values()))
                if event_type.owner_id == owner_id
            ]

    async def count_bookings(self, event_type_id: str) -> int:
        with self._lock:
            self._refresh()
            return sum(1 for booking in self._bookings if booking.event_type_id == event_type_id)

    async def delete_event_type(self, event_type_id: str) -> None:
        with self._lock:
            self._event_types.pop(event_type_id, None)

    def all_bookings(self) -> List[Booking]:
        """Snapshot of every committed booking."""
        with self._lock:
            self._refresh()
            return list(self._bookings)

    def _refresh(self) -> None:
        """Hook run inside the lock before bookings are read."""

    def _on_commit(self) -> None:
        """Hook run inside the lock after a booking is appended."""
