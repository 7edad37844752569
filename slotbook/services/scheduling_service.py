"""
Application services for publishing availability and admitting bookings.

The service fetches fresh data through a store adapter on every call and
delegates the scheduling decisions to the pure domain functions. Reads are
never cached: a booking committed between two calls must show up in the next
availability computation.

Admission is serialized per owner. The conflict check and the write happen
while the owner's lock is held, so two concurrent requests for the same slot
cannot both pass the check against the same stale booking set.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Protocol, Union

import pendulum
from pendulum import DateTime

from ..domain.admission import admit_booking
from ..domain.exceptions import EventTypeNotFound, OutsideAvailableHours
from ..domain.models import (
    Attendee,
    AvailabilityProfile,
    Booking,
    DayAvailability,
    EventType,
)
from ..domain.window_scheduler import DEFAULT_WINDOW_DAYS, compute_availability

logger = logging.getLogger(__name__)


class SchedulingStoreProtocol(Protocol):
    """Protocol describing the record store behaviour needed by the service."""

    async def fetch_availability_profile(self, owner_id: str) -> Optional[AvailabilityProfile]:
        """Return the owner's profile, or None if none was saved."""

    async def fetch_event_type(self, event_type_id: str) -> Optional[EventType]:
        """Return the event type, or None if it does not exist."""

    async def fetch_bookings(
        self,
        owner_id: str,
        start: DateTime,
        end: DateTime,
    ) -> List[Booking]:
        """Return the owner's bookings overlapping ``[start, end)``."""

    async def persist_booking(self, booking: Booking) -> Booking:
        """Commit a booking and return the stored record."""

    async def save_availability_profile(self, profile: AvailabilityProfile) -> None:
        """Replace the owner's profile as a whole."""

    async def fetch_owner_id(self, username: str) -> Optional[str]:
        """Resolve a public username to an owner id."""

    async def fetch_event_types(self, owner_id: str) -> List[EventType]:
        """Return the owner's event types in definition order."""

    async def count_bookings(self, event_type_id: str) -> int:
        """Return how many bookings reference the event type."""

    async def delete_event_type(self, event_type_id: str) -> None:
        """Remove an event type."""


@dataclass(frozen=True)
class EventTypeSummary:
    """An event type as listed on its owner's page."""
    event_type: EventType
    booking_count: int


class SchedulingService:
    """
    Orchestrates store reads, slot computation and booking admission.

    Dependency inversion toward a protocol makes it easy to plug in the JSON
    file store or an in-memory store in tests.
    """

    def __init__(
        self,
        store: SchedulingStoreProtocol,
        window_days: int = DEFAULT_WINDOW_DAYS,
        clock: Optional[Callable[[], DateTime]] = None,
    ) -> None:
        self._store = store
        self._window_days = window_days
        self._clock = clock or (lambda: pendulum.now("UTC"))
        self._owner_locks: Dict[str, asyncio.Lock] = {}

    async def get_availability(
        self,
        event_type_id: str,
        now: Optional[DateTime] = None,
    ) -> List[DayAvailability]:
        """
        Compute the offerable slots of an event type over the rolling window.

        Unknown event types and owners without availability yield an empty list.
        """
        event_type = await self._store.fetch_event_type(event_type_id)
        if event_type is None:
            logger.debug("No event type %s, nothing to offer", event_type_id)
            return []

        profile = await self._store.fetch_availability_profile(event_type.owner_id)
        if profile is None:
            logger.debug("Owner %s has no availability configured", event_type.owner_id)
            return []

        now = now or self._clock()
        today = now.in_timezone(profile.timezone).date()
        window_start = pendulum.datetime(today.year, today.month, today.day, tz=profile.timezone)

        bookings = await self._store.fetch_bookings(
            owner_id=event_type.owner_id,
            start=window_start,
            end=window_start.add(days=self._window_days),
        )

        return compute_availability(
            event_type=event_type,
            profile=profile,
            bookings=bookings,
            today=today,
            now=now,
            window_days=self._window_days,
        )

    async def book(
        self,
        event_type_id: str,
        start: Union[str, DateTime],
        attendee_name: str,
        attendee_email: str,
        note: Optional[str] = None,
    ) -> Booking:
        """
        Admit and commit a booking request.

        ``start`` is an ISO-8601 instant; a string without an offset is read as
        wall-clock time in the owner's timezone.

        Raises:
            EventTypeNotFound: If the event type does not exist
            AdmissionError: If the request fails an admission check
            ValueError: If the attendee details or the start cannot be parsed
        """
        attendee = Attendee(name=attendee_name.strip(), email=attendee_email.strip(), note=note)

        event_type = await self._store.fetch_event_type(event_type_id)
        if event_type is None:
            raise EventTypeNotFound(f"Event type '{event_type_id}' not found")

        async with self._lock_for(event_type.owner_id):
            profile = await self._store.fetch_availability_profile(event_type.owner_id)
            if profile is None:
                raise OutsideAvailableHours(
                    f"Owner of '{event_type_id}' has no availability configured"
                )

            requested_start = parse_instant(start, profile.timezone)
            bookings = await self._store.fetch_bookings(
                owner_id=event_type.owner_id,
                start=requested_start,
                end=requested_start.add(minutes=event_type.duration_minutes),
            )

            booking = admit_booking(
                event_type=event_type,
                profile=profile,
                existing_bookings=bookings,
                requested_start=requested_start,
                attendee=attendee,
                now=self._clock(),
            )
            committed = await self._store.persist_booking(booking)

        logger.info(
            "Booked %s for %s (%s)",
            committed.interval,
            event_type.id,
            committed.id,
        )
        return committed

    async def list_event_types(
        self,
        username: str,
        include_private: bool = False,
    ) -> List[EventTypeSummary]:
        """List an owner's event types with their booking counts."""
        owner_id = await self._store.fetch_owner_id(username)
        if owner_id is None:
            return []

        summaries: List[EventTypeSummary] = []
        for event_type in await self._store.fetch_event_types(owner_id):
            if event_type.is_private and not include_private:
                continue
            count = await self._store.count_bookings(event_type.id)
            summaries.append(EventTypeSummary(event_type=event_type, booking_count=count))

        return summaries

    async def save_availability(self, profile: AvailabilityProfile) -> None:
        """Replace the owner's availability; previous day rules are discarded."""
        await self._store.save_availability_profile(profile)
        logger.info("Saved availability of owner %s", profile.owner_id)

    async def delete_event_type(self, owner_id: str, event_type_id: str) -> None:
        """
        Delete one of the owner's event types.

        Raises:
            EventTypeNotFound: If it does not exist or belongs to someone else
        """
        event_type = await self._store.fetch_event_type(event_type_id)
        if event_type is None or event_type.owner_id != owner_id:
            raise EventTypeNotFound(
                f"Event type '{event_type_id}' not found or not owned by '{owner_id}'"
            )

        await self._store.delete_event_type(event_type_id)
        logger.info("Deleted event type %s of owner %s", event_type_id, owner_id)

    def _lock_for(self, owner_id: str) -> asyncio.Lock:
        return self._owner_locks.setdefault(owner_id, asyncio.Lock())


def parse_instant(value: Union[str, DateTime], timezone: str) -> DateTime:
    """
    Parse an ISO-8601 instant.

    Raises:
        ValueError: If the value is not a date-time
    """
    if isinstance(value, DateTime):
        return value

    parsed = pendulum.parse(value, tz=timezone)
    if not isinstance(parsed, DateTime):
        raise ValueError(f"Not a date-time: '{value}'")
    return parsed
