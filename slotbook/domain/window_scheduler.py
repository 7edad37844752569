"""
Rolling-window availability: one slot list per bookable date.
"""

from typing import Iterable, List, Optional

import pendulum
from pendulum import Date, DateTime

from .availability import rule_for
from .models import AvailabilityProfile, Booking, DayAvailability, EventType, Interval
from .slot_generator import generate_day_slots

DEFAULT_WINDOW_DAYS = 30


def compute_availability(
    event_type: Optional[EventType],
    profile: Optional[AvailabilityProfile],
    bookings: Iterable[Booking],
    today: Date,
    now: DateTime,
    window_days: int = DEFAULT_WINDOW_DAYS,
) -> List[DayAvailability]:
    """
    Compute the public availability of an event type.

    Covers ``[today, today + window_days)``. Dates without a single offerable
    slot are left out of the result rather than returned with an empty list.

    Returns an empty list when either the event type or the profile is missing;
    an owner without configured availability simply has nothing to offer.
    """
    if event_type is None or profile is None:
        return []

    owner_bookings = [
        booking for booking in bookings
        if booking.owner_id == event_type.owner_id
    ]

    result: List[DayAvailability] = []
    current = today

    for _ in range(window_days):
        day_rule = rule_for(current, profile)

        if day_rule.is_available:
            slots = list(
                generate_day_slots(
                    day=current,
                    day_rule=day_rule,
                    duration_minutes=event_type.duration_minutes,
                    gap_minutes=profile.minimum_gap_minutes,
                    existing_bookings=_bookings_on(current, owner_bookings, profile.timezone),
                    now=now,
                    timezone=profile.timezone,
                )
            )
            if slots:
                result.append(DayAvailability(date=current, slots=slots))

        current = current.add(days=1)

    return result


def _bookings_on(day: Date, bookings: List[Booking], timezone: str) -> List[Booking]:
    """Bookings that overlap the calendar date in the owner's timezone."""
    day_start = pendulum.datetime(day.year, day.month, day.day, tz=timezone)
    whole_day = Interval(start=day_start, end=day_start.add(days=1))

    return [booking for booking in bookings if whole_day.overlaps(booking.interval)]
