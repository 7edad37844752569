"""
Offerable slot generation for a single day.

Pure domain logic: no store access, no clock reads. Everything the generator
needs, including "now", is passed in by the caller.
"""

from typing import Iterable, Iterator, List

from pendulum import Date, DateTime

from .models import Booking, DayRule, Interval, SlotCandidate


def generate_day_slots(
    day: Date,
    day_rule: DayRule,
    duration_minutes: int,
    gap_minutes: int,
    existing_bookings: Iterable[Booking],
    now: DateTime,
    timezone: str,
) -> Iterator[SlotCandidate]:
    """
    Yield the offerable slots of one day in chronological order.

    Algorithm:
    1. Anchor the cursor at the day's window start
    2. On the current date only, clamp the cursor once to ``now + gap_minutes``
    3. Tile the window at ``duration_minutes`` from the cursor, skipping
       candidates that overlap an existing booking

    The grid stays anchored to the window start (or to the clamp); it is never
    realigned to the end of a booking.

    Args:
        day: Calendar date in the owner's timezone
        day_rule: Rule for that date's weekday
        duration_minutes: Event duration, also the grid step
        gap_minutes: Minimum lead time between now and the first slot of today
        existing_bookings: Bookings of the same owner around that date
        now: Current instant
        timezone: Owner's IANA timezone

    Returns:
        A fresh generator; calling again recomputes from the inputs.
    """
    if duration_minutes <= 0:
        raise ValueError(f"Duration must be greater than zero, got {duration_minutes}")

    if not day_rule.is_available:
        return

    window = day_rule.window_for(day, timezone)
    busy: List[Interval] = [booking.interval for booking in existing_bookings]

    today = now.in_timezone(timezone).date()
    if day < today:
        return

    cursor = window.start
    if day == today:
        cursor = max(cursor, earliest_start(now, gap_minutes, timezone))

    while cursor.add(minutes=duration_minutes) <= window.end:
        candidate_end = cursor.add(minutes=duration_minutes)
        candidate = Interval(start=cursor, end=candidate_end)

        if not any(candidate.overlaps(interval) for interval in busy):
            yield SlotCandidate(start=cursor, end=candidate_end)

        cursor = candidate_end


def earliest_start(now: DateTime, gap_minutes: int, timezone: str) -> DateTime:
    """
    First bookable instant: ``now + gap_minutes``, rounded up to a whole minute.

    Returned in the owner's timezone so slot labels read as local wall-clock time.
    """
    earliest = now.in_timezone(timezone).add(minutes=gap_minutes)
    if earliest.second or earliest.microsecond:
        earliest = earliest.set(second=0, microsecond=0).add(minutes=1)
    return earliest
