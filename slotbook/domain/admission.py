"""
Admission checks for a new booking request.

The checks are pure: they read the booking set they are handed and return an
unpersisted Booking. Callers must run the conflict check and the write as one
atomic step per owner, otherwise two requests validated against the same stale
booking set can both commit.
"""

import logging
import uuid
from typing import Iterable, Optional

from pendulum import DateTime

from .availability import rule_for
from .exceptions import OutsideAvailableHours, SlotConflict, SlotInPast
from .models import Attendee, AvailabilityProfile, Booking, EventType, Interval
from .slot_generator import earliest_start

logger = logging.getLogger(__name__)


def admit_booking(
    event_type: EventType,
    profile: AvailabilityProfile,
    existing_bookings: Iterable[Booking],
    requested_start: DateTime,
    attendee: Attendee,
    now: DateTime,
    booking_id: Optional[str] = None,
) -> Booking:
    """
    Validate a booking request and build the Booking it would create.

    The first failing check short-circuits; nothing is created on failure.

    Raises:
        OutsideAvailableHours: Day closed, or the interval leaves the day's window
        SlotInPast: Start is before now, or today and earlier than now plus the minimum gap
        SlotConflict: Interval overlaps an existing booking of the owner
    """
    local_start = requested_start.in_timezone(profile.timezone)
    requested = Interval(
        start=local_start,
        end=local_start.add(minutes=event_type.duration_minutes),
    )

    day = local_start.date()
    day_rule = rule_for(day, profile)

    if not day_rule.is_available:
        logger.info("Rejected %s for %s: day is closed", requested, event_type.id)
        raise OutsideAvailableHours(f"{day.isoformat()} is not an available day")

    if not day_rule.window_for(day, profile.timezone).contains(requested):
        logger.info("Rejected %s for %s: outside open hours", requested, event_type.id)
        raise OutsideAvailableHours(
            f"{requested} is outside the available hours "
            f"{day_rule.window_start.strftime('%H:%M')}-{day_rule.window_end.strftime('%H:%M')}"
        )

    if requested.start < now:
        logger.info("Rejected %s for %s: already started", requested, event_type.id)
        raise SlotInPast(f"{requested} is in the past")

    today = now.in_timezone(profile.timezone).date()
    if day == today and requested.start < earliest_start(
        now, profile.minimum_gap_minutes, profile.timezone
    ):
        logger.info("Rejected %s for %s: too close to now", requested, event_type.id)
        raise SlotInPast(
            f"{requested} starts less than {profile.minimum_gap_minutes} minutes from now"
        )

    for booking in existing_bookings:
        if booking.owner_id == event_type.owner_id and booking.interval.overlaps(requested):
            logger.info(
                "Rejected %s for %s: conflicts with booking %s",
                requested,
                event_type.id,
                booking.id,
            )
            raise SlotConflict(f"{requested} conflicts with an existing booking")

    return Booking(
        id=booking_id or uuid.uuid4().hex,
        event_type_id=event_type.id,
        owner_id=event_type.owner_id,
        interval=requested,
        attendee=attendee,
        created_at=now,
    )
