"""
Domain layer - Pure business logic without external dependencies.
"""

from .admission import admit_booking
from .availability import rule_for
from .models import (
    Attendee,
    AvailabilityProfile,
    Booking,
    DayAvailability,
    DayRule,
    EventType,
    Interval,
    SlotCandidate,
    Weekday,
)
from .slot_generator import generate_day_slots
from .window_scheduler import compute_availability

__all__ = [
    "Attendee",
    "AvailabilityProfile",
    "Booking",
    "DayAvailability",
    "DayRule",
    "EventType",
    "Interval",
    "SlotCandidate",
    "Weekday",
    "admit_booking",
    "compute_availability",
    "generate_day_slots",
    "rule_for",
]
