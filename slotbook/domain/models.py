"""
Domain models for availability rules, slots and bookings.
"""

from dataclasses import dataclass, field
from datetime import time
from enum import IntEnum
from typing import Dict, List, Mapping, Optional

import pendulum
from pendulum import Date, DateTime


@dataclass(frozen=True)
class Interval:
    """
    Represents an immutable half-open interval ``[start, end)``.

    Invariant: start must be before end.
    """
    start: DateTime
    end: DateTime

    def __post_init__(self):
        if self.start >= self.end:
            raise ValueError(f"Start time {self.start} must be before end time {self.end}")

    def duration_minutes(self) -> int:
        """Return the duration in minutes."""
        return int((self.end - self.start).total_seconds() / 60)

    def overlaps(self, other: "Interval") -> bool:
        """
        Check if this interval shares any instant with another.

        Intervals that only touch (one ends where the other starts) do not overlap.
        """
        return self.start < other.end and other.start < self.end

    def contains(self, other: "Interval") -> bool:
        """Check if another interval lies entirely inside this one."""
        return self.start <= other.start and other.end <= self.end

    def __str__(self) -> str:
        return f"{self.start.format('YYYY-MM-DD HH:mm')} - {self.end.format('HH:mm')}"


class Weekday(IntEnum):
    """Day of the week, numbered like ``date.weekday()``."""
    MONDAY = 0
    TUESDAY = 1
    WEDNESDAY = 2
    THURSDAY = 3
    FRIDAY = 4
    SATURDAY = 5
    SUNDAY = 6

    @classmethod
    def of(cls, day: Date) -> "Weekday":
        return cls(day.weekday())

    @classmethod
    def from_name(cls, name: str) -> "Weekday":
        try:
            return cls[name.strip().upper()]
        except KeyError:
            raise ValueError(f"Unknown weekday: '{name}'") from None


DEFAULT_WINDOW_START = time(9, 0)
DEFAULT_WINDOW_END = time(17, 0)


@dataclass(frozen=True)
class DayRule:
    """
    Open hours for one weekday.

    The window is only meaningful when ``is_available`` is set.
    """
    is_available: bool
    window_start: time = DEFAULT_WINDOW_START
    window_end: time = DEFAULT_WINDOW_END

    def __post_init__(self):
        if self.is_available and self.window_start >= self.window_end:
            raise ValueError(
                f"Window start {self.window_start} must be before window end {self.window_end}"
            )

    @classmethod
    def closed(cls) -> "DayRule":
        return cls(is_available=False)

    def window_for(self, day: Date, timezone: str) -> Interval:
        """Anchor the configured window on a calendar date."""
        return Interval(
            start=combine(day, self.window_start, timezone),
            end=combine(day, self.window_end, timezone),
        )


@dataclass(frozen=True)
class AvailabilityProfile:
    """
    Weekly availability of one owner.

    Saving a profile replaces the whole rule set; ``days`` is never merged.
    """
    owner_id: str
    days: Mapping[Weekday, DayRule]
    minimum_gap_minutes: int = 0
    timezone: str = "Europe/Berlin"

    def __post_init__(self):
        if self.minimum_gap_minutes < 0:
            raise ValueError(
                f"Minimum gap must not be negative, got {self.minimum_gap_minutes}"
            )

    @classmethod
    def from_rules(
        cls,
        owner_id: str,
        rules: Mapping[Weekday, DayRule],
        minimum_gap_minutes: int = 0,
        timezone: str = "Europe/Berlin",
    ) -> "AvailabilityProfile":
        """
        Build a complete seven-day profile.

        Weekdays missing from ``rules`` are closed.
        """
        days: Dict[Weekday, DayRule] = {
            weekday: rules.get(weekday, DayRule.closed()) for weekday in Weekday
        }
        return cls(
            owner_id=owner_id,
            days=days,
            minimum_gap_minutes=minimum_gap_minutes,
            timezone=timezone,
        )


@dataclass(frozen=True)
class EventType:
    """A bookable kind of meeting; its duration is the slot granularity."""
    id: str
    owner_id: str
    title: str
    duration_minutes: int
    description: str = ""
    is_private: bool = False

    def __post_init__(self):
        if self.duration_minutes <= 0:
            raise ValueError(
                f"Duration must be greater than zero, got {self.duration_minutes}"
            )


@dataclass(frozen=True)
class Attendee:
    """Contact details of the person booking."""
    name: str
    email: str
    note: Optional[str] = None

    def __post_init__(self):
        if not self.name.strip():
            raise ValueError("Attendee name must not be empty")
        if "@" not in self.email:
            raise ValueError(f"Invalid attendee email: '{self.email}'")


@dataclass(frozen=True)
class Booking:
    """
    A committed reservation on the owner's calendar.

    ``owner_id`` is the event owner, not the person booking.
    """
    id: str
    event_type_id: str
    owner_id: str
    interval: Interval
    attendee: Attendee
    created_at: DateTime = field(default_factory=lambda: pendulum.now("UTC"))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "event_type_id": self.event_type_id,
            "owner_id": self.owner_id,
            "start": self.interval.start.to_iso8601_string(),
            "end": self.interval.end.to_iso8601_string(),
            "attendee_name": self.attendee.name,
            "attendee_email": self.attendee.email,
            "note": self.attendee.note,
            "created_at": self.created_at.to_iso8601_string(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Booking":
        return cls(
            id=data["id"],
            event_type_id=data["event_type_id"],
            owner_id=data["owner_id"],
            interval=Interval(
                start=pendulum.parse(data["start"]),
                end=pendulum.parse(data["end"]),
            ),
            attendee=Attendee(
                name=data["attendee_name"],
                email=data["attendee_email"],
                note=data.get("note"),
            ),
            created_at=pendulum.parse(data["created_at"]),
        )


@dataclass(frozen=True)
class SlotCandidate:
    """An offerable start time; valid only until the next booking or clock tick."""
    start: DateTime
    end: DateTime

    @property
    def label(self) -> str:
        return self.start.format("HH:mm")

    @property
    def interval(self) -> Interval:
        return Interval(start=self.start, end=self.end)


@dataclass
class DayAvailability:
    """Offerable slots on a single date."""
    date: Date
    slots: List[SlotCandidate]

    def to_dict(self) -> dict:
        return {
            "date": self.date.isoformat(),
            "slots": [slot.label for slot in self.slots],
        }


def combine(day: Date, time_of_day: time, timezone: str) -> DateTime:
    """Build an aware datetime for a calendar date and a wall-clock time."""
    return pendulum.datetime(
        day.year,
        day.month,
        day.day,
        time_of_day.hour,
        time_of_day.minute,
        tz=timezone,
    )
