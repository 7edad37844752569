"""
Domain-specific exception hierarchy for the booking engine.
"""


class SchedulingError(Exception):
    """Base class for all application-level errors."""


class NoRuleFound(SchedulingError):
    """Raised when an availability profile has no rule for a weekday."""


class EventTypeNotFound(SchedulingError):
    """Raised when an event type does not exist or belongs to another owner."""


class StoreError(SchedulingError):
    """Raised when profiles, event types or bookings cannot be read or written."""


class AdmissionError(SchedulingError):
    """
    A booking request was rejected.

    Rejections are user-correctable; ``code`` identifies the kind so callers can
    re-offer the current slot list.
    """

    code = "admission_error"

    def to_dict(self) -> dict:
        return {"error": self.code, "message": str(self)}


class OutsideAvailableHours(AdmissionError):
    """Raised when the requested interval is not inside the day's open window."""

    code = "outside_available_hours"


class SlotInPast(AdmissionError):
    """Raised when the requested start is earlier than now plus the minimum gap."""

    code = "slot_in_past"


class SlotConflict(AdmissionError):
    """Raised when the requested interval overlaps an existing booking."""

    code = "slot_conflict"
