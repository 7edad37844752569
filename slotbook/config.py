"""
Configuration management using Pydantic models loaded from YAML.
"""

import re
from datetime import time
from pathlib import Path
from typing import Dict, List, Optional

import pendulum
import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

from .domain.models import AvailabilityProfile, DayRule, EventType, Weekday

USERNAME_PATTERN = re.compile(r"^[a-zA-Z0-9_]+$")


def _parse_clock(value: str) -> time:
    """Parse an ``HH:MM`` string."""
    try:
        hour, minute = (int(part) for part in value.split(":"))
        return time(hour=hour, minute=minute)
    except ValueError:
        raise ValueError(f"Time must be formatted as HH:MM, got '{value}'") from None


def _validate_timezone(value: str) -> str:
    try:
        pendulum.timezone(value)
    except Exception as exc:
        raise ValueError(f"Unknown timezone: '{value}'") from exc
    return value


class DayConfig(BaseModel):
    """Open hours of one weekday."""
    is_available: bool = False
    start_time: str = "09:00"
    end_time: str = "17:00"

    @field_validator("start_time", "end_time")
    @classmethod
    def validate_clock(cls, value: str) -> str:
        """Validate the HH:MM format."""
        _parse_clock(value)
        return value

    @model_validator(mode="after")
    def validate_window_order(self) -> "DayConfig":
        """Ensure an open day starts before it ends."""
        if self.is_available and _parse_clock(self.start_time) >= _parse_clock(self.end_time):
            raise ValueError("Start time must be before end time")
        return self

    def to_rule(self) -> DayRule:
        return DayRule(
            is_available=self.is_available,
            window_start=_parse_clock(self.start_time),
            window_end=_parse_clock(self.end_time),
        )


class AvailabilityConfig(BaseModel):
    """Weekly schedule and minimum gap."""
    time_gap: int = 0
    days: Dict[str, DayConfig] = Field(default_factory=dict)

    @field_validator("time_gap")
    @classmethod
    def validate_time_gap(cls, value: int) -> int:
        """Ensure the gap is not negative."""
        if value < 0:
            raise ValueError("Time gap must not be negative")
        return value

    @field_validator("days")
    @classmethod
    def validate_weekdays(cls, value: Dict[str, DayConfig]) -> Dict[str, DayConfig]:
        """Only the seven weekday names are accepted as keys."""
        normalized: Dict[str, DayConfig] = {}
        for name, day in value.items():
            key = name.strip().lower()
            Weekday.from_name(key)
            if key in normalized:
                raise ValueError(f"Duplicate weekday: {name}")
            normalized[key] = day
        return normalized

    def to_profile(self, owner_id: str, timezone: str) -> AvailabilityProfile:
        rules = {
            Weekday.from_name(name): day.to_rule() for name, day in self.days.items()
        }
        return AvailabilityProfile.from_rules(
            owner_id=owner_id,
            rules=rules,
            minimum_gap_minutes=self.time_gap,
            timezone=timezone,
        )


class EventTypeConfig(BaseModel):
    """A bookable event type."""
    id: str
    title: str
    description: str
    duration: int
    is_private: bool = False

    @field_validator("title")
    @classmethod
    def validate_title(cls, value: str) -> str:
        """Title must be 5 to 100 characters long."""
        if len(value) < 5:
            raise ValueError("Title must be at least 5 characters long")
        if len(value) > 100:
            raise ValueError("Title must be at most 100 characters long")
        return value

    @field_validator("description")
    @classmethod
    def validate_description(cls, value: str) -> str:
        """Description must be 10 to 500 characters long."""
        if len(value) < 10:
            raise ValueError("Description must be at least 10 characters long")
        if len(value) > 500:
            raise ValueError("Description must be at most 500 characters long")
        return value

    @field_validator("duration")
    @classmethod
    def validate_duration(cls, value: int) -> int:
        """Ensure the duration is positive."""
        if value <= 0:
            raise ValueError("Duration must be a positive number")
        return value

    def to_event_type(self, owner_id: str) -> EventType:
        return EventType(
            id=self.id,
            owner_id=owner_id,
            title=self.title,
            description=self.description,
            duration_minutes=self.duration,
            is_private=self.is_private,
        )


class OwnerConfig(BaseModel):
    """A calendar owner with their schedule and event types."""
    id: str
    username: str
    timezone: Optional[str] = None
    availability: Optional[AvailabilityConfig] = None
    event_types: List[EventTypeConfig] = Field(default_factory=list)

    @field_validator("username")
    @classmethod
    def validate_username(cls, value: str) -> str:
        """3 to 20 letters, numbers or underscores."""
        if len(value) < 3:
            raise ValueError("Username must be at least 3 characters long")
        if len(value) > 20:
            raise ValueError("Username must be at most 20 characters long")
        if not USERNAME_PATTERN.match(value):
            raise ValueError("Username can only contain letters, numbers, and underscores")
        return value

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, value: Optional[str]) -> Optional[str]:
        """Ensure the timezone is a known IANA name."""
        if value is None:
            return value
        return _validate_timezone(value)


class AppConfig(BaseModel):
    """Application configuration."""
    timezone: str = "Europe/Berlin"
    window_days: int = 30
    store_path: Path = Path("bookings.json")
    owners: List[OwnerConfig] = Field(default_factory=list)

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, value: str) -> str:
        """Ensure the timezone is a known IANA name."""
        return _validate_timezone(value)

    @field_validator("window_days")
    @classmethod
    def validate_window_days(cls, value: int) -> int:
        """Validate window is between 1 and 365 days."""
        if not 1 <= value <= 365:
            raise ValueError(f"window_days must be between 1 and 365, got {value}")
        return value

    @field_validator("owners")
    @classmethod
    def validate_owners(cls, value: List[OwnerConfig]) -> List[OwnerConfig]:
        """Ensure owner ids, usernames and event type ids are unique."""
        seen_ids: set[str] = set()
        seen_usernames: set[str] = set()
        seen_event_types: set[str] = set()
        for owner in value:
            username_key = owner.username.lower()
            if owner.id in seen_ids:
                raise ValueError(f"Duplicate owner id detected: {owner.id}")
            if username_key in seen_usernames:
                raise ValueError(f"Username already taken: {owner.username}")
            seen_ids.add(owner.id)
            seen_usernames.add(username_key)
            for event_type in owner.event_types:
                if event_type.id in seen_event_types:
                    raise ValueError(f"Duplicate event type id detected: {event_type.id}")
                seen_event_types.add(event_type.id)
        return value

    @classmethod
    def load_from_yaml(cls, config_path: Path) -> "AppConfig":
        """
        Load configuration from YAML file.

        A relative ``store_path`` is resolved against the config file's directory.

        Args:
            config_path: Path to the YAML config file

        Returns:
            AppConfig instance

        Raises:
            FileNotFoundError: If config file doesn't exist
            ValueError: If config is invalid
        """
        if not config_path.exists():
            raise FileNotFoundError(
                f"Config file not found: {config_path}\n"
                f"Please create a config.yaml file. See config.example.yaml for reference."
            )

        try:
            with open(config_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ValueError(f"Invalid YAML in {config_path}: {exc}") from exc

        if not isinstance(data, dict):
            raise ValueError("Config file must contain a mapping at the root level.")

        config = cls(**data)
        if not config.store_path.is_absolute():
            config.store_path = config_path.parent / config.store_path
        return config

    def owner_timezone(self, owner: OwnerConfig) -> str:
        return owner.timezone or self.timezone


def get_default_config_path() -> Path:
    """Get the default configuration file path."""
    # Look for config.yaml in current directory
    current_dir = Path.cwd()
    config_path = current_dir / "config.yaml"

    if not config_path.exists():
        # Try in the project root (parent of slotbook/)
        project_root = Path(__file__).parent.parent
        config_path = project_root / "config.yaml"

    return config_path
