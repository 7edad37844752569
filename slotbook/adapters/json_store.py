"""
JSON file backed store: bookings on disk, catalog from the configuration.
"""

import json
import logging
import os
from pathlib import Path
from typing import Dict, List

from filelock import FileLock

from ..config import AppConfig
from ..domain.exceptions import StoreError
from ..domain.models import AvailabilityProfile, Booking, EventType
from .memory_store import InMemoryStore

logger = logging.getLogger(__name__)


class JsonStore(InMemoryStore):
    """
    Store that persists bookings to a JSON file.

    Availability profiles and event types are seeded from the configuration
    file; only bookings are written back. The file is rewritten atomically
    after every commit.

    Several stores (in one process or in many) may share the same file.
    Every read reloads it, and a commit holds an exclusive lock on
    ``<file>.lock`` while it reloads, re-checks overlaps and writes, so a
    booking committed elsewhere is never missed or overwritten.
    """

    def __init__(self, path: Path, config: AppConfig):
        """
        Initialize the store.

        Args:
            path: Location of the bookings file (created on first commit)
            config: Application configuration with owners and event types
        """
        self.path = Path(path)
        self._file_lock = FileLock(str(self.path) + ".lock")

        profiles: List[AvailabilityProfile] = []
        event_types: List[EventType] = []
        usernames: Dict[str, str] = {}

        for owner in config.owners:
            usernames[owner.username] = owner.id
            if owner.availability is not None:
                profiles.append(
                    owner.availability.to_profile(owner.id, config.owner_timezone(owner))
                )
            event_types.extend(
                event_type.to_event_type(owner.id) for event_type in owner.event_types
            )

        super().__init__(
            profiles=profiles,
            event_types=event_types,
            bookings=self._load_bookings(),
            usernames=usernames,
        )

    @classmethod
    def from_config(cls, config: AppConfig) -> "JsonStore":
        return cls(path=config.store_path, config=config)

    async def persist_booking(self, booking: Booking) -> Booking:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self._file_lock:
            return await super().persist_booking(booking)

    def _load_bookings(self) -> List[Booking]:
        """Load committed bookings from the JSON file."""
        if not self.path.exists():
            logger.debug("No bookings file at %s, starting empty", self.path)
            return []

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                records = json.load(f)
            return [Booking.from_dict(record) for record in records]
        except (OSError, ValueError, KeyError, TypeError) as exc:
            logger.warning("Could not load bookings file %s: %s", self.path, exc)
            raise StoreError(f"Could not load bookings from {self.path}: {exc}") from exc

    def _refresh(self) -> None:
        self._bookings = self._load_bookings()

    def _on_commit(self) -> None:
        records = [booking.to_dict() for booking in self._bookings]
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")

        try:
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(records, f, indent=2)
            os.replace(tmp_path, self.path)
        except OSError as exc:
            # Keep memory and disk in step: the booking was not committed.
            self._bookings.pop()
            logger.warning("Could not save bookings to %s: %s", self.path, exc)
            raise StoreError(f"Could not save bookings to {self.path}: {exc}") from exc
