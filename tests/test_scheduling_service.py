"""
Tests for the SchedulingService orchestration layer.
"""

import asyncio
import threading
from datetime import time
from typing import List

import pendulum
import pytest

from slotbook.adapters.memory_store import InMemoryStore
from slotbook.domain.exceptions import (
    EventTypeNotFound,
    OutsideAvailableHours,
    SlotConflict,
    SlotInPast,
)
from slotbook.domain.models import (
    Attendee,
    AvailabilityProfile,
    Booking,
    DayRule,
    EventType,
    Interval,
    Weekday,
)
from slotbook.services.scheduling_service import SchedulingService

TZ = "Europe/Berlin"
NOW = pendulum.parse("2024-11-25 07:00", tz=TZ)  # Monday


class SlowStore(InMemoryStore):
    """Store that yields to the event loop on every read, like a remote database."""

    async def fetch_bookings(self, owner_id, start, end) -> List[Booking]:
        await asyncio.sleep(0)
        result = await super().fetch_bookings(owner_id, start, end)
        await asyncio.sleep(0)
        return result


def _profile(owner_id: str = "owner-1", gap: int = 0) -> AvailabilityProfile:
    open_day = DayRule(is_available=True, window_start=time(9, 0), window_end=time(17, 0))
    return AvailabilityProfile.from_rules(
        owner_id=owner_id,
        rules={day: open_day for day in Weekday if day < Weekday.SATURDAY},
        minimum_gap_minutes=gap,
        timezone=TZ,
    )


def _event_types() -> List[EventType]:
    return [
        EventType(id="intro-call", owner_id="owner-1", title="Intro call", duration_minutes=30),
        EventType(
            id="deep-dive",
            owner_id="owner-1",
            title="Deep dive",
            duration_minutes=60,
            is_private=True,
        ),
        EventType(id="other-call", owner_id="owner-2", title="Other call", duration_minutes=30),
    ]


def _build_service(store_cls=InMemoryStore, profiles=None, window_days: int = 7):
    store = store_cls(
        profiles=[_profile()] if profiles is None else profiles,
        event_types=_event_types(),
        usernames={"ada": "owner-1", "bob": "owner-2"},
    )
    service = SchedulingService(store=store, window_days=window_days, clock=lambda: NOW)
    return service, store


def _book(service, start: str = "2024-11-25T10:00:00+01:00", event_type_id: str = "intro-call"):
    return service.book(
        event_type_id=event_type_id,
        start=start,
        attendee_name="Ada",
        attendee_email="ada@example.com",
    )


def test_availability_for_unknown_event_type_is_empty():
    service, _ = _build_service()

    assert asyncio.run(service.get_availability("missing")) == []


def test_availability_without_profile_is_empty():
    """An owner who never saved a schedule has nothing to offer."""
    service, _ = _build_service(profiles=[])

    assert asyncio.run(service.get_availability("intro-call")) == []


def test_availability_covers_window():
    service, _ = _build_service()

    result = asyncio.run(service.get_availability("intro-call"))

    assert [day.date.isoformat() for day in result] == [
        "2024-11-25",
        "2024-11-26",
        "2024-11-27",
        "2024-11-28",
        "2024-11-29",
    ]


def test_booking_removes_slot_from_next_availability():
    service, store = _build_service()

    booking = asyncio.run(_book(service))
    result = asyncio.run(service.get_availability("intro-call"))

    assert booking.interval.start == pendulum.parse("2024-11-25 10:00", tz=TZ)
    assert booking.created_at == NOW
    assert store.all_bookings() == [booking]
    monday = [slot.label for slot in result[0].slots]
    assert "10:00" not in monday
    assert "09:30" in monday
    assert "10:30" in monday


def test_start_without_offset_is_owner_local_time():
    service, _ = _build_service()

    booking = asyncio.run(_book(service, start="2024-11-25T10:00"))

    assert booking.interval.start == pendulum.parse("2024-11-25 10:00", tz=TZ)


def test_failed_admission_has_no_side_effect():
    service, store = _build_service()
    before = [day.to_dict() for day in asyncio.run(service.get_availability("intro-call"))]

    with pytest.raises(OutsideAvailableHours):
        asyncio.run(_book(service, start="2024-11-25T16:45:00+01:00"))
    with pytest.raises(SlotInPast):
        asyncio.run(_book(service, start="2024-11-22T10:00:00+01:00"))

    after = [day.to_dict() for day in asyncio.run(service.get_availability("intro-call"))]
    assert store.all_bookings() == []
    assert before == after


def test_second_booking_of_same_slot_conflicts():
    service, _ = _build_service()

    asyncio.run(_book(service))

    with pytest.raises(SlotConflict):
        asyncio.run(_book(service, start="2024-11-25T10:15:00+01:00"))


def test_booking_unknown_event_type():
    service, _ = _build_service()

    with pytest.raises(EventTypeNotFound):
        asyncio.run(_book(service, event_type_id="missing"))


def test_booking_without_profile_is_outside_hours():
    service, _ = _build_service(profiles=[])

    with pytest.raises(OutsideAvailableHours):
        asyncio.run(_book(service))


def test_invalid_attendee_is_rejected_before_any_read():
    service, store = _build_service()

    with pytest.raises(ValueError):
        asyncio.run(
            service.book(
                event_type_id="intro-call",
                start="2024-11-25T10:00:00+01:00",
                attendee_name="Ada",
                attendee_email="nope",
            )
        )

    assert store.all_bookings() == []


def test_concurrent_requests_for_same_slot():
    """Exactly one of two simultaneous requests for a slot is committed."""
    service, store = _build_service(store_cls=SlowStore)

    async def race():
        return await asyncio.gather(_book(service), _book(service), return_exceptions=True)

    results = asyncio.run(race())

    booked = [r for r in results if isinstance(r, Booking)]
    conflicts = [r for r in results if isinstance(r, SlotConflict)]
    assert len(booked) == 1
    assert len(conflicts) == 1
    assert store.all_bookings() == booked


def test_concurrent_requests_for_different_owners_do_not_block_each_other():
    service, store = _build_service(store_cls=SlowStore, profiles=[_profile(), _profile("owner-2")])

    async def race():
        return await asyncio.gather(_book(service), _book(service, event_type_id="other-call"))

    first, second = asyncio.run(race())

    assert {first.owner_id, second.owner_id} == {"owner-1", "owner-2"}
    assert len(store.all_bookings()) == 2


def test_list_event_types_hides_private_and_counts_bookings():
    service, _ = _build_service()
    asyncio.run(_book(service))

    public = asyncio.run(service.list_event_types("ada"))
    everything = asyncio.run(service.list_event_types("ADA", include_private=True))

    assert [(s.event_type.id, s.booking_count) for s in public] == [("intro-call", 1)]
    assert {s.event_type.id for s in everything} == {"intro-call", "deep-dive"}
    assert asyncio.run(service.list_event_types("nobody")) == []


def test_list_event_types_newest_first():
    service, _ = _build_service()

    everything = asyncio.run(service.list_event_types("ada", include_private=True))

    assert [s.event_type.id for s in everything] == ["deep-dive", "intro-call"]


def test_private_event_type_is_still_bookable_by_id():
    service, _ = _build_service()

    booking = asyncio.run(_book(service, event_type_id="deep-dive"))

    assert booking.interval.duration_minutes() == 60


def test_save_availability_replaces_all_days():
    service, _ = _build_service()
    monday_only = AvailabilityProfile.from_rules(
        owner_id="owner-1",
        rules={Weekday.MONDAY: DayRule(is_available=True, window_start=time(13, 0), window_end=time(14, 0))},
        timezone=TZ,
    )

    asyncio.run(service.save_availability(monday_only))
    result = asyncio.run(service.get_availability("intro-call"))

    assert [day.to_dict() for day in result] == [
        {"date": "2024-11-25", "slots": ["13:00", "13:30"]}
    ]


def test_delete_event_type_checks_owner():
    service, _ = _build_service()

    with pytest.raises(EventTypeNotFound):
        asyncio.run(service.delete_event_type("owner-2", "intro-call"))

    asyncio.run(service.delete_event_type("owner-1", "intro-call"))

    assert asyncio.run(service.get_availability("intro-call")) == []


class TestInMemoryStore:
    """The store refuses overlaps even when callers skip the service."""

    @staticmethod
    def _booking(booking_id: str, start: str, end: str) -> Booking:
        return Booking(
            id=booking_id,
            event_type_id="intro-call",
            owner_id="owner-1",
            interval=Interval(start=pendulum.parse(start, tz=TZ), end=pendulum.parse(end, tz=TZ)),
            attendee=Attendee(name="Ada", email="ada@example.com"),
        )

    def test_persist_rejects_overlap(self):
        store = InMemoryStore()
        asyncio.run(store.persist_booking(self._booking("a", "2024-11-25 10:00", "2024-11-25 10:30")))

        with pytest.raises(SlotConflict):
            asyncio.run(store.persist_booking(self._booking("b", "2024-11-25 10:15", "2024-11-25 10:45")))

        asyncio.run(store.persist_booking(self._booking("c", "2024-11-25 10:30", "2024-11-25 11:00")))
        assert [b.id for b in store.all_bookings()] == ["a", "c"]

    def test_persist_from_threads(self):
        store = InMemoryStore()
        errors: List[Exception] = []

        def commit(booking_id: str):
            try:
                asyncio.run(
                    store.persist_booking(self._booking(booking_id, "2024-11-25 10:00", "2024-11-25 10:30"))
                )
            except SlotConflict as exc:
                errors.append(exc)

        threads = [threading.Thread(target=commit, args=(f"t{i}",)) for i in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(store.all_bookings()) == 1
        assert len(errors) == 7

    def test_fetch_bookings_filters_owner_and_range(self):
        store = InMemoryStore(bookings=[
            self._booking("a", "2024-11-25 10:00", "2024-11-25 10:30"),
            self._booking("b", "2024-11-26 10:00", "2024-11-26 10:30"),
        ])

        found = asyncio.run(
            store.fetch_bookings(
                "owner-1",
                pendulum.parse("2024-11-25 00:00", tz=TZ),
                pendulum.parse("2024-11-26 00:00", tz=TZ),
            )
        )

        assert [b.id for b in found] == ["a"]
        assert asyncio.run(
            store.fetch_bookings(
                "owner-2",
                pendulum.parse("2024-11-25 00:00", tz=TZ),
                pendulum.parse("2024-11-27 00:00", tz=TZ),
            )
        ) == []
