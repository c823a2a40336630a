"""Shared test fixtures, fakes and builders."""

import asyncio
from datetime import date, datetime, time
from typing import Callable, Iterable, Optional

import pytest

from mentorbook.schemas.availability_schema import AvailabilityWindow, CandidateSlot, DayOfWeek
from mentorbook.schemas.booking_schema import (
    Lesson,
    LessonBookingRequest,
    LessonStatus,
    Ticket,
    Tutorial,
)
from mentorbook.services.client import ApiConnectionError, ApiError
from mentorbook.services.slots import SlotGenerationError

# Monday 2 November 2026, 14:30
NOW = datetime(2026, 11, 2, 14, 30)
TODAY = NOW.date()
NEXT_MONDAY = date(2026, 11, 9)

API_BASE = "https://api.mentorbook.test"


def fixed_clock(value: datetime = NOW) -> Callable[[], datetime]:
    return lambda: value


def make_window(
    day: DayOfWeek = DayOfWeek.MONDAY,
    start: str = "14:00",
    end: str = "16:00",
    active: bool = True,
    window_id: Optional[int] = None,
) -> AvailabilityWindow:
    return AvailabilityWindow(
        id=window_id, day_of_week=day, start_time=start, end_time=end, active=active
    )


def make_slots(pattern: str, start_hour: int = 9) -> list[CandidateSlot]:
    """Build hourly slots from a pattern such as ``"oox"`` (o = open, x = taken)."""
    return [
        CandidateSlot(
            time=f"{start_hour + i:02d}:00",
            available=mark == "o",
            reason=None if mark == "o" else "already booked",
        )
        for i, mark in enumerate(pattern)
    ]


def make_ticket(
    ticket_id: int = 7,
    tutorial_id: int = 1,
    remaining: int = 3,
    total: int = 5,
    expired: bool = False,
) -> Ticket:
    return Ticket(
        id=ticket_id,
        tutorial_id=tutorial_id,
        total_count=total,
        remaining_count=remaining,
        expired=expired,
    )


def make_lesson(
    lesson_id: int = 100,
    ticket_id: int = 7,
    status: LessonStatus = LessonStatus.REQUESTED,
    scheduled_at: Optional[datetime] = None,
) -> Lesson:
    return Lesson(
        lesson_id=lesson_id, ticket_id=ticket_id, status=status, scheduled_at=scheduled_at
    )


class FakeRegistry:
    """In-memory availability registry."""

    def __init__(self, windows: Iterable[AvailabilityWindow] = (), fail: bool = False) -> None:
        self.windows = list(windows)
        self.fail = fail
        self.calls = 0

    async def list_active_windows(self, mentor_id: int) -> list[AvailabilityWindow]:
        self.calls += 1
        if self.fail:
            raise ApiConnectionError("api_connection_failed: offline")
        return [w for w in self.windows if w.active]


class FakeBookings:
    """Booked start-times per date."""

    def __init__(self, booked: Optional[dict[date, set[time]]] = None, fail: bool = False) -> None:
        self.booked = booked or {}
        self.fail = fail
        self.calls: list[date] = []

    async def booked_start_times(self, mentor_id: int, on_date: date) -> set[time]:
        self.calls.append(on_date)
        if self.fail:
            raise ApiConnectionError("api_timeout: Request to /api/lessons/requests timed out")
        return set(self.booked.get(on_date, set()))


class FakeSlotSource:
    """Slot source that records concurrency and can fail for chosen dates."""

    def __init__(
        self,
        slots_by_date: Optional[dict[date, list[CandidateSlot]]] = None,
        default: Optional[list[CandidateSlot]] = None,
        fail_on: Iterable[date] = (),
        delay: float = 0.0,
    ) -> None:
        self.slots_by_date = slots_by_date or {}
        self.default = default if default is not None else make_slots("oooo")
        self.fail_on = set(fail_on)
        self.delay = delay
        self.calls: list[date] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def generate_slots(self, tutorial: Tutorial, on_date: date) -> list[CandidateSlot]:
        self.calls.append(on_date)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delay)
            if on_date in self.fail_on:
                raise SlotGenerationError(f"Could not load slots for {on_date}")
            return list(self.slots_by_date.get(on_date, self.default))
        finally:
            self.in_flight -= 1


class GatedSlotSource:
    """Slot source whose per-date responses are released by the test."""

    def __init__(self, slots: Optional[list[CandidateSlot]] = None) -> None:
        self.slots = slots if slots is not None else make_slots("oo", start_hour=14)
        self._gates: dict[date, asyncio.Event] = {}

    def _gate(self, on_date: date) -> asyncio.Event:
        return self._gates.setdefault(on_date, asyncio.Event())

    def release(self, on_date: date) -> None:
        self._gate(on_date).set()

    async def generate_slots(self, tutorial: Tutorial, on_date: date) -> list[CandidateSlot]:
        await self._gate(on_date).wait()
        return list(self.slots)


class FakeGateway:
    """Booking endpoint double."""

    def __init__(
        self,
        lesson: Optional[Lesson] = None,
        error: Optional[ApiError] = None,
        gate: Optional[asyncio.Event] = None,
    ) -> None:
        self.lesson = lesson or make_lesson()
        self.error = error
        self.gate = gate
        self.calls: list[tuple[int, LessonBookingRequest]] = []

    async def create_lesson_booking(self, ticket_id: int, request: LessonBookingRequest) -> Lesson:
        self.calls.append((ticket_id, request))
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return self.lesson


@pytest.fixture
def tutorial() -> Tutorial:
    return Tutorial(id=1, mentor_id=42, title="Python for Backend Interviews", duration=60)


@pytest.fixture
def monday_window() -> AvailabilityWindow:
    return make_window(DayOfWeek.MONDAY, "14:00", "16:00")


@pytest.fixture
def ticket() -> Ticket:
    return make_ticket()
